import logging
import re
from io import BytesIO
from typing import List, Optional, Union

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas
from reportlab.platypus import Table, TableStyle

from config import ProfileNotConfiguredError
from invoice_totals import hsn_summary, net_payable
from models import RETAIL, CompanyProfile, Invoice
from print_templates import TemplateSpec, resolve_template
from utils import fmt_date, fmt_money, license_line, phone_list, to_words

logger = logging.getLogger(__name__)

WIDTH, HEIGHT = A4
MARGIN = 7 * mm
CONTENT_W = WIDTH - 2 * MARGIN
BOTTOM = MARGIN + 4 * mm
SIGNATURE_H = 24 * mm
MID_X = WIDTH / 2 + 10 * mm

COPY_LABEL = "ORIGINAL FOR BUYER"
CURRENCY = "Rs."

WATERMARK = colors.Color(248 / 255, 248 / 255, 248 / 255)
HEADER_FILL = colors.Color(245 / 255, 245 / 255, 245 / 255)
MUTED = colors.Color(100 / 255, 100 / 255, 100 / 255)
FAINT = colors.Color(150 / 255, 150 / 255, 150 / 255)

FONT = "Helvetica"
BOLD = "Helvetica-Bold"


def title_for(category: str) -> str:
    return "RETAIL CASH MEMO" if category == RETAIL else "TAX INVOICE"


def document_name(invoice: Invoice) -> str:
    """File name of the original-copy artifact for ``invoice``."""
    safe = re.sub(r"[^A-Za-z0-9_-]+", "_", invoice.invoice_no.strip())
    return f"ORIGINAL_INVOICE_{safe}.pdf"


def _fit(text: str, width: float, font: str, size: float) -> str:
    """Trim ``text`` so it fits in ``width`` points."""
    text = str(text or "")
    if stringWidth(text, font, size) <= width:
        return text
    while text and stringWidth(text + "..", font, size) > width:
        text = text[:-1]
    return text + ".." if text else ""


def _grid_style(font_size: float, header_fill=HEADER_FILL) -> List:
    return [
        ("FONT", (0, 0), (-1, -1), FONT, font_size),
        ("FONT", (0, 0), (-1, 0), BOLD, font_size),
        ("BACKGROUND", (0, 0), (-1, 0), header_fill),
        ("ALIGN", (0, 0), (-1, 0), "CENTER"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("GRID", (0, 0), (-1, -1), 0.3, colors.black),
        ("LEFTPADDING", (0, 0), (-1, -1), 2),
        ("RIGHTPADDING", (0, 0), (-1, -1), 2),
        ("TOPPADDING", (0, 0), (-1, -1), 1.5),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 1.5),
    ]


class InvoiceDocument:
    """One printed invoice. Header sections sit at fixed offsets from the
    top of the first page; everything after the item table is placed
    relative to where the table ended."""

    def __init__(self, buffer, invoice: Invoice, profile: CompanyProfile, layout: TemplateSpec):
        self.invoice = invoice
        self.profile = profile
        self.layout = layout
        self.c = canvas.Canvas(buffer, pagesize=A4, invariant=1)
        self.c.setTitle(document_name(invoice))
        self.c.setAuthor(profile.name)
        self.page_count = 1

    @staticmethod
    def from_top(offset_mm: float) -> float:
        return HEIGHT - MARGIN - offset_mm * mm

    def text(self, x, y, value, font=FONT, size=8, align="left", color=None):
        c = self.c
        c.setFont(font, size)
        if color is not None:
            c.setFillColor(color)
        if align == "center":
            c.drawCentredString(x, y, value)
        elif align == "right":
            c.drawRightString(x, y, value)
        else:
            c.drawString(x, y, value)
        if color is not None:
            c.setFillColor(colors.black)

    def hline(self, y, x1=MARGIN, x2=WIDTH - MARGIN, width=0.5):
        self.c.setLineWidth(width)
        self.c.line(x1, y, x2, y)

    # ─── page furniture ───

    def draw_frame(self):
        c = self.c
        c.saveState()
        c.setFillColor(WATERMARK)
        c.setFont(BOLD, 45)
        c.translate(WIDTH / 2, HEIGHT / 2)
        c.rotate(45)
        c.drawCentredString(0, 0, self.profile.name)
        c.restoreState()

        c.setLineWidth(0.85)
        c.rect(MARGIN, MARGIN, CONTENT_W, HEIGHT - 2 * MARGIN)

        y = self.from_top(4)
        self.text(MARGIN + 2 * mm, y, f"GSTIN No. {self.profile.gstin}", font=BOLD, size=8)
        self.text(WIDTH / 2, y, title_for(self.invoice.category), font=BOLD, size=10, align="center")
        self.text(WIDTH - MARGIN - 2 * mm, y, COPY_LABEL, font=BOLD, size=8, align="right", color=MUTED)
        self.hline(self.from_top(6))

    def new_page(self) -> float:
        self.c.showPage()
        self.page_count += 1
        self.draw_frame()
        self.text(MARGIN + 2 * mm, self.from_top(10.5),
                  f"INVOICE NO. : {self.invoice.invoice_no} (continued, page {self.page_count})",
                  font=BOLD, size=8)
        return self.from_top(13)

    # ─── header sections (first page) ───

    def draw_seller(self) -> float:
        p = self.profile
        self.text(WIDTH / 2, self.from_top(12), p.name, font=BOLD, size=18, align="center")
        address = ", ".join(part for part in (p.address_line1, p.address_line2) if part)
        self.text(WIDTH / 2, self.from_top(16), address, size=9, align="center")
        self.text(WIDTH / 2, self.from_top(20), license_line(p.license_numbers), size=7.5, align="center")

        for i, phone in enumerate(phone_list(p.phone)[:3]):
            self.text(WIDTH - MARGIN - 5 * mm, self.from_top(12 + i * 4), f"Ph: {phone}", size=9, align="right")
        if p.jurisdiction:
            self.text(WIDTH - MARGIN - 5 * mm, self.from_top(24), f"Subject to {p.jurisdiction} Jurisdiction",
                      font=BOLD, size=9, align="right")
        self.hline(self.from_top(27))
        return 27

    def draw_parties(self, grid_top: float) -> float:
        inv = self.invoice

        def at(off):
            return self.from_top(grid_top + off)

        left = MARGIN + 2 * mm
        right = MID_X + 2 * mm

        self.c.setLineWidth(0.5)
        self.c.line(MID_X, at(0), MID_X, at(30))

        self.text(left, at(4), "PURCHASER'S NAME & ADDRESS", font=BOLD, size=8)
        self.hline(at(5), x2=MID_X)
        self.text(left, at(9), _fit(inv.party_name, MID_X - left - 2 * mm, BOLD, 9), font=BOLD, size=9)
        for i, line in enumerate(simpleSplit(inv.party_address or "", FONT, 8, 85 * mm)[:3]):
            self.text(left, at(13 + i * 3.5), line, size=8)
        if inv.party_state_code:
            self.text(left, at(24), f"State Code : {inv.party_state_code}", size=8)
        self.text(left, at(28), f"GSTIN : {inv.party_gstin or 'URD'}", font=BOLD, size=8)

        self.text(right, at(5), f"INVOICE NO. : {inv.invoice_no}", font=BOLD, size=9)
        self.text(WIDTH - MARGIN - 2 * mm, at(5), f"DATE : {fmt_date(inv.date)}", font=BOLD, size=9, align="right")
        self.hline(at(8), x1=MID_X)
        self.text(right, at(13), f"GR No. : {inv.gr_no or 'N/A'}", size=8)
        self.text(right, at(18), f"Transport : {inv.transport or 'Direct'}", size=8)
        self.text(right, at(23), f"Vehicle No : {inv.vehicle_no or 'Self'}", size=8)
        if inv.notes:
            note = _fit(f"Notes : {inv.notes}", WIDTH - MARGIN - right - 2 * mm, FONT, 8)
            self.text(right, at(28), note, size=8)

        self.hline(at(30))
        return self.from_top(grid_top + 30)

    # ─── item table ───

    def item_table(self) -> Table:
        layout = self.layout
        size = layout.font_size
        rows = [list(layout.headers)]
        for idx, item in enumerate(self.invoice.items):
            rows.append([
                _fit(col.cell(item, idx), col.width * mm - 4, BOLD if col.bold else FONT, size)
                for col in layout.columns
            ])
        style = _grid_style(size)
        for i, col in enumerate(layout.columns):
            style.append(("ALIGN", (i, 1), (i, -1), col.align))
            if col.bold:
                style.append(("FONT", (i, 1), (i, -1), BOLD, size))
        table = Table(rows, colWidths=[col.width * mm for col in layout.columns], repeatRows=1)
        table.setStyle(TableStyle(style))
        return table

    def flow_table(self, table: Table, top: float) -> float:
        """Draw ``table`` from ``top`` down, splitting it across new pages
        as needed. Returns the y coordinate where the table ends."""
        fresh_page = False
        while True:
            avail = top - BOTTOM
            _, h = table.wrapOn(self.c, CONTENT_W, avail)
            parts = [] if h <= avail else table.split(CONTENT_W, avail)
            if h <= avail or (fresh_page and len(parts) < 2):
                table.drawOn(self.c, MARGIN, top - h)
                return top - h
            if len(parts) >= 2:
                first, table = parts[0], parts[1]
                _, fh = first.wrapOn(self.c, CONTENT_W, avail)
                first.drawOn(self.c, MARGIN, top - fh)
            top = self.new_page()
            fresh_page = True

    # ─── below the table ───

    def hsn_table(self) -> Optional[Table]:
        if not self.layout.show_hsn_summary:
            return None
        rows = [["HSN/SAC", "Taxable Amt", "Total Tax", "Net Value"]]
        for entry in hsn_summary(self.invoice.items):
            rows.append([entry.hsn, fmt_money(entry.taxable), fmt_money(entry.tax), fmt_money(entry.net)])
        width = CONTENT_W / 2.5
        table = Table(rows, colWidths=[width / 4] * 4, repeatRows=1)
        style = _grid_style(7, header_fill=colors.Color(250 / 255, 250 / 255, 250 / 255))
        style.append(("ALIGN", (1, 1), (-1, -1), "RIGHT"))
        table.setStyle(TableStyle(style))
        return table

    def info_lines(self) -> List[tuple]:
        """(font, text) rows of the bank and/or terms block."""
        p = self.profile
        lines = []
        if self.layout.show_bank_details:
            lines.append((BOLD, "OUR BANK DETAILS:"))
            lines.append((FONT, f"Bank Name: {p.bank_name or '-'}"))
            lines.append((FONT, f"A/C No: {p.bank_account_no or '-'}"))
            lines.append((FONT, f"IFSC: {p.bank_ifsc or '-'}"))
        if self.layout.show_terms and p.terms:
            lines.append((BOLD, "TERMS & CONDITIONS:"))
            for raw in p.terms.splitlines():
                for part in simpleSplit(raw, FONT, 7, CONTENT_W / 2 - 4 * mm) or [""]:
                    lines.append((FONT, part))
        return lines

    def words_lines(self) -> List[str]:
        words = to_words(net_payable(self.invoice.grand_total))
        return simpleSplit(f"Bill Amount In Words : {words}", BOLD, 8, CONTENT_W - 4 * mm)

    def ensure_room(self, y: float, needed: float) -> float:
        """``y`` if ``needed`` points still fit above the bottom edge, else the top of a new page."""
        if y - needed < BOTTOM:
            return self.new_page() - 2 * mm
        return y

    def draw_footer(self, top: float):
        inv = self.invoice
        hsn = self.hsn_table()
        hsn_h = hsn.wrapOn(self.c, CONTENT_W, HEIGHT)[1] if hsn is not None else 0

        totals_h = 22 * mm
        upper_h = max(totals_h, hsn_h + 5 * mm)
        info = self.info_lines()
        info_h = len(info) * 4 * mm + 2 * mm
        words = self.words_lines()
        words_h = len(words) * 4 * mm + 2 * mm
        rest_h = info_h + words_h + SIGNATURE_H
        page_room = self.from_top(15) - BOTTOM

        # a block that fits on one page is kept together
        if top - (upper_h + rest_h) < BOTTOM and upper_h + rest_h <= page_room:
            top = self.new_page() - 2 * mm
        if hsn is not None and top - (hsn_h + 5 * mm) < BOTTOM:
            # summary longer than the room left: let it flow, totals go underneath
            top = self.flow_table(hsn, top) - 5 * mm
            hsn, upper_h = None, totals_h
        top = self.ensure_room(top, upper_h)

        # HSN summary (left) and totals (right)
        if hsn is not None:
            hsn.drawOn(self.c, MARGIN, top - hsn_h)
        tx = WIDTH / 2 + 5 * mm
        rx = WIDTH - MARGIN - 2 * mm
        rows = [
            ("Total Taxable:", inv.total_taxable),
            ("GST Total:", inv.total_tax),
            ("Round Off:", inv.round_off),
        ]
        for i, (label, value) in enumerate(rows):
            y = top - (4 + i * 4) * mm
            self.text(tx, y, label, size=8.5)
            self.text(rx, y, fmt_money(value), size=8.5, align="right")
        self.hline(top - 15 * mm, x1=tx)
        self.text(tx, top - 20 * mm, "GRAND TOTAL:", font=BOLD, size=10)
        self.text(rx, top - 20 * mm, f"{CURRENCY} {fmt_money(net_payable(inv.grand_total))}",
                  font=BOLD, size=10, align="right")

        # bank details / terms, with the signing line on the right
        y = top - upper_h
        self.text(WIDTH - MARGIN - 5 * mm, y - 4 * mm, f"For {self.profile.name}", font=BOLD, size=8, align="right")
        for font, line in info:
            y = self.ensure_room(y, 4 * mm) - 4 * mm
            self.text(MARGIN + 2 * mm, y, line, font=font, size=7)
        y -= 2 * mm

        for line in words:
            y = self.ensure_room(y, 4 * mm) - 4 * mm
            self.text(MARGIN + 2 * mm, y, line, font=BOLD, size=8)
        y -= 2 * mm

        # signature block
        y = self.ensure_room(y, SIGNATURE_H)
        sig_y = y - 16 * mm
        self.c.setLineWidth(0.5)
        self.c.line(MARGIN + 2 * mm, sig_y, MARGIN + 52 * mm, sig_y)
        self.c.line(WIDTH - MARGIN - 55 * mm, sig_y, WIDTH - MARGIN - 5 * mm, sig_y)
        self.text(MARGIN + 2 * mm, sig_y - 4 * mm, "Receiver's Signature", size=8)
        self.text(WIDTH - MARGIN - 5 * mm, sig_y - 4 * mm, "Authorized Signatory", size=8, align="right")
        self.text(WIDTH / 2, sig_y - 7.5 * mm,
                  "* This is a computer generated invoice and does not require physical signature.",
                  size=6, align="center", color=FAINT)

    def build(self) -> int:
        self.draw_frame()
        grid_top = self.draw_seller()
        table_top = self.draw_parties(grid_top) - 2 * mm
        table_end = self.flow_table(self.item_table(), table_top)
        self.draw_footer(table_end - 5 * mm)
        self.c.showPage()
        self.c.save()
        return self.page_count


def render_invoice_pdf(invoice: Invoice, profile: Optional[CompanyProfile],
                       template: Optional[Union[str, TemplateSpec]] = None) -> bytes:
    """Render the original copy of a finalized invoice as PDF bytes.

    The invoice category picks the layout: RETAIL prints the compact cash
    memo, everything else the detailed tax invoice. An explicit ``template``
    that does not suit the category raises ``ValueError``; the profile's
    stored preference is only a hint and never overrides the category.
    """
    if profile is None:
        raise ProfileNotConfiguredError("cannot print without a company profile")
    if template is not None:
        layout = resolve_template(invoice.category, template)
    else:
        layout = resolve_template(invoice.category, profile.invoice_template, strict=False)

    logger.info("Rendering %s with %s template (%d lines)", invoice.invoice_no, layout.name, len(invoice.items))
    buffer = BytesIO()
    pages = InvoiceDocument(buffer, invoice, profile, layout).build()
    logger.info("Rendered %s: %d page(s)", document_name(invoice), pages)
    return buffer.getvalue()


# ─── tabular exports ───

def _line_rows(invoice: Invoice) -> List[dict]:
    return [{
        "Sr": idx + 1,
        "Description": it.name,
        "HSN": it.hsn,
        "Batch": it.batch,
        "Expiry": it.expiry,
        "MRP": it.mrp,
        "Qty": it.quantity,
        "Free": it.free_quantity,
        "Rate": it.sale_rate,
        "Disc%": it.discount_percent,
        "GST%": it.gst_rate,
        "Taxable": it.taxable_value,
        "CGST": it.cgst_amount,
        "SGST": it.sgst_amount,
        "IGST": it.igst_amount,
        "Total": it.total_amount,
    } for idx, it in enumerate(invoice.items)]


def _totals_row(invoice: Invoice) -> dict:
    return {
        "invoice_no": invoice.invoice_no,
        "taxable_value": invoice.total_taxable,
        "cgst": invoice.total_cgst,
        "sgst": invoice.total_sgst,
        "igst": invoice.total_igst,
        "grand_total": invoice.grand_total,
        "round_off": invoice.round_off,
        "net_payable": net_payable(invoice.grand_total),
    }


def generate_invoice_xlsx_bytes(invoice: Invoice) -> bytes:
    df = pd.DataFrame(_line_rows(invoice))
    buffer = BytesIO()

    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Items")
        totals_df = pd.DataFrame([_totals_row(invoice)])
        totals_df.to_excel(writer, index=False, sheet_name="Totals")

    buffer.seek(0)
    return buffer.getvalue()


def generate_invoice_csv_bytes(invoice: Invoice) -> bytes:
    df = pd.DataFrame(_line_rows(invoice))
    buffer = BytesIO()
    buffer.write(df.to_csv(index=False).encode("utf-8"))
    buffer.seek(0)
    return buffer.getvalue()

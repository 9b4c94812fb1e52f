import io

import pdfplumber

from invoice_totals import aggregate
from models import Invoice, LineItem, WHOLESALE
from tax_calc import compute_line


def make_line(**overrides):
    values = dict(product_id=1, name="Paracetamol 500", hsn="3004", batch="B12", expiry="12/27",
                  mrp=120.0, sale_rate=100.0, quantity=10, discount_percent=10, gst_rate=12)
    values.update(overrides)
    return LineItem(**values)


def make_invoice(lines, category=WHOLESALE, buyer_state="24", invoice_no="TI -65"):
    items = tuple(compute_line(line, "24", buyer_state) for line in lines)
    totals = aggregate(items)
    return Invoice(
        invoice_no=invoice_no,
        date="2024-03-05",
        category=category,
        party_name="City Medicals",
        party_gstin="24ABCDE1234F1Z5" if buyer_state == "24" else f"{buyer_state}ABCDE1234F1Z5",
        party_address="Station Road, Ahmedabad",
        party_state_code=buyer_state,
        items=items,
        total_taxable=totals.total_taxable,
        total_cgst=totals.total_cgst,
        total_sgst=totals.total_sgst,
        total_igst=totals.total_igst,
        grand_total=totals.grand_total,
        round_off=totals.round_off,
    )


def pdf_pages_text(data: bytes):
    """Text of each page, skipping the rotated watermark."""
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        return [
            page.filter(lambda obj: obj.get("object_type") != "char" or obj.get("upright", True)).extract_text() or ""
            for page in pdf.pages
        ]

import io
from dataclasses import replace

import pandas as pd
import pdfplumber
import pytest

from config import ProfileNotConfiguredError
from invoice_generator import (
    MARGIN, document_name, generate_invoice_csv_bytes, generate_invoice_xlsx_bytes, render_invoice_pdf,
)
from models import RETAIL
from tests.helpers import make_invoice, make_line, pdf_pages_text


@pytest.fixture
def wholesale():
    return make_invoice([
        make_line(hsn="3004"),
        make_line(product_id=2, name="Gauze Roll", hsn="3005", sale_rate=50, discount_percent=0, gst_rate=5),
    ])


@pytest.fixture
def retail():
    return make_invoice([make_line(), make_line(product_id=2, name="Gauze Roll", hsn="3005")],
                        category=RETAIL, invoice_no="RET -66")


def test_pdf_bytes(wholesale, profile):
    data = render_invoice_pdf(wholesale, profile)
    assert data.startswith(b"%PDF")


def test_rendering_is_deterministic(wholesale, profile):
    assert render_invoice_pdf(wholesale, profile) == render_invoice_pdf(wholesale, profile)


def test_missing_profile_is_fatal(wholesale):
    with pytest.raises(ProfileNotConfiguredError):
        render_invoice_pdf(wholesale, None)


def test_wholesale_uses_detailed_layout(wholesale, profile):
    (text,) = pdf_pages_text(render_invoice_pdf(wholesale, profile))
    assert "TAX INVOICE" in text
    assert "ORIGINAL FOR BUYER" in text
    assert "HSN/SAC" in text
    for header in ("SGST", "CGST", "IGST", "Disc%", "RATE"):
        assert header in text
    assert "OUR BANK DETAILS:" in text
    assert "Rs. 1533.00" in text
    assert "One Thousand Five Hundred and Thirty-Three" in text
    assert "Receiver's Signature" in text
    assert "Authorized Signatory" in text


def test_retail_uses_compact_layout(retail, profile):
    (text,) = pdf_pages_text(render_invoice_pdf(retail, profile))
    assert "RETAIL CASH MEMO" in text
    assert "GST%" in text
    assert "12%" in text
    for absent in ("SGST", "CGST", "IGST", "HSN/SAC", "Disc%", "OUR BANK DETAILS"):
        assert absent not in text
    assert "Goods once sold will not be taken back." in text
    assert "Rs. 2016.00" in text


def test_inter_state_lines_dash_out_the_halves(profile):
    invoice = make_invoice([make_line()], buyer_state="27")
    (text,) = pdf_pages_text(render_invoice_pdf(invoice, profile))
    assert "- - 108.00 1008.00" in text


@pytest.mark.parametrize("preference", ["auto", "detailed", "compact"])
def test_profile_preference_never_breaks_category_rules(wholesale, retail, profile, preference):
    profile = replace(profile, invoice_template=preference)

    (text,) = pdf_pages_text(render_invoice_pdf(wholesale, profile))
    assert "TAX INVOICE" in text
    assert "HSN/SAC" in text

    (text,) = pdf_pages_text(render_invoice_pdf(retail, profile))
    assert "RETAIL CASH MEMO" in text
    for absent in ("SGST", "CGST", "IGST"):
        assert absent not in text


def test_explicit_template_must_suit_category(wholesale, retail, profile):
    with pytest.raises(ValueError):
        render_invoice_pdf(wholesale, profile, template="compact")
    with pytest.raises(ValueError):
        render_invoice_pdf(retail, profile, template="detailed")
    (text,) = pdf_pages_text(render_invoice_pdf(retail, profile, template="compact"))
    assert "GST%" in text


def test_long_terms_continue_on_a_new_page(retail, profile):
    terms = "\n".join(f"{i}. Condition number {i} applies to every sale." for i in range(1, 71))
    data = render_invoice_pdf(retail, replace(profile, terms=terms))
    pages = pdf_pages_text(data)
    assert len(pages) > 1
    text = "".join(pages)
    assert "1. Condition number 1 applies" in text
    assert "70. Condition number 70 applies" in text
    assert "Authorized Signatory" in pages[-1]
    assert "Rs. 2016.00" in pages[0]
    # nothing is drawn outside the page border
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        for page in pdf.pages:
            assert all(ch["y0"] >= MARGIN for ch in page.chars if ch["upright"])


def test_footer_taller_than_the_rest_of_the_page_moves_whole(profile):
    lines = [make_line(product_id=i, name=f"Item {i}", hsn=str(3000 + i % 3)) for i in range(45)]
    pages = pdf_pages_text(render_invoice_pdf(make_invoice(lines), profile))
    assert len(pages) == 2
    assert "Item 44" in pages[0]
    assert "HSN/SAC" not in pages[0]
    last = pages[-1]
    for text in ("HSN/SAC", "GRAND TOTAL", "Bill Amount In Words", "Authorized Signatory"):
        assert text in last


def test_empty_invoice_still_prints(profile):
    invoice = make_invoice([])
    (text,) = pdf_pages_text(render_invoice_pdf(invoice, profile))
    assert "Rs. 0.00" in text
    assert "Zero Rupees Only" in text


def test_long_invoice_flows_to_more_pages(profile):
    lines = [make_line(product_id=i, name=f"Item {i}", hsn=str(3000 + i % 3)) for i in range(120)]
    pages = pdf_pages_text(render_invoice_pdf(make_invoice(lines), profile))
    assert len(pages) > 1
    # header row repeats on every page holding part of the table
    assert all("ITEM DESCRIPTION" in page for page in pages[:-1])
    assert "(continued, page 2)" in pages[1]
    assert "Item 119" in "".join(pages)
    assert "Authorized Signatory" in pages[-1]
    assert "Authorized Signatory" not in pages[0]


def test_document_name():
    assert document_name(make_invoice([], invoice_no="TI -65")) == "ORIGINAL_INVOICE_TI_-65.pdf"
    assert document_name(make_invoice([], invoice_no="A/12")) == "ORIGINAL_INVOICE_A_12.pdf"


def test_csv_export(wholesale):
    df = pd.read_csv(io.BytesIO(generate_invoice_csv_bytes(wholesale)))
    assert list(df["HSN"].astype(str)) == ["3004", "3005"]
    assert df["Total"].sum() == pytest.approx(1533)


def test_xlsx_export(wholesale):
    sheets = pd.read_excel(io.BytesIO(generate_invoice_xlsx_bytes(wholesale)), sheet_name=None)
    assert set(sheets) == {"Items", "Totals"}
    assert sheets["Totals"].loc[0, "net_payable"] == 1533

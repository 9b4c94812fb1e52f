from dataclasses import fields
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from models import LineItem, ComputedLineItem


def state_code_from_gstin(gstin: Optional[str], default: str) -> str:
    """First two characters of a GSTIN, or ``default`` for an unregistered party."""
    gstin = (gstin or "").strip().upper()
    if len(gstin) >= 2:
        return gstin[:2]
    return default


def is_inter_state(seller_state: str, buyer_state: Optional[str]) -> bool:
    if not buyer_state:
        return False
    return seller_state.strip().lower() != buyer_state.strip().lower()


def compute_line(item: LineItem, seller_state: str, buyer_state: Optional[str] = None) -> ComputedLineItem:
    """
    Compute tax breakdown for one invoice line.
    A sale within the seller's state splits the tax into equal CGST and SGST
    halves; a sale to another state charges it all as IGST. A buyer without
    a state code is treated as intra-state.
    Free quantity never enters the taxable base. Negative inputs are not
    rejected; the result stays arithmetically consistent.
    """
    base = item.sale_rate * item.quantity
    discount = base * item.discount_percent / 100
    taxable = base - discount
    total_tax = taxable * item.gst_rate / 100

    igst = cgst = sgst = 0.0
    if is_inter_state(seller_state, buyer_state):
        igst = total_tax
    else:
        cgst = total_tax / 2
        sgst = total_tax / 2

    line_total = taxable + cgst + sgst + igst
    values = {f.name: getattr(item, f.name) for f in fields(LineItem)}
    return ComputedLineItem(
        **values,
        taxable_value=taxable,
        cgst_amount=cgst,
        sgst_amount=sgst,
        igst_amount=igst,
        total_amount=line_total,
    )


def round_half_away(val) -> float:
    """Nearest whole currency unit, halves away from zero."""
    return float(Decimal(str(float(val))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def money(val):
    """Round to 2 decimals consistently for money values."""
    return float(Decimal(str(float(val))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))

from typing import Dict, Iterable, List, Tuple

from models import ComputedLineItem, HsnSummaryEntry, InvoiceTotals
from tax_calc import round_half_away


def hsn_summary(items: Iterable[ComputedLineItem]) -> Tuple[HsnSummaryEntry, ...]:
    """Group lines by HSN code, in order of first appearance."""
    groups: Dict[str, List[float]] = {}
    for it in items:
        acc = groups.setdefault(it.hsn, [0.0, 0.0])
        acc[0] += it.taxable_value
        acc[1] += it.sgst_amount + it.cgst_amount + it.igst_amount
    return tuple(HsnSummaryEntry(hsn=code, taxable=acc[0], tax=acc[1]) for code, acc in groups.items())


def aggregate(items: Iterable[ComputedLineItem]) -> InvoiceTotals:
    items = list(items)
    totals = {"total_taxable": 0.0, "total_cgst": 0.0, "total_sgst": 0.0, "total_igst": 0.0, "grand_total": 0.0}
    for it in items:
        totals["total_taxable"] += it.taxable_value
        totals["total_cgst"] += it.cgst_amount
        totals["total_sgst"] += it.sgst_amount
        totals["total_igst"] += it.igst_amount
        totals["grand_total"] += it.total_amount

    # informational only; the payable amount shown is round_half_away(grand_total)
    round_off = round_half_away(totals["grand_total"]) - totals["grand_total"]
    return InvoiceTotals(round_off=round_off, hsn_summary=hsn_summary(items), **totals)


def net_payable(grand_total: float) -> float:
    return round_half_away(grand_total)

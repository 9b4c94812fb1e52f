"""Print template variants.

Each variant is plain data: the item-table columns it shows and which of the
optional sections are drawn. The renderer reads these definitions and never
branches on a template name.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union

from models import ComputedLineItem, RETAIL
from utils import fmt_discount, fmt_money, fmt_qty, fmt_rate


@dataclass(frozen=True)
class Column:
    header: str
    width: float  # mm
    cell: Callable[[ComputedLineItem, int], str]
    align: str = "CENTER"
    bold: bool = False


@dataclass(frozen=True)
class TemplateSpec:
    name: str
    columns: Tuple[Column, ...]
    font_size: float
    show_hsn_summary: bool
    show_bank_details: bool
    show_terms: bool

    @property
    def headers(self):
        return [c.header for c in self.columns]


def _split_cell(attr: str, inter_state: bool) -> Callable[[ComputedLineItem, int], str]:
    """SGST/CGST show '-' on inter-state lines, IGST shows '-' on intra-state ones."""
    def cell(item: ComputedLineItem, idx: int) -> str:
        if (item.igst_amount != 0) != inter_state:
            return "-"
        return fmt_money(getattr(item, attr))
    return cell


def _sn(item, idx):
    return str(idx + 1)


DETAILED = TemplateSpec(
    name="detailed",
    font_size=6.5,
    show_hsn_summary=True,
    show_bank_details=True,
    show_terms=False,
    columns=(
        Column("S.N", 8, _sn),
        Column("ITEM DESCRIPTION", 38, lambda it, i: it.name, align="LEFT"),
        Column("Batch", 14, lambda it, i: it.batch),
        Column("Exp", 12, lambda it, i: it.expiry),
        Column("HSN", 12, lambda it, i: it.hsn),
        Column("MRP", 12, lambda it, i: fmt_money(it.mrp), align="RIGHT"),
        Column("QTY", 9, lambda it, i: fmt_qty(it.quantity)),
        Column("Fr.", 8, lambda it, i: fmt_qty(it.free_quantity)),
        Column("RATE", 12, lambda it, i: fmt_money(it.sale_rate), align="RIGHT"),
        Column("Disc%", 10, lambda it, i: fmt_discount(it.discount_percent)),
        Column("Taxable", 15, lambda it, i: fmt_money(it.taxable_value), align="RIGHT"),
        Column("SGST", 11.5, _split_cell("sgst_amount", False), align="RIGHT"),
        Column("CGST", 11.5, _split_cell("cgst_amount", False), align="RIGHT"),
        Column("IGST", 11.5, _split_cell("igst_amount", True), align="RIGHT"),
        Column("TOTAL", 11.5, lambda it, i: fmt_money(it.total_amount), align="RIGHT", bold=True),
    ),
)

COMPACT = TemplateSpec(
    name="compact",
    font_size=8,
    show_hsn_summary=False,
    show_bank_details=False,
    show_terms=True,
    columns=(
        Column("S.N", 10, _sn),
        Column("ITEM DESCRIPTION", 86, lambda it, i: it.name, align="LEFT"),
        Column("Batch", 22, lambda it, i: it.batch),
        Column("Exp", 18, lambda it, i: it.expiry),
        Column("MRP", 18, lambda it, i: fmt_money(it.mrp), align="RIGHT"),
        Column("QTY", 12, lambda it, i: fmt_qty(it.quantity)),
        Column("GST%", 12, lambda it, i: fmt_rate(it.gst_rate)),
        Column("TOTAL", 18, lambda it, i: fmt_money(it.total_amount), align="RIGHT", bold=True),
    ),
)

TEMPLATES = {t.name: t for t in (DETAILED, COMPACT)}
AUTO = "auto"

SPLIT_HEADERS = frozenset({"SGST", "CGST", "IGST"})


def fits_category(layout: TemplateSpec, category: str) -> bool:
    """A cash memo never splits tax into columns; a tax invoice always carries the HSN summary."""
    if category == RETAIL:
        return not SPLIT_HEADERS & set(layout.headers)
    return layout.show_hsn_summary


def resolve_template(category: str, requested: Optional[Union[str, TemplateSpec]] = None,
                     strict: bool = True) -> TemplateSpec:
    """Pick the layout for an invoice of ``category``.

    RETAIL prints compact and everything else detailed. A requested layout
    is used only when it suits the category; otherwise ``strict`` decides
    between raising ``ValueError`` and falling back to the category default.
    Unknown names raise ``KeyError``.
    """
    default = COMPACT if category == RETAIL else DETAILED
    if requested is None or requested == AUTO:
        return default
    layout = requested if isinstance(requested, TemplateSpec) else TEMPLATES[requested]
    if fits_category(layout, category):
        return layout
    if strict:
        raise ValueError(f"{layout.name} template cannot print a {category} invoice")
    return default

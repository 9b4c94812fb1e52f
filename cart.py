from dataclasses import replace
from datetime import date as _date
from typing import Dict, List, Optional

from models import (
    CATEGORIES, GST_RATES, WHOLESALE, CompanyProfile, ComputedLineItem,
    Invoice, LineItem, Party, Product,
)
from tax_calc import compute_line, state_code_from_gstin
from invoice_totals import aggregate


class CartError(ValueError):
    pass


class Cart:
    """Lines being composed for one invoice.

    Derived amounts are never edited directly: every change to a line
    recomputes that line, and a buyer change recomputes all of them because
    the intra/inter-state split depends on the buyer.
    """

    def __init__(self, profile: CompanyProfile, category: str = WHOLESALE, default_state_code: str = "24"):
        self.profile = profile
        self.default_state_code = default_state_code
        self.set_category(category)
        self.buyer: Optional[Party] = None
        self.items: List[ComputedLineItem] = []

    @property
    def seller_state_code(self) -> str:
        return state_code_from_gstin(self.profile.gstin, self.default_state_code)

    @property
    def buyer_state_code(self) -> str:
        if self.buyer is None:
            return self.seller_state_code
        fallback = (self.buyer.state_code or "").strip()
        if len(fallback) != 2:
            fallback = self.seller_state_code
        return state_code_from_gstin(self.buyer.gstin, fallback)

    def _compute(self, item: LineItem) -> ComputedLineItem:
        return compute_line(item, self.seller_state_code, self.buyer_state_code)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.items):
            raise CartError(f"no cart line at position {index}")

    def set_category(self, category: str) -> None:
        if category not in CATEGORIES:
            raise CartError(f"unknown invoice category {category!r}")
        self.category = category

    def set_buyer(self, party: Optional[Party]) -> None:
        self.buyer = party
        self.items = [self._compute(it) for it in self.items]

    def add_product(self, product: Product, quantity: int = 1) -> ComputedLineItem:
        if product.id is not None and any(it.product_id == product.id for it in self.items):
            raise CartError(f"product {product.name!r} is already in the cart")
        # the rate is frozen here; later profile changes do not re-tag the line
        rate = self.profile.default_gst_rate if self.profile.use_default_gst else product.gst_rate
        if rate not in GST_RATES:
            raise CartError(f"unsupported GST rate {rate}")
        line = self._compute(LineItem(
            product_id=product.id,
            name=product.name,
            hsn=product.hsn,
            batch=product.batch,
            expiry=product.expiry,
            mrp=product.mrp,
            sale_rate=product.sale_rate,
            quantity=quantity,
            gst_rate=rate,
        ))
        self.items.append(line)
        return line

    def update_item(self, index: int, **changes) -> ComputedLineItem:
        self._check_index(index)
        edited = replace(self.items[index].line_item(), **changes)
        self.items[index] = self._compute(edited)
        return self.items[index]

    def remove_item(self, index: int) -> None:
        self._check_index(index)
        del self.items[index]

    def totals(self):
        return aggregate(self.items)

    def finalize(self, invoice_no: str, date: Optional[str] = None, gr_no: str = "", vehicle_no: str = "",
                 transport: str = "", notes: str = "") -> Invoice:
        if not self.items:
            raise CartError("an invoice needs at least one line")
        if self.category == WHOLESALE and self.buyer is None:
            raise CartError("select a party for a wholesale invoice")

        totals = self.totals()
        buyer = self.buyer
        return Invoice(
            invoice_no=invoice_no,
            date=date or _date.today().isoformat(),
            category=self.category,
            party_name=buyer.name if buyer else "Cash Sale",
            party_gstin=buyer.gstin if buyer else "",
            party_address=buyer.address if buyer else "",
            party_state_code=self.buyer_state_code,
            gr_no=gr_no,
            vehicle_no=vehicle_no,
            transport=transport,
            notes=notes,
            items=tuple(self.items),
            total_taxable=totals.total_taxable,
            total_cgst=totals.total_cgst,
            total_sgst=totals.total_sgst,
            total_igst=totals.total_igst,
            grand_total=totals.grand_total,
            round_off=totals.round_off,
            status="PAID",
        )

    def clear(self) -> None:
        self.items = []
        self.buyer = None


def stock_movements(invoice: Invoice) -> Dict[int, int]:
    """Units leaving stock per product: sold plus free."""
    moves: Dict[int, int] = {}
    for it in invoice.items:
        if it.product_id is None:
            continue
        moves[it.product_id] = moves.get(it.product_id, 0) + it.quantity + it.free_quantity
    return moves

from dataclasses import dataclass, asdict, fields
from typing import Dict, Optional, Tuple

WHOLESALE = "WHOLESALE"
RETAIL = "RETAIL"
CATEGORIES = (WHOLESALE, RETAIL)

GST_RATES = (0, 5, 12, 18, 28)


def _pick(cls, data: Dict) -> Dict:
    """Keep only the keys that are fields of ``cls`` (extra keys are ignored)."""
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass(frozen=True)
class Product:
    id: Optional[int]
    name: str
    hsn: str = ""
    batch: str = ""
    expiry: str = ""
    gst_rate: float = 0
    mrp: float = 0.0
    sale_rate: float = 0.0
    purchase_rate: float = 0.0
    stock: int = 0
    manufacturer: str = ""

    @classmethod
    def from_dict(cls, data: Dict) -> "Product":
        return cls(**_pick(cls, data))


@dataclass(frozen=True)
class Party:
    name: str
    gstin: str = ""
    address: str = ""
    phone: str = ""
    state_code: str = ""
    type: str = WHOLESALE


@dataclass(frozen=True)
class LineItem:
    """One cart line as entered. Edits produce a new instance."""
    product_id: Optional[int]
    name: str
    hsn: str = ""
    batch: str = ""
    expiry: str = ""
    mrp: float = 0.0
    sale_rate: float = 0.0
    quantity: int = 0
    free_quantity: int = 0
    discount_percent: float = 0.0
    gst_rate: float = 0


@dataclass(frozen=True)
class ComputedLineItem(LineItem):
    taxable_value: float = 0.0
    cgst_amount: float = 0.0
    sgst_amount: float = 0.0
    igst_amount: float = 0.0
    total_amount: float = 0.0

    @property
    def tax_amount(self) -> float:
        return self.cgst_amount + self.sgst_amount + self.igst_amount

    def line_item(self) -> LineItem:
        return LineItem(**_pick(LineItem, asdict(self)))

    @classmethod
    def from_dict(cls, data: Dict) -> "ComputedLineItem":
        return cls(**_pick(cls, data))


@dataclass(frozen=True)
class HsnSummaryEntry:
    hsn: str
    taxable: float
    tax: float

    @property
    def net(self) -> float:
        return self.taxable + self.tax


@dataclass(frozen=True)
class InvoiceTotals:
    total_taxable: float = 0.0
    total_cgst: float = 0.0
    total_sgst: float = 0.0
    total_igst: float = 0.0
    grand_total: float = 0.0
    round_off: float = 0.0
    hsn_summary: Tuple[HsnSummaryEntry, ...] = ()

    @property
    def total_tax(self) -> float:
        return self.total_cgst + self.total_sgst + self.total_igst


@dataclass(frozen=True)
class Invoice:
    """A finalized invoice. Reprints use these items and totals verbatim."""
    invoice_no: str
    date: str
    category: str
    party_name: str
    party_gstin: str = ""
    party_address: str = ""
    party_state_code: str = ""
    gr_no: str = ""
    vehicle_no: str = ""
    transport: str = ""
    notes: str = ""
    items: Tuple[ComputedLineItem, ...] = ()
    total_taxable: float = 0.0
    total_cgst: float = 0.0
    total_sgst: float = 0.0
    total_igst: float = 0.0
    grand_total: float = 0.0
    round_off: float = 0.0
    status: str = "PAID"

    @property
    def total_tax(self) -> float:
        return self.total_sgst + self.total_cgst + self.total_igst

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["items"] = [asdict(it) for it in self.items]
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "Invoice":
        data = _pick(cls, data)
        data["items"] = tuple(ComputedLineItem.from_dict(it) for it in data.get("items", []))
        return cls(**data)


@dataclass(frozen=True)
class CompanyProfile:
    """The seller. One per installation; handed to the renderer as a snapshot."""
    name: str
    address_line1: str = ""
    address_line2: str = ""
    gstin: str = ""
    license_numbers: Tuple[str, ...] = ()
    phone: str = ""
    email: str = ""
    terms: str = ""
    jurisdiction: str = ""
    bank_name: str = ""
    bank_account_no: str = ""
    bank_ifsc: str = ""
    invoice_template: str = "auto"
    use_default_gst: bool = False
    default_gst_rate: float = 5

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["license_numbers"] = list(self.license_numbers)
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "CompanyProfile":
        data = _pick(cls, data)
        data["license_numbers"] = tuple(str(n) for n in data.get("license_numbers", ()) if n)[:4]
        return cls(**data)

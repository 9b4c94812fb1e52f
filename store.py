"""SQLite-backed storage for the profile, products and finalized invoices."""

import json
import logging
from typing import List, Optional

from sqlalchemy import (
    Column, Float, Integer, MetaData, String, Table, Text, create_engine, func, insert, select, update,
)
from sqlalchemy.exc import IntegrityError

from cart import stock_movements
from config import ProfileNotConfiguredError, load_profile_file
from models import RETAIL, CompanyProfile, Invoice, Product

logger = logging.getLogger(__name__)

PROFILE_KEY = 1

metadata = MetaData()

settings_table = Table(
    "settings", metadata,
    Column("id", Integer, primary_key=True),
    Column("payload", Text, nullable=False),
)

products_table = Table(
    "products", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("hsn", String, default=""),
    Column("batch", String, default=""),
    Column("expiry", String, default=""),
    Column("gst_rate", Float, default=0),
    Column("mrp", Float, default=0),
    Column("sale_rate", Float, default=0),
    Column("purchase_rate", Float, default=0),
    Column("stock", Integer, default=0),
    Column("manufacturer", String, default=""),
)

invoices_table = Table(
    "invoices", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("invoice_no", String, nullable=False, unique=True),
    Column("date", String, nullable=False),
    Column("category", String, nullable=False),
    Column("party_name", String, nullable=False),
    Column("grand_total", Float, nullable=False),
    Column("payload", Text, nullable=False),
)


class DuplicateInvoiceError(ValueError):
    pass


class BillingStore:
    def __init__(self, url: str = "sqlite:///billing.db"):
        self.engine = create_engine(url)

    def init_schema(self) -> None:
        metadata.create_all(self.engine)

    # --- profile (single row, fixed key) ---

    def get_profile(self) -> CompanyProfile:
        with self.engine.connect() as conn:
            payload = conn.execute(
                select(settings_table.c.payload).where(settings_table.c.id == PROFILE_KEY)
            ).scalar_one_or_none()
        if payload is None:
            raise ProfileNotConfiguredError("no company profile configured")
        return CompanyProfile.from_dict(json.loads(payload))

    def save_profile(self, profile: CompanyProfile) -> None:
        payload = json.dumps(profile.to_dict())
        with self.engine.begin() as conn:
            updated = conn.execute(
                update(settings_table).where(settings_table.c.id == PROFILE_KEY).values(payload=payload)
            ).rowcount
            if not updated:
                conn.execute(insert(settings_table).values(id=PROFILE_KEY, payload=payload))

    def seed_profile(self, path) -> bool:
        """Store the profile from ``path`` unless one is already configured."""
        try:
            self.get_profile()
            return False
        except ProfileNotConfiguredError:
            pass
        self.save_profile(load_profile_file(path))
        logger.info("Seeded company profile from %s", path)
        return True

    # --- products ---

    def add_product(self, product: Product) -> Product:
        values = {k: v for k, v in vars(product).items() if k != "id"}
        with self.engine.begin() as conn:
            new_id = conn.execute(insert(products_table).values(**values)).inserted_primary_key[0]
        return Product(id=new_id, **values)

    def get_product(self, product_id: int) -> Optional[Product]:
        with self.engine.connect() as conn:
            row = conn.execute(select(products_table).where(products_table.c.id == product_id)).mappings().first()
        return Product.from_dict(dict(row)) if row else None

    def list_products(self) -> List[Product]:
        with self.engine.connect() as conn:
            rows = conn.execute(select(products_table).order_by(products_table.c.name)).mappings().all()
        return [Product.from_dict(dict(r)) for r in rows]

    # --- invoices ---

    def save_invoice(self, invoice: Invoice) -> None:
        """Persist ``invoice`` and take its units out of stock, all or nothing."""
        moves = stock_movements(invoice)
        try:
            with self.engine.begin() as conn:
                conn.execute(insert(invoices_table).values(
                    invoice_no=invoice.invoice_no,
                    date=invoice.date,
                    category=invoice.category,
                    party_name=invoice.party_name,
                    grand_total=invoice.grand_total,
                    payload=json.dumps(invoice.to_dict()),
                ))
                for product_id, units in moves.items():
                    changed = conn.execute(
                        update(products_table)
                        .where(products_table.c.id == product_id)
                        .values(stock=products_table.c.stock - units)
                    ).rowcount
                    if not changed:
                        logger.warning("Product %s on invoice %s no longer exists; stock not adjusted",
                                       product_id, invoice.invoice_no)
        except IntegrityError as e:
            raise DuplicateInvoiceError(f"invoice {invoice.invoice_no!r} already exists") from e
        logger.info("Saved invoice %s (%d lines, %d products moved)",
                    invoice.invoice_no, len(invoice.items), len(moves))

    def get_invoice(self, invoice_no: str) -> Optional[Invoice]:
        with self.engine.connect() as conn:
            payload = conn.execute(
                select(invoices_table.c.payload).where(invoices_table.c.invoice_no == invoice_no)
            ).scalar_one_or_none()
        return Invoice.from_dict(json.loads(payload)) if payload else None

    def list_invoices(self) -> List[Invoice]:
        with self.engine.connect() as conn:
            rows = conn.execute(select(invoices_table.c.payload).order_by(invoices_table.c.id.desc())).scalars().all()
        return [Invoice.from_dict(json.loads(p)) for p in rows]

    def next_invoice_no(self, category: str) -> str:
        with self.engine.connect() as conn:
            count = conn.execute(select(func.count()).select_from(invoices_table)).scalar_one()
        prefix = "RET" if category == RETAIL else "TI"
        return f"{prefix} -{count + 65}"

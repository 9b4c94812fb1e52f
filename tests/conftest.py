import pytest

from models import CompanyProfile, Product


@pytest.fixture
def profile():
    return CompanyProfile(
        name="ACME PHARMA",
        address_line1="12 Relief Road",
        address_line2="Ahmedabad 380001",
        gstin="24AADPO7411Q1ZE",
        license_numbers=("GJ-1946", "GJ-4967"),
        phone="07925383834, 8460143984",
        terms="Goods once sold will not be taken back.\nE.&.O.E.",
        jurisdiction="Ahmedabad",
        bank_name="HDFC BANK LTD",
        bank_account_no="50200021458796",
        bank_ifsc="HDFC0001425",
    )


@pytest.fixture
def product():
    return Product(id=1, name="Paracetamol 500", hsn="3004", batch="B12", expiry="12/27",
                   gst_rate=12, mrp=120.0, sale_rate=100.0, stock=50)

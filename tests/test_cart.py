from dataclasses import FrozenInstanceError, replace

import pytest

from cart import Cart, CartError, stock_movements
from models import RETAIL, WHOLESALE, Party, Product


@pytest.fixture
def gauze():
    return Product(id=2, name="Gauze Roll", hsn="3005", gst_rate=5, mrp=60.0, sale_rate=50.0, stock=20)


def test_add_product_computes_line(profile, product):
    cart = Cart(profile)
    line = cart.add_product(product, quantity=10)
    assert line.taxable_value == 1000
    assert line.cgst_amount == line.sgst_amount == 60
    assert line.gst_rate == 12


def test_duplicate_product_rejected(profile, product):
    cart = Cart(profile)
    cart.add_product(product)
    with pytest.raises(CartError):
        cart.add_product(product)


def test_update_recomputes_line(profile, product):
    cart = Cart(profile)
    cart.add_product(product)
    line = cart.update_item(0, quantity=10, discount_percent=10, free_quantity=2)
    assert line.taxable_value == 900
    assert line.total_amount == 1008
    assert line.free_quantity == 2


def test_buyer_change_recomputes_every_line(profile, product, gauze):
    cart = Cart(profile)
    cart.add_product(product, quantity=10)
    cart.add_product(gauze, quantity=10)
    cart.set_buyer(Party(name="Mumbai Pharma", gstin="27ABCDE1234F1Z5"))
    assert all(it.igst_amount > 0 and it.cgst_amount == 0 for it in cart.items)
    cart.set_buyer(Party(name="Local Chemist", gstin="24ABCDE1234F1Z5"))
    assert all(it.igst_amount == 0 and it.cgst_amount > 0 for it in cart.items)


def test_unregistered_buyer_uses_explicit_state_code(profile, product):
    cart = Cart(profile)
    cart.add_product(product, quantity=1)
    cart.set_buyer(Party(name="Walk-in", state_code="27"))
    assert cart.buyer_state_code == "27"
    cart.set_buyer(Party(name="Walk-in"))
    assert cart.buyer_state_code == "24"
    assert cart.items[0].igst_amount == 0


def test_seller_without_gstin_uses_default_state(profile):
    cart = Cart(replace(profile, gstin=""), default_state_code="09")
    assert cart.seller_state_code == "09"


def test_default_gst_rate_is_frozen_at_add_time(profile, product, gauze):
    cart = Cart(replace(profile, use_default_gst=True, default_gst_rate=5))
    cart.add_product(product)
    cart.profile = replace(cart.profile, use_default_gst=False)
    cart.add_product(gauze)
    cart.set_buyer(Party(name="Local Chemist", gstin="24ABCDE1234F1Z5"))
    assert [it.gst_rate for it in cart.items] == [5, 5]


def test_unsupported_rate_rejected(profile):
    cart = Cart(profile)
    with pytest.raises(CartError):
        cart.add_product(Product(id=9, name="Odd", gst_rate=7))


def test_remove_and_bad_index(profile, product):
    cart = Cart(profile)
    cart.add_product(product)
    cart.remove_item(0)
    assert cart.items == []
    with pytest.raises(CartError):
        cart.update_item(0, quantity=2)


def test_finalize_wholesale_requires_buyer(profile, product):
    cart = Cart(profile, category=WHOLESALE)
    cart.add_product(product)
    with pytest.raises(CartError):
        cart.finalize("TI -65")


def test_finalize_rejects_empty_cart(profile):
    with pytest.raises(CartError):
        Cart(profile, category=RETAIL).finalize("RET -65")


def test_finalize_retail_cash_sale(profile, product, gauze):
    cart = Cart(profile, category=RETAIL)
    cart.add_product(product, quantity=10)
    cart.add_product(gauze, quantity=10)
    cart.update_item(0, discount_percent=10)
    invoice = cart.finalize("RET -65", date="2024-03-05", notes="paid in cash")
    assert invoice.party_name == "Cash Sale"
    assert invoice.party_state_code == "24"
    assert invoice.category == RETAIL
    assert invoice.grand_total == 1533
    assert invoice.round_off == 0
    assert invoice.total_taxable == 1400
    assert len(invoice.items) == 2
    with pytest.raises(FrozenInstanceError):
        invoice.grand_total = 0


def test_unknown_category(profile):
    with pytest.raises(CartError):
        Cart(profile, category="EXPORT")


def test_stock_movements_include_free_units(profile, product, gauze):
    cart = Cart(profile, category=RETAIL)
    cart.add_product(product, quantity=3)
    cart.add_product(gauze, quantity=1)
    cart.update_item(0, free_quantity=2)
    assert stock_movements(cart.finalize("RET -65")) == {1: 5, 2: 1}

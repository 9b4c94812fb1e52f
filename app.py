import logging

import streamlit as st
import pandas as pd
from datetime import date

from cart import Cart, CartError
from config import ProfileNotConfiguredError, configure_logging, get_settings
from invoice_generator import (
    document_name, generate_invoice_csv_bytes, generate_invoice_xlsx_bytes, render_invoice_pdf,
)
from invoice_totals import net_payable
from models import GST_RATES, RETAIL, WHOLESALE, Party, Product
from store import BillingStore, DuplicateInvoiceError

# ---------------------------------------------------
# PAGE CONFIG
# ---------------------------------------------------
st.set_page_config(page_title="GST Billing", layout="wide")

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@st.cache_resource
def get_store() -> BillingStore:
    store = BillingStore(settings.database_url)
    store.init_schema()
    try:
        store.seed_profile(settings.profile_path)
    except ProfileNotConfiguredError as e:
        logger.warning("Profile not seeded: %s", e)
    return store


store = get_store()

try:
    profile = store.get_profile()
except ProfileNotConfiguredError:
    st.error(f"No company profile configured. Create {settings.profile_path} and restart.")
    st.stop()

# ---------------------------------------------------
# CUSTOM CSS STYLING
# ---------------------------------------------------
st.markdown("""
    <style>
        .main, .stApp {
            background-color: #f7faff;
        }
        h1, h2, h3, h4 {
            color: #0b5394;
        }
        .company-header {
            text-align: center;
            background-color: #008000;
            color: white;
            padding: 15px 0;
            border-radius: 10px;
        }
        .company-header h2 {
            margin: 0;
            font-weight: 700;
        }
        .company-header p {
            margin: 2px 0;
            font-size: 13px;
        }
        .section-title {
            font-size: 22px;
            color: #008000;
            font-weight: 700;
            border-bottom: 2px solid #008000;
            margin-bottom: 12px;
            padding-bottom: 4px;
        }
        .summary-box {
            background-color: #eaf1fb;
            padding: 12px 18px;
            border-radius: 8px;
            font-weight: 600;
            margin-top: 15px;
            border-left: 4px solid #0b5394;
        }
    </style>
""", unsafe_allow_html=True)

# ---------------------------------------------------
# COMPANY HEADER
# ---------------------------------------------------
st.markdown(f"""
<div class="company-header">
    <h2>{profile.name}</h2>
    <p>{profile.address_line1}, {profile.address_line2}</p>
    <p>GSTIN: {profile.gstin} | 📞 {profile.phone}</p>
</div>
""", unsafe_allow_html=True)

# ---------------------------------------------------
# PRODUCTS (minimal entry so there is something to sell)
# ---------------------------------------------------
with st.sidebar.expander("➕ Add Product"):
    with st.form("add_product", clear_on_submit=True):
        p_name = st.text_input("Name")
        p_hsn = st.text_input("HSN")
        p_batch = st.text_input("Batch")
        p_expiry = st.text_input("Expiry (MM/YY)")
        p_rate = st.selectbox("GST %", GST_RATES, index=2)
        p_mrp = st.number_input("MRP", min_value=0.0, step=0.01)
        p_sale = st.number_input("Sale Rate", min_value=0.0, step=0.01)
        p_stock = st.number_input("Stock", min_value=0, step=1)
        if st.form_submit_button("Save Product") and p_name:
            store.add_product(Product(id=None, name=p_name, hsn=p_hsn, batch=p_batch, expiry=p_expiry,
                                      gst_rate=p_rate, mrp=p_mrp, sale_rate=p_sale, stock=int(p_stock)))
            st.success(f"Added {p_name}")

# ---------------------------------------------------
# NEW INVOICE
# ---------------------------------------------------
st.markdown('<div class="section-title">New Invoice</div>', unsafe_allow_html=True)

if "cart" not in st.session_state:
    st.session_state.cart = Cart(profile, default_state_code=settings.default_state_code)
cart: Cart = st.session_state.cart

category = st.radio("Invoice Type", [WHOLESALE, RETAIL], horizontal=True,
                    index=0 if cart.category == WHOLESALE else 1)
cart.set_category(category)

col1, col2 = st.columns(2)
with col1:
    buyer_name = st.text_input("Party Name", value=cart.buyer.name if cart.buyer else "")
    buyer_gstin = st.text_input("Party GSTIN", value=cart.buyer.gstin if cart.buyer else "")
    buyer_address = st.text_area("Party Address", value=cart.buyer.address if cart.buyer else "")
with col2:
    invoice_no = st.text_input("Invoice No.", value=store.next_invoice_no(category))
    invoice_date = st.date_input("Date", value=date.today())
    gr_no = st.text_input("GR No.")
    transport = st.text_input("Transport")
    vehicle_no = st.text_input("Vehicle No.")
notes = st.text_input("Notes")

buyer = Party(name=buyer_name, gstin=buyer_gstin.strip(), address=buyer_address, type=category) if buyer_name else None
if buyer != cart.buyer:
    cart.set_buyer(buyer)

products = store.list_products()
if products:
    choice = st.selectbox("Add Item", products, format_func=lambda p: f"{p.name} | {p.batch} | stock {p.stock}",
                          key="pick_product")
    if st.button("➕ Add to Invoice", key="add_item"):
        try:
            cart.add_product(choice)
        except CartError as e:
            st.warning(str(e))
else:
    st.info("No products yet. Add one from the sidebar.")

LINE_FIELDS = ("qty", "free", "rate", "disc")


def line_key(field, item):
    # keyed by product so widget state follows the line, not its position
    return f"{field}_{item.product_id}"


def forget_line(item):
    for field in LINE_FIELDS:
        st.session_state.pop(line_key(field, item), None)


for i, it in enumerate(list(cart.items)):
    c1, c2, c3, c4, c5, c6 = st.columns([4, 1, 1, 1, 1, 1])
    c1.write(f"**{i + 1}. {it.name}** ({it.hsn or '-'}, {it.gst_rate:.0f}%)")
    qty = c2.number_input("Qty", min_value=0, value=int(it.quantity), key=line_key("qty", it))
    free = c3.number_input("Free", min_value=0, value=int(it.free_quantity), key=line_key("free", it))
    rate = c4.number_input("Rate", min_value=0.0, value=float(it.sale_rate), key=line_key("rate", it))
    disc = c5.number_input("Disc%", min_value=0.0, max_value=100.0, value=float(it.discount_percent),
                           key=line_key("disc", it))
    if (qty, free, rate, disc) != (it.quantity, it.free_quantity, it.sale_rate, it.discount_percent):
        cart.update_item(i, quantity=int(qty), free_quantity=int(free), sale_rate=rate, discount_percent=disc)
    if c6.button("🗑️", key=line_key("del", it)):
        cart.remove_item(i)
        forget_line(it)
        st.rerun()

if cart.items:
    totals = cart.totals()
    st.dataframe(pd.DataFrame([{
        "Item": it.name, "Taxable": it.taxable_value, "CGST": it.cgst_amount,
        "SGST": it.sgst_amount, "IGST": it.igst_amount, "Total": it.total_amount,
    } for it in cart.items]), use_container_width=True)
    st.markdown(f"""
    <div class="summary-box">
        Subtotal: ₹{totals.total_taxable:.2f}<br>
        CGST: ₹{totals.total_cgst:.2f} | SGST: ₹{totals.total_sgst:.2f} | IGST: ₹{totals.total_igst:.2f}<br>
        <b>Grand Total: ₹{net_payable(totals.grand_total):.2f}</b> (round off {totals.round_off:+.2f})
    </div>
    """, unsafe_allow_html=True)

if st.button("Save Invoice"):
    try:
        invoice = cart.finalize(invoice_no, date=invoice_date.isoformat(), gr_no=gr_no,
                                vehicle_no=vehicle_no, transport=transport, notes=notes)
        store.save_invoice(invoice)
    except (CartError, DuplicateInvoiceError) as e:
        st.error(str(e))
    else:
        st.session_state.last_invoice = invoice.invoice_no
        for it in invoice.items:
            forget_line(it)
        cart.clear()
        st.success(f"✅ Invoice {invoice.invoice_no} saved")

# ---------------------------------------------------
# INVOICE HISTORY / REPRINT
# ---------------------------------------------------
st.markdown('<div class="section-title">Invoice History</div>', unsafe_allow_html=True)

invoices = store.list_invoices()
if not invoices:
    st.info("📝 No invoices saved yet.")
else:
    st.dataframe(pd.DataFrame([{
        "Date": inv.date, "Invoice No": inv.invoice_no, "Party": inv.party_name,
        "Items": len(inv.items), "Grand Total": net_payable(inv.grand_total),
    } for inv in invoices]), use_container_width=True)

    numbers = [inv.invoice_no for inv in invoices]
    last = st.session_state.get("last_invoice")
    selected = st.selectbox("Reprint", numbers, index=numbers.index(last) if last in numbers else 0)
    # reprints always come from the stored record, never from current product data
    invoice = store.get_invoice(selected)

    col1, col2, col3 = st.columns(3)
    with col1:
        st.download_button("📄 Download Invoice (PDF)",
                           data=render_invoice_pdf(invoice, store.get_profile()),
                           file_name=document_name(invoice),
                           mime="application/pdf")
    with col2:
        st.download_button("📊 Download Lines (CSV)",
                           data=generate_invoice_csv_bytes(invoice),
                           file_name=f"invoice_{selected}.csv",
                           mime="text/csv")
    with col3:
        st.download_button("⬇️ Download Lines (Excel)",
                           data=generate_invoice_xlsx_bytes(invoice),
                           file_name=f"invoice_{selected}.xlsx",
                           mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")

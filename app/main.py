import sys
import os
import streamlit as st

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from shop_core.auth import StaticSecretVerifier
from shop_core.cart import (
    add_to_cart,
    cart_count,
    clear_cart,
    materialize,
    remove_from_cart,
    set_quantity,
)
from shop_core.checkout import validate_checkout
from shop_core.config import configure_logging, load_settings
from shop_core.domain import ORDER_STATUSES, STATUS_CANCELLED, Cart
from shop_core.pricing import compute_totals, format_price, line_total
from shop_core.service import SORT_OPTIONS, CatalogService, OrderService
from shop_core.storage import JsonFileStore, SystemClock, seed_products
from Admin_Service.admin import AdminService
from Admin_Service.export import export_filename

GOVERNORATES = (
    "Tunis", "Ariana", "Ben Arous", "Manouba", "Bizerte", "Nabeul", "Zaghouan",
    "Beja", "Jendouba", "Kef", "Siliana", "Sousse", "Monastir", "Mahdia",
    "Sfax", "Kairouan", "Kasserine", "Sidi Bouzid", "Gabes", "Medenine",
    "Tataouine", "Gafsa", "Tozeur", "Kebili",
)


# ============ Сборка сервисов ============
@st.cache_resource
def get_services():
    settings = load_settings()
    configure_logging(settings.log_level)

    products_store = JsonFileStore(os.path.join(settings.data_dir, "products.json"))
    orders_store = JsonFileStore(os.path.join(settings.data_dir, "orders.json"))
    seed_products(products_store, SystemClock())

    orders = OrderService(products_store, orders_store)
    admin = AdminService(
        products_store,
        orders,
        StaticSecretVerifier(settings.admin_secret),
        StaticSecretVerifier(settings.product_action_secret),
    )
    return settings, CatalogService(products_store), orders, admin


st.set_page_config(page_title="TND Shop", page_icon="🛒", layout="wide")

settings, catalog, order_service, admin = get_services()

if "cart" not in st.session_state:
    st.session_state.cart = Cart()
if "admin_secret" not in st.session_state:
    st.session_state.admin_secret = ""


def show_error(result):
    st.error(f"❌ {result.value['error']}")


# ============ SIDEBAR ============
with st.sidebar:
    st.header("🛒 TND Shop")
    page = st.radio(
        "Раздел:",
        ["🏪 Shop", f"🛒 Cart ({cart_count(st.session_state.cart)})", "✅ Checkout", "🔐 Admin"],
        label_visibility="collapsed",
    )


# ============ PAGE: SHOP ============
if page == "🏪 Shop":
    st.header("🏪 Shop")

    col1, col2, col3 = st.columns(3)
    with col1:
        search = st.text_input("🔍 Search")
    with col2:
        category = st.selectbox("📂 Category", ["All"] + list(catalog.categories()))
    with col3:
        sort = st.selectbox("↕️ Sort", SORT_OPTIONS)

    found = catalog.browse(search, "" if category == "All" else category, sort)
    if not found:
        st.warning("No products found.")

    for p in found:
        cols = st.columns([5, 2, 2, 2])
        with cols[0]:
            st.markdown(f"**{p.name}**")
            st.caption(p.description)
        with cols[1]:
            st.write(format_price(p.price))
            st.caption(f"{p.stock} in stock" if p.stock > 0 else "Out of stock")
        with cols[2]:
            qty = st.number_input(
                "Qty", min_value=1, value=1, key=f"qty_{p.id}", label_visibility="collapsed"
            )
        with cols[3]:
            if st.button("➕ Add to Cart", key=f"add_{p.id}", disabled=p.stock <= 0):
                result = add_to_cart(st.session_state.cart, catalog.all_products(), p.id, qty)
                if result.is_right:
                    st.session_state.cart = result.value
                    st.success(f"✅ {p.name} × {qty}")
                else:
                    show_error(result)
        st.divider()


# ============ PAGE: CART ============
elif page.startswith("🛒 Cart"):
    st.header("🛒 Your cart")
    products = catalog.all_products()
    lines = materialize(st.session_state.cart, products)

    if not lines:
        st.info("🛍️ Your cart is empty.")
    else:
        for line in lines:
            cols = st.columns([5, 2, 2, 1])
            with cols[0]:
                st.write(f"**{line.name}**")
                st.caption(f"Unit: {format_price(line.price)} | Stock: {line.product.stock}")
            with cols[1]:
                new_qty = st.number_input(
                    "Qty", min_value=0, value=line.cart_qty, key=f"cart_{line.id}",
                    label_visibility="collapsed",
                )
                if new_qty != line.cart_qty:
                    st.session_state.cart = set_quantity(
                        st.session_state.cart, products, line.id, new_qty
                    )
                    st.rerun()
            with cols[2]:
                st.write(format_price(line_total(line)))
            with cols[3]:
                if st.button("🗑️", key=f"remove_{line.id}"):
                    st.session_state.cart = remove_from_cart(st.session_state.cart, line.id)
                    st.rerun()

        totals = compute_totals(lines, settings)
        st.divider()
        st.write(f"Subtotal: **{format_price(totals.subtotal)}**")
        st.write(f"Delivery fee: **{format_price(totals.delivery_fee)}**")
        st.markdown(f"### 💰 Grand total: **{format_price(totals.total)}**")
        if st.button("Clear cart"):
            st.session_state.cart = clear_cart(st.session_state.cart)
            st.rerun()


# ============ PAGE: CHECKOUT ============
elif page == "✅ Checkout":
    st.header("✅ Checkout: Cash on Delivery")

    with st.form("checkout"):
        col1, col2 = st.columns(2)
        with col1:
            full_name = st.text_input("Full Name *")
            email = st.text_input("Email (optional)")
            city = st.text_input("City *")
        with col2:
            phone = st.text_input("Phone *")
            governorate = st.selectbox("Governorate *", [""] + list(GOVERNORATES))
            postal_code = st.text_input("Postal Code *")
        address = st.text_input("Address *")
        notes = st.text_area("Order Notes")
        submitted = st.form_submit_button("Place Order", type="primary")

    if submitted:
        form = {
            "fullName": full_name,
            "phone": phone,
            "email": email,
            "address": address,
            "city": city,
            "governorate": governorate,
            "postalCode": postal_code,
            "notes": notes,
        }
        checked = validate_checkout(
            form, st.session_state.cart, catalog.public_products(), settings
        )
        placed = checked.bind(order_service.place_order)
        if placed.is_right:
            order, st.session_state.cart = placed.value
            st.success(
                f"🎉 Order placed successfully! You will pay cash on delivery ({format_price(order.total)})."
            )
        else:
            show_error(placed)


# ============ PAGE: ADMIN ============
elif page == "🔐 Admin":
    st.header("🔐 Admin")

    if not admin.login(st.session_state.admin_secret):
        secret = st.text_input("Admin password", type="password")
        if st.button("Login"):
            if admin.login(secret):
                st.session_state.admin_secret = secret
                st.rerun()
            else:
                st.error("Invalid password")
        st.stop()

    secret = st.session_state.admin_secret
    if st.button("Logout"):
        st.session_state.admin_secret = ""
        st.rerun()

    summary = admin.dashboard(secret).get_or_else({})
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("💰 Revenue (completed)", format_price(summary.get("total_revenue", 0)))
    with col2:
        st.metric("🧾 Orders", summary.get("total_orders", 0))
    with col3:
        st.metric("📦 Items sold", summary.get("items_sold", 0))

    if summary.get("bestsellers"):
        st.subheader("🏆 Bestsellers")
        st.table(summary["bestsellers"])

    tab_products, tab_orders = st.tabs(["📦 Products", "🧾 Orders"])

    with tab_products:
        with st.form("product"):
            pid = st.text_input("ID (empty = new product)")
            name = st.text_input("Name *")
            category = st.text_input("Category")
            price = st.text_input("Price (TND) *")
            stock = st.text_input("Stock *")
            image_url = st.text_input("Image URL")
            description = st.text_area("Description")
            if st.form_submit_button("Save product"):
                result = admin.save_product(
                    secret,
                    {
                        "id": pid, "name": name, "category": category, "price": price,
                        "stock": stock, "imageUrl": image_url, "description": description,
                    },
                )
                if result.is_right:
                    st.success("Product saved successfully!")
                else:
                    show_error(result)

        only_visible = st.checkbox("Show only visible")
        for p in admin.list_products(secret, only_visible).get_or_else(()):
            cols = st.columns([4, 2, 1, 1, 1, 1, 2])
            cols[0].write(f"**{p.name}** `{p.id}`")
            cols[1].write(format_price(p.price))
            cols[2].write(str(p.stock))
            if cols[3].button("+1", key=f"inc_{p.id}"):
                admin.adjust_stock(secret, p.id, 1)
                st.rerun()
            if cols[4].button("-1", key=f"dec_{p.id}"):
                admin.adjust_stock(secret, p.id, -1)
                st.rerun()
            if cols[5].button("Hide" if p.active else "Show", key=f"vis_{p.id}"):
                admin.toggle_visibility(secret, p.id)
                st.rerun()
            with cols[6].popover("Delete"):
                pwd = st.text_input("Product action password", type="password", key=f"pwd_{p.id}")
                if st.button("Confirm delete", key=f"del_{p.id}"):
                    result = admin.delete_product(secret, p.id, pwd)
                    if result.is_right:
                        st.rerun()
                    show_error(result)

    with tab_orders:
        col1, col2 = st.columns(2)
        with col1:
            status_filter = st.selectbox("Status", ["All statuses"] + list(ORDER_STATUSES))
        with col2:
            query = st.text_input("Search id / name / phone")
        status = None if status_filter == "All statuses" else status_filter

        csv_text = admin.export_orders(secret, status, query).get_or_else("")
        st.download_button(
            "Export CSV", csv_text, file_name=export_filename(SystemClock().now()), mime="text/csv"
        )

        for order in admin.list_orders(secret, status, query).get_or_else(()):
            with st.expander(f"{order.id[-8:]} | {order.customer.full_name} | {order.status}"):
                st.write(f"{order.customer.phone} · {order.customer.address}, {order.customer.city}")
                st.write(", ".join(f"{i.name} x{i.qty}" for i in order.items))
                st.write(f"Total: **{format_price(order.total)}**")
                restock = st.checkbox("Restock", key=f"restock_{order.id}")
                for col, new_status in zip(st.columns(len(ORDER_STATUSES)), ORDER_STATUSES):
                    if col.button(new_status, key=f"{new_status}_{order.id}"):
                        result = admin.update_order_status(
                            secret, order.id, new_status, restock and new_status == STATUS_CANCELLED
                        )
                        if result.is_right:
                            st.rerun()
                        show_error(result)

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from qrmenu.main import app
from qrmenu.routes.deps import ADMIN_COOKIE, CART_COOKIE
from qrmenu.services.backend import get_backend_client
from qrmenu.services.payment import get_payment_service


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def login(client, username="admin", password="admin123"):
    response = client.post("/admin/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response


def order_at_table(client, table="5"):
    """A guest orders two Nasi Goreng and pays at the cashier."""
    client.post(f"/menu/{table}/cart/add", json={"menu_item_id": 1})
    client.post(f"/menu/{table}/cart/add", json={"menu_item_id": 1})
    response = client.post(f"/menu/{table}/checkout", json={"payment_method": "cashier"})
    assert response.status_code == 200, response.text
    return response.json()["order"]["order_id"]


def report_range():
    today = date.today()
    return {
        "start_date": (today - timedelta(days=1)).isoformat(),
        "end_date": (today + timedelta(days=1)).isoformat(),
    }


class TestRootAndHealth:
    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["environment"] == "development"

    def test_health(self, client):
        data = client.get("/health").json()

        assert data["status"] == "operational"
        assert data["backend_service"] == "healthy"
        assert data["payment_service"] == "healthy"
        assert data["active_admin_sessions"] == 0


class TestCustomerMenu:
    def test_menu_groups_available_items_and_sets_cookie(self, client):
        response = client.get("/menu/Meja 5")

        assert response.status_code == 200
        data = response.json()
        assert data["table_number"] == "5"
        assert data["categories"][0]["display_name"] == "MAKANAN - NASI"
        ids = [item["id_menu"] for group in data["categories"] for item in group["items"]]
        assert 8 not in ids
        assert CART_COOKIE in client.cookies

    def test_menu_without_table_uses_default(self, client):
        assert client.get("/menu").json()["table_number"] == "1"

    def test_options_and_cart(self, client):
        chosen = client.put("/menu/5/selections/3", json={"option": "spiciness", "value": "Pedas"})
        assert chosen.json()["options"] == {"spiciness": "pedas", "temperature": ""}

        client.post("/menu/5/cart/add", json={"menu_item_id": 3})
        cart = client.post("/menu/5/cart/add", json={"menu_item_id": 3}).json()["cart"]
        assert cart["total_items"] == 2
        assert cart["total_price"] == 44000

        cart = client.post(
            "/menu/5/cart/remove", json={"menu_item_id": 3, "spiciness": "pedas"},
        ).json()["cart"]
        assert cart["total_items"] == 1

    def test_missing_option_is_rejected(self, client):
        response = client.post("/menu/5/cart/add", json={"menu_item_id": 5})

        assert response.status_code == 422
        assert response.json() == {
            "success": False,
            "error": "Silakan pilih dingin/tidak dingin untuk Kopi Susu Gula Aren!",
        }

    def test_unavailable_item(self, client):
        response = client.post("/menu/5/cart/add", json={"menu_item_id": 8})

        assert response.status_code == 400
        assert response.json()["error"] == "Kentang Goreng sedang tidak tersedia"

    def test_carts_are_per_table(self, client):
        client.post("/menu/5/cart/add", json={"menu_item_id": 1})

        assert client.get("/menu/6/cart").json()["cart"]["total_items"] == 0
        assert client.get("/menu/5/cart").json()["cart"]["total_items"] == 1

    def test_cashier_checkout(self, client):
        client.post("/menu/5/cart/add", json={"menu_item_id": 1})
        response = client.post("/menu/5/checkout", json={"payment_method": "cashier"})

        assert response.status_code == 200
        assert response.json()["message"] == (
            "Pesanan berhasil dibuat dengan ID: 1001. Silakan lakukan pembayaran di kasir."
        )
        assert client.get("/menu/5/cart").json()["cart"]["total_items"] == 0

    def test_empty_checkout(self, client):
        response = client.post("/menu/5/checkout", json={"payment_method": "cashier"})

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_online_checkout_success(self, client):
        client.post("/menu/5/cart/add", json={"menu_item_id": 1})
        started = client.post("/menu/5/checkout", json={"payment_method": "online"}).json()
        checkout_id = started["checkout"]["checkout_id"]
        assert started["payment"]["snap_url"].endswith("snap.js")
        assert get_payment_service().transactions[0]["custom_field1"] == "5"

        response = client.post("/menu/5/checkout/callback", json={
            "checkout_id": checkout_id,
            "outcome": "success",
            "transaction_id": "tx-99",
        })

        assert response.status_code == 200
        order = response.json()["order"]
        assert order["payment_status"] == "Sudah Bayar"
        assert order["transaction_id"] == "tx-99"
        assert client.get("/menu/5/cart").json()["pending_checkout"] is None

    def test_closed_payment_keeps_cart(self, client):
        client.post("/menu/5/cart/add", json={"menu_item_id": 1})
        started = client.post("/menu/5/checkout", json={"payment_method": "online"}).json()
        callback = {"checkout_id": started["checkout"]["checkout_id"], "outcome": "close"}

        response = client.post("/menu/5/checkout/callback", json=callback)

        assert response.status_code == 402
        assert response.json()["error"] == "Pembayaran dibatalkan."
        assert client.get("/menu/5/cart").json()["cart"]["total_items"] == 1
        assert client.post("/menu/5/checkout/callback", json=callback).status_code == 404


class TestAdminAuth:
    def test_requires_login(self, client):
        response = client.get("/admin/orders")

        assert response.status_code == 401
        assert response.json()["error"] == "Sesi berakhir, silakan login kembali"

    def test_wrong_password(self, client):
        response = client.post("/admin/login", json={"username": "admin", "password": "salah"})

        assert response.status_code == 401

    def test_login_and_logout(self, client):
        response = login(client)

        assert response.json()["message"] == "Login berhasil sebagai admin!"
        assert ADMIN_COOKIE in client.cookies
        assert client.get("/admin/session").json()["is_admin"] is True

        client.post("/admin/logout")
        assert client.get("/admin/session").status_code == 401

    def test_expired_token_logs_out(self, client):
        login(client)
        session = app.state.admin_sessions.get(client.cookies[ADMIN_COOKIE])
        get_backend_client().revoke(session.token)

        assert client.post("/admin/orders/refresh").status_code == 401
        assert client.get("/admin/session").status_code == 401
        assert len(app.state.admin_sessions) == 0


class TestAdminOrders:
    def test_order_board(self, client):
        order_id = order_at_table(client)
        login(client)

        page = client.get("/admin/orders").json()

        assert page["page_size"] == 12
        assert page["items"][0]["order_id"] == order_id
        assert page["items"][0]["table_label"] == "5"
        assert page["items"][0]["total_amount"] == 50000

    def test_status_updates(self, client):
        order_id = order_at_table(client)
        login(client, "kasir", "kasir123")

        done = client.put(f"/admin/orders/{order_id}/status", json={"status": "Selesai"})
        assert done.json()["order_status"] == "Selesai"

        assert client.put(f"/admin/orders/{order_id}/status", json={"status": "Done"}).status_code == 422

        pending = client.put(
            f"/admin/orders/{order_id}/payment-status", json={"status": "Pending", "method": "midtrans"},
        )
        assert pending.json()["payment_status"] == "Pending"

    def test_cash_payment(self, client):
        order_id = order_at_table(client)
        login(client, "kasir", "kasir123")

        short = client.post(f"/admin/orders/{order_id}/payments/cash", json={"cash_received": 20000})
        assert short.status_code == 400
        assert short.json()["error"] == "Uang yang diterima kurang dari total pembayaran!"

        paid = client.post(f"/admin/orders/{order_id}/payments/cash", json={"cash_received": 100000}).json()
        assert paid["change"] == 50000
        assert paid["payment_status"] == "Sudah Bayar"

    def test_online_payment_from_cashier(self, client):
        order_id = order_at_table(client)
        login(client)

        opened = client.post(f"/admin/orders/{order_id}/payments/online").json()["checkout"]
        response = client.post(f"/admin/orders/{order_id}/payments/online/callback", json={
            "checkout_id": opened["transaction_id"],
            "outcome": "success",
        })

        assert response.json()["payment_status"] == "Sudah Bayar"

    def test_receipt(self, client):
        order_id = order_at_table(client)
        login(client)

        response = client.get(f"/admin/orders/{order_id}/receipt")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "STRUK PESANAN" in response.text
        assert "2x Nasi Goreng Spesial" in response.text

    def test_take_away(self, client):
        login(client, "kasir", "kasir123")

        client.put("/admin/new-order/selections/4", json={"option": "spiciness", "value": "sedang"})
        client.post("/admin/new-order/cart/add", json={"menu_item_id": 4})
        response = client.post("/admin/new-order", json={"customer_name": "Budi"})

        assert response.status_code == 200
        assert response.json()["message"] == "Pesanan baru berhasil dibuat dengan ID: 1001!"
        board = client.get("/admin/orders").json()
        assert board["items"][0]["table_label"] == "Take Away - Budi"
        assert client.get("/admin/new-order").json()["cart"]["total_items"] == 0

    def test_edit_order(self, client):
        order_id = order_at_table(client)
        login(client)

        draft = client.post(f"/admin/orders/{order_id}/edit").json()
        assert draft["cart"]["total_items"] == 2

        client.post(f"/admin/orders/{order_id}/edit/cart/delete", json={"menu_item_id": 1})
        client.post(f"/admin/orders/{order_id}/edit/cart/add", json={"menu_item_id": 2})
        response = client.post(f"/admin/orders/{order_id}/edit/save", json={"note": "ganti menu"})

        assert response.status_code == 200
        assert client.get("/admin/orders").json()["items"][0]["total_amount"] == 28000
        assert client.get(f"/admin/orders/{order_id}/edit").status_code == 404


class TestAdminManagement:
    def test_cashier_cannot_manage(self, client):
        login(client, "kasir", "kasir123")

        assert client.get("/admin/tables").status_code == 403
        created = client.post("/admin/menu", json={"name": "Es Jeruk", "price": 9000})
        assert created.status_code == 403
        assert created.json()["error"] == "Fitur ini hanya untuk admin"

    def test_menu_availability_reaches_customers(self, client):
        login(client)

        toggled = client.patch("/admin/menu/1/availability").json()
        assert toggled["is_available"] is False

        data = client.get("/menu/2").json()
        ids = [item["id_menu"] for group in data["categories"] for item in group["items"]]
        assert 1 not in ids

    def test_create_menu_item(self, client):
        login(client)

        response = client.post("/admin/menu", json={
            "name": "Es Jeruk", "price": 9000, "category": "minuman-nonkopi",
        })

        assert response.json()["message"] == "Menu berhasil ditambahkan!"
        names = [item["name"] for item in client.get("/admin/menu").json()["items"]]
        assert "Es Jeruk" in names

    def test_tables_and_qr(self, client):
        login(client)

        client.post("/admin/tables", json={"table_number": "VIP 1", "capacity": 6})
        tables = client.get("/admin/tables").json()
        assert tables[0]["qr_url"] == "http://menu.test/menu/1"
        assert tables[-1]["qr_url"] == "http://menu.test/menu/VIP%201"

        response = client.get("/admin/tables/VIP%201/qr.svg")
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/svg+xml"
        assert 'filename="meja_VIP-1_qrcode.svg"' in response.headers["content-disposition"]

        assert client.get("/admin/tables/99/qr.svg").status_code == 404

    def test_sales_report_csv(self, client):
        order_at_table(client)
        login(client)

        report = client.get("/admin/reports/sales", params=report_range()).json()
        assert report["report"]["totalSales"] == 50000

        response = client.get("/admin/reports/sales.csv", params=report_range())
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.text.splitlines()[0] == "Laporan Penjualan,,"
        assert "Nasi Goreng Spesial,2,Rp 50.000" in response.text.splitlines()

    def test_empty_report_export(self, client):
        login(client)

        response = client.get(
            "/admin/reports/sales.csv", params={"start_date": "2020-01-01", "end_date": "2020-01-31"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Tidak ada data penjualan untuk diekspor"

import json
from datetime import date

import httpx
import pytest

from qrmenu.core.exceptions import AuthenticationError, BackendError, MalformedResponseError
from qrmenu.services.backend import HttpBackendClient
from qrmenu.services.payment import MidtransPaymentService


def make_client(handler) -> HttpBackendClient:
    return HttpBackendClient(
        base_url="https://api.test/api",
        timeout=15,
        transport=httpx.MockTransport(handler),
    )


class TestLogin:
    async def test_returns_token_and_role(self):
        def handler(request):
            assert request.url.path == "/api/login"
            assert json.loads(request.content) == {"username": "admin", "password": "admin123"}
            return httpx.Response(200, json={"token": "jwt-1", "user": {"username": "admin", "role": "admin"}})

        result = await make_client(handler).login("admin", "admin123")

        assert result.token == "jwt-1"
        assert result.role == "admin"

    async def test_missing_user_is_malformed(self):
        client = make_client(lambda request: httpx.Response(200, json={"token": "jwt-1"}))

        with pytest.raises(MalformedResponseError) as exc:
            await client.login("admin", "admin123")
        assert "missing token/user" in exc.value.message

    async def test_wrong_password(self):
        client = make_client(lambda request: httpx.Response(401, json={"message": "Password salah"}))

        with pytest.raises(AuthenticationError) as exc:
            await client.login("admin", "x")
        assert exc.value.message == "Password salah"


class TestErrorMapping:
    async def test_backend_message_is_surfaced(self):
        client = make_client(lambda request: httpx.Response(500, json={"error": "Database error"}))

        with pytest.raises(BackendError) as exc:
            await client.list_menu()
        assert exc.value.message == "Database error"

    async def test_plain_text_error(self):
        client = make_client(lambda request: httpx.Response(502, text="Bad Gateway from proxy"))

        with pytest.raises(BackendError) as exc:
            await client.list_menu()
        assert exc.value.message == "Bad Gateway from proxy"

    async def test_forbidden_is_authentication_error(self):
        client = make_client(lambda request: httpx.Response(403, json={"message": "Forbidden"}))

        with pytest.raises(AuthenticationError):
            await client.list_orders("expired")

    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(BackendError) as exc:
            await make_client(handler).list_menu()
        assert exc.value.message == "Request timeout - Server tidak merespon dalam 15 detik"

    async def test_connection_refused(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(BackendError) as exc:
            await make_client(handler).list_menu()
        assert exc.value.message == "Tidak dapat terhubung ke server."

    async def test_non_json_body(self):
        client = make_client(lambda request: httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(MalformedResponseError):
            await client.list_menu()

    async def test_list_expected(self):
        client = make_client(lambda request: httpx.Response(200, json={"data": []}))

        with pytest.raises(MalformedResponseError):
            await client.list_menu()


class TestLists:
    async def test_menu_skips_malformed_rows(self):
        rows = [
            {"id_menu": 1, "name": "Nasi Goreng", "price": "25000.00", "category": "makanan-nasi", "is_available": 1},
            {"name": "no id"},
            {"id_menu": 2, "name": "Es Teh", "price": 8000, "category": None, "is_available": 0},
        ]
        client = make_client(lambda request: httpx.Response(200, json=rows))

        menu = await client.list_menu()

        assert [m.id_menu for m in menu] == [1, 2]
        assert menu[0].price == 25000
        assert menu[1].category == "lain-lain"
        assert menu[1].is_available is False

    async def test_menu_skips_rows_with_unrepresentable_prices(self):
        rows = [
            {"id_menu": 1, "name": "Nasi Goreng", "price": "Infinity", "category": "makanan-nasi"},
            {"id_menu": 2, "name": "Es Teh", "price": 1000, "category": "minuman-nonkopi"},
            {"id_menu": 3, "name": "Teh Tarik", "price": "NaN", "category": "minuman-nonkopi"},
        ]
        client = make_client(lambda request: httpx.Response(200, json=rows))

        menu = await client.list_menu()

        assert [m.id_menu for m in menu] == [2]

    async def test_forced_order_refresh_bypasses_caches(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            seen["headers"] = request.headers
            return httpx.Response(200, json=[{
                "order_id": 7,
                "table_number": 4,
                "items": "not json",
                "total_amount": "18000.00",
            }])

        orders = await make_client(handler).list_orders("jwt-1", force_refresh=True)

        assert "t" in seen["params"]
        assert seen["headers"]["cache-control"] == "no-cache"
        assert seen["headers"]["authorization"] == "Bearer jwt-1"
        assert orders[0].table_number == "4"
        assert orders[0].items == []
        assert orders[0].total_amount == 18000


class TestWrites:
    async def test_availability_is_sent_as_integer(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"message": "ok"})

        await make_client(handler).set_menu_availability("jwt-1", 3, False)

        assert seen == {"method": "PATCH", "path": "/api/menu/3/availability", "body": {"is_available": 0}}

    async def test_delete_with_empty_body(self):
        client = make_client(lambda request: httpx.Response(204))

        assert await client.delete_menu_item("jwt-1", 3) is None

    async def test_sales_report_dates(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"totalSales": "150000.00", "totalOrders": 3, "topSellingItems": None})

        report = await make_client(handler).sales_report("jwt-1", date(2026, 10, 1), date(2026, 10, 19))

        assert seen["params"] == {"startDate": "2026-10-01", "endDate": "2026-10-19"}
        assert report.total_sales == 150000
        assert report.top_selling_items == []


class TestMidtrans:
    async def test_transaction_goes_through_backend(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"token": "snap-1", "redirect_url": "https://snap.test/1"})

        service = MidtransPaymentService(make_client(handler))
        tx = await service.create_transaction(
            "temp_1_abcdefghi", 26000,
            [{"id": "1", "name": "Nasi Goreng", "price": 26000, "quantity": 1}],
            extra={"custom_field1": "5"},
        )

        assert tx.success
        assert tx.token == "snap-1"
        assert seen["path"] == "/api/midtrans/transaction"
        assert seen["body"]["order_id"] == "temp_1_abcdefghi"
        assert seen["body"]["gross_amount"] == 26000
        assert seen["body"]["custom_field1"] == "5"

    async def test_gateway_error_is_reported(self):
        client = make_client(lambda request: httpx.Response(500, json={"message": "Midtrans down"}))

        tx = await MidtransPaymentService(client).create_transaction("temp_1_x", 1000, [])

        assert not tx.success
        assert tx.error_message == "Midtrans down"

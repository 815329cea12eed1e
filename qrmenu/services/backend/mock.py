"""
Mock Backend Client Implementation

An in-memory restaurant that answers like the REST API, without any network.
Used in development mode (ENV_MODE=development) to:
    - Walk through the whole table-ordering flow locally
    - Demo the dashboard with seeded menu, tables and users
    - Back the route tests

Behavior:
    - Optional simulated latency
    - Issues opaque bearer tokens on login and rejects unknown ones with 401
    - Stores order items as a JSON string, the way the REST API does
    - Computes sales reports from the stored orders
"""

import asyncio
import json
import logging
import random
import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional

from qrmenu.core.exceptions import AuthenticationError, BackendError, NotFoundError
from qrmenu.schemas import (
    LoginResult,
    MenuItem,
    Order,
    OrderStatusEnum,
    PaymentStatusEnum,
    SalesReport,
    Table,
)
from qrmenu.services.backend.base import BaseBackendClient

logger = logging.getLogger(__name__)


SEED_MENU = [
    {"id_menu": 1, "name": "Nasi Goreng Spesial", "description": "Nasi goreng telur dan ayam suwir",
     "price": 25000, "category": "makanan-nasi", "is_available": 1},
    {"id_menu": 2, "name": "Nasi Ayam Penyet", "description": "Ayam goreng penyet sambal terasi",
     "price": 28000, "category": "makanan-nasi", "is_available": 1},
    {"id_menu": 3, "name": "Mie Aceh Goreng", "description": "Mie tebal bumbu khas Aceh",
     "price": 22000, "category": "menu mie-aceh", "is_available": 1},
    {"id_menu": 4, "name": "Mie Banggondrong Kuah", "description": "Mie kuah kaldu sapi",
     "price": 20000, "category": "menu mie-banggodrong", "is_available": 1},
    {"id_menu": 5, "name": "Kopi Susu Gula Aren", "description": "Espresso, susu, gula aren",
     "price": 18000, "category": "minuman-kopi", "is_available": 1},
    {"id_menu": 6, "name": "Es Teh Manis", "description": "",
     "price": 8000, "category": "minuman-nonkopi", "is_available": 1},
    {"id_menu": 7, "name": "Pisang Goreng Keju", "description": "Pisang goreng taburan keju",
     "price": 15000, "category": "camilan-manis", "is_available": 1},
    {"id_menu": 8, "name": "Kentang Goreng", "description": "",
     "price": 15000, "category": "camilan-gurih", "is_available": 0},
]

SEED_USERS = {
    "admin": ("admin123", "admin"),
    "kasir": ("kasir123", "cashier"),
}


class MockBackendClient(BaseBackendClient):
    """
    In-memory implementation of the restaurant backend.

    Attributes:
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds

    Example:
        >>> backend = MockBackendClient()
        >>> login = await backend.login("admin", "admin123")
        >>> orders = await backend.list_orders(login.token)
    """

    def __init__(
        self,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
        users: Optional[dict[str, tuple[str, str]]] = None,
    ):
        self.min_latency = min_latency
        self.max_latency = max_latency

        self._users = dict(users or SEED_USERS)
        self._tokens: dict[str, tuple[str, str]] = {}
        self._menu: dict[int, dict[str, Any]] = {row["id_menu"]: dict(row) for row in SEED_MENU}
        self._tables: dict[str, dict[str, Any]] = {
            str(n): {"table_number": str(n), "capacity": 4, "status": "Available"}
            for n in range(1, 6)
        }
        self._orders: dict[int, dict[str, Any]] = {}
        self._next_menu_id = max(self._menu) + 1
        self._next_order_id = 1001
        self.transactions: list[dict[str, Any]] = []

        logger.info(
            f"MockBackendClient initialized "
            f"({len(self._menu)} menu items, {len(self._tables)} tables, "
            f"latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _simulate_latency(self) -> None:
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

    def _require(self, token: Optional[str]) -> tuple[str, str]:
        if not token or token not in self._tokens:
            raise AuthenticationError("Token tidak valid atau sudah kadaluarsa")
        return self._tokens[token]

    def _menu_row(self, menu_item_id: int) -> dict[str, Any]:
        row = self._menu.get(menu_item_id)
        if row is None:
            raise NotFoundError(f"Menu dengan ID {menu_item_id} tidak ditemukan")
        return row

    def _order_row(self, order_id: int) -> dict[str, Any]:
        row = self._orders.get(order_id)
        if row is None:
            raise NotFoundError(f"Pesanan #{order_id} tidak ditemukan")
        return row

    def _price_items(self, items: Any) -> tuple[list[dict[str, Any]], int]:
        """Snapshot names and prices for submitted items; return them with the total."""
        if not isinstance(items, list) or not items:
            raise BackendError("Items pesanan tidak boleh kosong")

        stored = []
        total = 0
        for entry in items:
            row = self._menu.get(int(entry.get("id_menu", 0)))
            if row is None:
                raise BackendError(f"Menu dengan ID {entry.get('id_menu')} tidak ditemukan")
            quantity = int(entry.get("quantity", 0))
            if quantity <= 0:
                raise BackendError(f"Jumlah tidak valid untuk {row['name']}")
            stored.append({
                "menu_item_id": row["id_menu"],
                "menu_name": row["name"],
                "quantity": quantity,
                "price_at_order": row["price"],
                "spiciness_level": entry.get("spiciness_level"),
                "temperature_level": entry.get("temperature_level"),
            })
            total += quantity * row["price"]
        return stored, total

    # =========================================================================
    # AUTH
    # =========================================================================

    async def login(self, username: str, password: str) -> LoginResult:
        await self._simulate_latency()
        account = self._users.get(username)
        if account is None or account[0] != password:
            raise AuthenticationError("Username atau password salah")

        token = f"mock_{uuid.uuid4().hex}"
        self._tokens[token] = (username, account[1])
        logger.info(f"Mock: {username} logged in as {account[1]}")
        return LoginResult(token=token, role=account[1], username=username)

    def revoke(self, token: str) -> None:
        """Forget a token, as if it had expired on the server."""
        self._tokens.pop(token, None)

    # =========================================================================
    # MENU
    # =========================================================================

    async def list_menu(self, token: Optional[str] = None) -> list[MenuItem]:
        await self._simulate_latency()
        return [MenuItem.model_validate(row) for row in self._menu.values()]

    async def create_menu_item(self, token: str, payload: dict[str, Any]) -> dict[str, Any]:
        await self._simulate_latency()
        self._require(token)

        menu_item_id = self._next_menu_id
        self._next_menu_id += 1
        self._menu[menu_item_id] = {
            "id_menu": menu_item_id,
            "name": payload["name"],
            "description": payload.get("description", ""),
            "price": int(payload["price"]),
            "category": payload.get("category") or "lain-lain",
            "is_available": 1 if payload.get("is_available") in (1, True, "1", "true") else 0,
            "image_url": payload.get("image_link") or None,
        }
        logger.info(f"Mock: created menu item {menu_item_id}")
        return {"message": "Menu berhasil ditambahkan", "id_menu": menu_item_id}

    async def update_menu_item(
        self,
        token: str,
        menu_item_id: int,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        await self._simulate_latency()
        self._require(token)
        row = self._menu_row(menu_item_id)

        if payload.get("clear_image") == "true":
            image_url = None
        elif payload.get("image_link"):
            image_url = payload["image_link"]
        else:
            image_url = payload.get("image_url_existing") or row.get("image_url")

        row.update({
            "name": payload["name"],
            "description": payload.get("description", ""),
            "price": int(payload["price"]),
            "category": payload.get("category") or row["category"],
            "is_available": 1 if payload.get("is_available") in (1, True, "1", "true") else 0,
            "image_url": image_url,
        })
        return {"message": "Menu berhasil diperbarui"}

    async def delete_menu_item(self, token: str, menu_item_id: int) -> None:
        await self._simulate_latency()
        self._require(token)
        self._menu_row(menu_item_id)
        del self._menu[menu_item_id]

    async def set_menu_availability(
        self,
        token: str,
        menu_item_id: int,
        available: bool,
    ) -> dict[str, Any]:
        await self._simulate_latency()
        self._require(token)
        self._menu_row(menu_item_id)["is_available"] = 1 if available else 0
        return {"message": "Ketersediaan menu diperbarui"}

    # =========================================================================
    # TABLES
    # =========================================================================

    async def list_tables(self, token: str) -> list[Table]:
        await self._simulate_latency()
        self._require(token)
        return [Table.model_validate(row) for row in self._tables.values()]

    async def create_table(
        self,
        token: str,
        table_number: str,
        capacity: Optional[int] = None,
    ) -> dict[str, Any]:
        await self._simulate_latency()
        self._require(token)
        if table_number in self._tables:
            raise BackendError(f"Meja {table_number} sudah ada")
        self._tables[table_number] = {
            "table_number": table_number,
            "capacity": capacity,
            "status": "Available",
        }
        return {"message": "Meja berhasil ditambahkan"}

    # =========================================================================
    # ORDERS
    # =========================================================================

    async def list_orders(self, token: str, force_refresh: bool = False) -> list[Order]:
        await self._simulate_latency()
        self._require(token)
        rows = sorted(self._orders.values(), key=lambda r: r["order_id"], reverse=True)
        return [Order.model_validate(row) for row in rows]

    async def create_order(
        self,
        payload: dict[str, Any],
        token: Optional[str] = None,
    ) -> dict[str, Any]:
        await self._simulate_latency()
        if token is not None:
            self._require(token)

        stored, total = self._price_items(payload.get("items"))

        order_id = self._next_order_id
        self._next_order_id += 1
        self._orders[order_id] = {
            "order_id": order_id,
            "table_number": str(payload.get("tableNumber") or "1"),
            "customer_name": payload.get("customerName"),
            "items": json.dumps(stored),
            "order_status": OrderStatusEnum.IN_PROGRESS.value,
            "payment_status": payload.get("payment_status") or PaymentStatusEnum.UNPAID.value,
            "payment_method": payload.get("payment_method") or "cash",
            "midtrans_order_id": payload.get("midtrans_order_id"),
            "midtrans_transaction_id": payload.get("midtrans_transaction_id"),
            "order_time": datetime.now(timezone.utc).isoformat(),
            "total_amount": total,
            "note": None,
        }
        logger.info(f"Mock: order #{order_id} placed for table {self._orders[order_id]['table_number']}")
        return {"message": "Pesanan berhasil dibuat", "orderId": order_id}

    async def update_order(
        self,
        token: str,
        order_id: int,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        await self._simulate_latency()
        self._require(token)
        row = self._order_row(order_id)

        stored, total = self._price_items(payload.get("items"))
        row["items"] = json.dumps(stored)
        row["total_amount"] = total
        row["note"] = payload.get("note")
        return {"message": "Pesanan berhasil diperbarui"}

    async def update_order_status(self, token: str, order_id: int, status: str) -> dict[str, Any]:
        await self._simulate_latency()
        self._require(token)
        self._order_row(order_id)["order_status"] = status
        return {"message": "Status pesanan diperbarui"}

    async def update_payment_status(
        self,
        token: str,
        order_id: int,
        payment_status: str,
        payment_method: str,
    ) -> dict[str, Any]:
        await self._simulate_latency()
        self._require(token)
        row = self._order_row(order_id)
        row["payment_status"] = payment_status
        row["payment_method"] = payment_method
        return {"message": "Status pembayaran diperbarui"}

    # =========================================================================
    # REPORTS
    # =========================================================================

    async def sales_report(self, token: str, start_date: date, end_date: date) -> SalesReport:
        await self._simulate_latency()
        self._require(token)

        today = datetime.now(timezone.utc).date()
        in_range = []
        for row in self._orders.values():
            placed = datetime.fromisoformat(row["order_time"]).date()
            if start_date <= placed <= end_date:
                in_range.append((placed, row))

        def counted(row: dict[str, Any]) -> bool:
            return row["order_status"] != OrderStatusEnum.CANCELLED.value

        top: dict[str, dict[str, Any]] = {}
        by_method: dict[str, int] = {}
        by_date: dict[str, int] = {}
        for placed, row in in_range:
            if not counted(row):
                continue
            by_method[row["payment_method"]] = by_method.get(row["payment_method"], 0) + row["total_amount"]
            key = placed.isoformat()
            by_date[key] = by_date.get(key, 0) + row["total_amount"]
            for item in json.loads(row["items"]):
                entry = top.setdefault(
                    item["menu_name"],
                    {"menu_name": item["menu_name"], "total_quantity": 0, "total_revenue": 0},
                )
                entry["total_quantity"] += item["quantity"]
                entry["total_revenue"] += item["quantity"] * item["price_at_order"]

        report = {
            "totalSales": sum(row["total_amount"] for _, row in in_range if counted(row)),
            "totalOrders": len(in_range),
            "completedOrders": sum(
                1 for _, row in in_range if row["order_status"] == OrderStatusEnum.COMPLETED.value
            ),
            "cancelledOrders": sum(1 for _, row in in_range if not counted(row)),
            "pendingOrders": sum(
                1 for _, row in in_range if row["order_status"] == OrderStatusEnum.IN_PROGRESS.value
            ),
            "totalSalesToday": sum(
                row["total_amount"] for placed, row in in_range if placed == today and counted(row)
            ),
            "totalOrdersToday": sum(1 for placed, _ in in_range if placed == today),
            "topSellingItems": sorted(top.values(), key=lambda e: e["total_quantity"], reverse=True)[:10],
            "salesByPaymentMethod": [
                {"payment_method": method, "total": total} for method, total in by_method.items()
            ],
            "salesByDate": [{"date": day, "total": total} for day, total in sorted(by_date.items())],
        }
        return SalesReport.model_validate(report)

    # =========================================================================
    # PAYMENTS
    # =========================================================================

    async def create_payment_transaction(self, payload: dict[str, Any]) -> dict[str, Any]:
        await self._simulate_latency()
        if not payload.get("order_id") or int(payload.get("gross_amount") or 0) <= 0:
            raise BackendError("Gagal membuat transaksi: order_id dan gross_amount wajib diisi")

        self.transactions.append(payload)
        token = f"snap_mock_{uuid.uuid4().hex[:24]}"
        return {
            "token": token,
            "redirect_url": f"https://app.sandbox.midtrans.com/snap/v2/vtweb/{token}",
        }

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def health_check(self) -> bool:
        logger.debug("Mock: Health check passed")
        return True

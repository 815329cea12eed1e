"""
Shared fixtures.

Tests run in development mode against the in-memory backend with background
order polling disabled, so every dashboard refresh is explicit.
"""

import os

os.environ["ENV_MODE"] = "development"
os.environ["ORDER_POLL_INTERVAL_SECONDS"] = "0"
os.environ["PUBLIC_ORIGIN"] = "http://menu.test"
os.environ["RESTAURANT_NAME"] = "Mandela Corner"

import pytest

from qrmenu.core.config import get_settings
from qrmenu.schemas import MenuItem, Order
from qrmenu.services.backend import MockBackendClient, reset_backend_client
from qrmenu.services.payment import MockPaymentService, reset_payment_service


@pytest.fixture(autouse=True)
def fresh_services():
    """Each test gets a fresh in-memory restaurant and payment gateway."""
    get_settings.cache_clear()
    reset_backend_client()
    reset_payment_service()
    yield
    reset_backend_client()
    reset_payment_service()


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def backend() -> MockBackendClient:
    return MockBackendClient()


@pytest.fixture
def payment() -> MockPaymentService:
    return MockPaymentService()


@pytest.fixture
def menu() -> dict[int, MenuItem]:
    rows = [
        {"id_menu": 1, "name": "Nasi Goreng Spesial", "price": 25000, "category": "makanan-nasi", "is_available": 1},
        {"id_menu": 3, "name": "Mie Aceh Goreng", "price": "22000.00", "category": "menu mie-aceh", "is_available": 1},
        {"id_menu": 5, "name": "Kopi Susu Gula Aren", "price": 18000, "category": "minuman-kopi", "is_available": "1"},
        {"id_menu": 8, "name": "Kentang Goreng", "price": 15000, "category": "camilan-gurih", "is_available": 0},
    ]
    return {row["id_menu"]: MenuItem.model_validate(row) for row in rows}


@pytest.fixture
def placed_order() -> Order:
    return Order.model_validate({
        "order_id": 1001,
        "table_number": "Take Away",
        "customer_name": "Budi",
        "items": (
            '[{"menu_item_id": 3, "menu_name": "Mie Aceh Goreng", "quantity": 2,'
            ' "price_at_order": "22000.00", "spiciness_level": "pedas", "temperature_level": null},'
            ' {"menu_item_id": 5, "menu_name": "Kopi Susu Gula Aren", "quantity": 1,'
            ' "price_at_order": 18000, "spiciness_level": null, "temperature_level": "dingin"}]'
        ),
        "order_status": "Dalam Proses",
        "payment_status": "Belum Bayar",
        "payment_method": "cash",
        "order_time": "2026-10-19T09:30:00",
        "total_amount": "62000.00",
    })

"""
Printable Order Receipt

Renders an 80mm thermal-printer style receipt for an order.
"""

import logging
from pathlib import Path
from typing import Any

from fastapi.templating import Jinja2Templates

from qrmenu.core.config import get_settings
from qrmenu.schemas import Order
from qrmenu.services.reports import format_rupiah

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["rupiah"] = format_rupiah


def receipt_context(order: Order) -> dict[str, Any]:
    settings = get_settings()
    return {
        "restaurant_name": settings.restaurant_name.upper(),
        "restaurant_city": settings.restaurant_city,
        "order": order,
        "table_label": order.table_label,
        "order_status": (order.order_status or "N/A").upper(),
        "payment_status": (order.payment_status or "N/A").upper(),
        "items": order.items,
    }


def render_receipt(order: Order) -> str:
    html = templates.get_template("receipt.html").render(**receipt_context(order))
    logger.debug(f"Receipt rendered for order #{order.order_id}")
    return html

"""
Admin Dashboard Routes

Login-protected endpoints for admins and cashiers: the live order board,
cashier payments, take-away and edit-order carts, menu and table management,
QR codes, receipts and sales reports.
"""

import logging
from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Cookie, Depends, Query, Response
from fastapi.responses import HTMLResponse

from qrmenu.cart import OptionSet, canonical_option
from qrmenu.core.config import get_settings
from qrmenu.core.exceptions import ValidationError
from qrmenu.customer import group_menu
from qrmenu.dashboard import AdminSession, AdminSessionStore
from qrmenu.routes.deps import ADMIN_COOKIE, current_admin, get_admin_store
from qrmenu.schemas import (
    CartAddRequest,
    CartLineRequest,
    CashPaymentRequest,
    EditOrderSaveRequest,
    LoginRequest,
    MenuItemForm,
    NewOrderRequest,
    OptionSelectionRequest,
    Order,
    OrderStatusUpdate,
    PaymentCallbackRequest,
    PaymentStatusUpdate,
    TableCreate,
)
from qrmenu.services.backend import get_backend_client
from qrmenu.services.payment import get_payment_service
from qrmenu.services.qr import qr_filename, qr_payload_url, render_qr_svg
from qrmenu.services.receipt import render_receipt
from qrmenu.services.reports import report_filename, report_to_csv

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin Dashboard"])


def _order_view(order: Order) -> dict[str, Any]:
    view = order.model_dump()
    view["table_label"] = order.table_label
    view["order_time_label"] = order.order_time_label
    view["is_takeaway"] = order.is_takeaway
    return view


def _line_options(body: CartLineRequest) -> OptionSet:
    return OptionSet(
        spiciness=canonical_option("spiciness", body.spiciness),
        temperature=canonical_option("temperature", body.temperature),
    )


# =============================================================================
# AUTH
# =============================================================================

@router.post("/login", summary="Dashboard login")
async def login(
    body: LoginRequest,
    response: Response,
    store: AdminSessionStore = Depends(get_admin_store),
) -> dict[str, Any]:
    session = await store.login(
        get_backend_client(),
        get_payment_service(),
        body.username,
        body.password,
    )
    response.set_cookie(ADMIN_COOKIE, session.session_id, httponly=True, samesite="lax")
    return {
        "success": True,
        "message": f"Login berhasil sebagai {session.role or 'user'}!",
        "session": session.to_dict(),
    }


@router.post("/logout")
async def logout(
    response: Response,
    store: AdminSessionStore = Depends(get_admin_store),
    qrmenu_admin: Optional[str] = Cookie(default=None),
) -> dict[str, Any]:
    await store.logout(qrmenu_admin)
    response.delete_cookie(ADMIN_COOKIE)
    return {"success": True, "message": "Anda telah logout."}


@router.get("/session")
async def session_info(session: AdminSession = Depends(current_admin)) -> dict[str, Any]:
    return session.to_dict()


# =============================================================================
# ORDERS
# =============================================================================

@router.get("/orders", summary="Paged order board")
async def list_orders(
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    if session.last_refresh is None:
        await session.poller.refresh()
    result = session.orders_page(page, page_size)
    result["items"] = [_order_view(order) for order in result["items"]]
    return result


@router.post("/orders/refresh")
async def refresh_orders(session: AdminSession = Depends(current_admin)) -> dict[str, Any]:
    orders = await session.poller.refresh()
    return {
        "success": True,
        "message": "Data berhasil di-refresh!",
        "total": len(orders),
        "last_refresh": session.last_refresh,
    }


@router.put("/orders/{order_id}/status")
async def update_order_status(
    order_id: int,
    body: OrderStatusUpdate,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    await session.set_order_status(order_id, body.status)
    return {"success": True, "order_id": order_id, "order_status": body.status.value}


@router.put("/orders/{order_id}/payment-status")
async def update_payment_status(
    order_id: int,
    body: PaymentStatusUpdate,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    status = await session.set_payment_status(order_id, body.status, body.method)
    return {"success": True, "order_id": order_id, "payment_status": status}


@router.get("/orders/{order_id}/receipt", response_class=HTMLResponse)
async def order_receipt(
    order_id: int,
    session: AdminSession = Depends(current_admin),
) -> HTMLResponse:
    return HTMLResponse(render_receipt(session.find_order(order_id)))


# =============================================================================
# CASHIER PAYMENTS
# =============================================================================

@router.post("/orders/{order_id}/payments/cash")
async def pay_cash(
    order_id: int,
    body: CashPaymentRequest,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    result = await session.pay_cash(order_id, body.cash_received)
    return {"success": True, "message": "Pembayaran cash berhasil!", **result}


@router.post("/orders/{order_id}/payments/online")
async def start_online_payment(
    order_id: int,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    payment = await session.start_online_payment(order_id)
    settings = get_settings()
    return {
        "success": True,
        "checkout": payment.to_dict(),
        "payment": {
            "client_key": settings.midtrans_client_key,
            "snap_url": settings.midtrans_snap_url,
        },
    }


@router.post("/orders/{order_id}/payments/online/callback")
async def online_payment_callback(
    order_id: int,
    body: PaymentCallbackRequest,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    status = await session.complete_online_payment(order_id, body.checkout_id, body.outcome)
    return {"success": True, "order_id": order_id, "payment_status": status}


# =============================================================================
# TAKE-AWAY ORDERS
# =============================================================================

@router.get("/new-order")
async def view_new_order(session: AdminSession = Depends(current_admin)) -> dict[str, Any]:
    session.require_order_creator()
    return session.take_away.to_dict()


@router.put("/new-order/selections/{item_id}")
async def new_order_select(
    item_id: int,
    body: OptionSelectionRequest,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    options = session.take_away_select(item_id, body.option, body.value)
    return {"menu_item_id": item_id, "options": options.to_dict()}


@router.post("/new-order/cart/add")
async def new_order_add(
    body: CartAddRequest,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    session.take_away_add(body.menu_item_id)
    return {"cart": session.take_away.cart.to_dict()}


@router.post("/new-order/cart/remove")
async def new_order_remove(
    body: CartLineRequest,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    session.take_away_remove(body.menu_item_id, _line_options(body))
    return {"cart": session.take_away.cart.to_dict()}


@router.post("/new-order/cart/delete")
async def new_order_delete(
    body: CartLineRequest,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    session.take_away_remove(body.menu_item_id, _line_options(body), delete=True)
    return {"cart": session.take_away.cart.to_dict()}


@router.post("/new-order", summary="Submit the take-away order")
async def submit_new_order(
    body: NewOrderRequest,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    result = await session.submit_take_away(body.customer_name)
    return {
        "success": True,
        "message": f"Pesanan baru berhasil dibuat dengan ID: {result.order_id or 'N/A'}!",
        "order": result.to_dict(),
    }


# =============================================================================
# EDIT ORDER
# =============================================================================

@router.post("/orders/{order_id}/edit", summary="Start editing a placed order")
async def start_edit(
    order_id: int,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    return session.start_edit(order_id).to_dict()


@router.get("/orders/{order_id}/edit")
async def view_edit(
    order_id: int,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    return session.editing(order_id).to_dict()


@router.delete("/orders/{order_id}/edit")
async def cancel_edit(
    order_id: int,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    session.editing(order_id)
    session.cancel_edit()
    return {"success": True}


@router.put("/orders/{order_id}/edit/selections/{item_id}")
async def edit_select(
    order_id: int,
    item_id: int,
    body: OptionSelectionRequest,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    options = session.edit_select(order_id, item_id, body.option, body.value)
    return {"menu_item_id": item_id, "options": options.to_dict()}


@router.post("/orders/{order_id}/edit/cart/add")
async def edit_add(
    order_id: int,
    body: CartAddRequest,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    session.edit_add(order_id, body.menu_item_id)
    return {"cart": session.editing(order_id).cart.to_dict()}


@router.post("/orders/{order_id}/edit/cart/remove")
async def edit_remove(
    order_id: int,
    body: CartLineRequest,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    session.edit_remove(order_id, body.menu_item_id, _line_options(body))
    return {"cart": session.editing(order_id).cart.to_dict()}


@router.post("/orders/{order_id}/edit/cart/delete")
async def edit_delete(
    order_id: int,
    body: CartLineRequest,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    session.edit_remove(order_id, body.menu_item_id, _line_options(body), delete=True)
    return {"cart": session.editing(order_id).cart.to_dict()}


@router.post("/orders/{order_id}/edit/save")
async def save_edit(
    order_id: int,
    body: EditOrderSaveRequest,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    await session.save_edit(order_id, body.note)
    return {"success": True, "message": f"Pesanan #{order_id} berhasil diperbarui!"}


# =============================================================================
# MENU MANAGEMENT
# =============================================================================

@router.get("/menu")
async def list_menu(session: AdminSession = Depends(current_admin)) -> dict[str, Any]:
    return {
        "items": [item.model_dump() for item in session.menu],
        "categories": group_menu(session.menu),
    }


@router.post("/menu")
async def create_menu_item(
    body: MenuItemForm,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    await session.create_menu_item(body)
    return {"success": True, "message": "Menu berhasil ditambahkan!"}


@router.put("/menu/{menu_item_id}")
async def update_menu_item(
    menu_item_id: int,
    body: MenuItemForm,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    await session.update_menu_item(menu_item_id, body)
    return {"success": True, "message": "Menu berhasil diupdate!"}


@router.delete("/menu/{menu_item_id}")
async def delete_menu_item(
    menu_item_id: int,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    await session.delete_menu_item(menu_item_id)
    return {"success": True, "message": "Menu berhasil dihapus!"}


@router.patch("/menu/{menu_item_id}/availability")
async def toggle_menu_availability(
    menu_item_id: int,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    available = await session.toggle_availability(menu_item_id)
    return {"success": True, "menu_item_id": menu_item_id, "is_available": available}


# =============================================================================
# TABLES & QR CODES
# =============================================================================

@router.get("/tables")
async def list_tables(session: AdminSession = Depends(current_admin)) -> list[dict[str, Any]]:
    session.require_admin()
    return [
        {**table.model_dump(), "qr_url": qr_payload_url(table.table_number)}
        for table in session.tables
    ]


@router.post("/tables")
async def create_table(
    body: TableCreate,
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    await session.create_table(body.table_number, body.capacity)
    return {"success": True, "message": "Meja berhasil ditambahkan!"}


@router.get("/tables/{table_number}/qr.svg", summary="Download a table's QR code")
async def table_qr(
    table_number: str,
    session: AdminSession = Depends(current_admin),
) -> Response:
    session.require_admin()
    session.find_table(table_number)
    return Response(
        content=render_qr_svg(table_number),
        media_type="image/svg+xml",
        headers={"Content-Disposition": f'attachment; filename="{qr_filename(table_number)}"'},
    )


# =============================================================================
# REPORTS
# =============================================================================

@router.get("/reports/sales")
async def sales_report(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    session: AdminSession = Depends(current_admin),
) -> dict[str, Any]:
    report = await session.load_report(start_date, end_date)
    start, end = session.report_range
    return {
        "start_date": start,
        "end_date": end,
        "report": report.model_dump(by_alias=True),
    }


@router.get("/reports/sales.csv", summary="Export the sales report as CSV")
async def sales_report_csv(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    session: AdminSession = Depends(current_admin),
) -> Response:
    report = await session.load_report(start_date, end_date)
    if report.total_orders == 0:
        raise ValidationError("Tidak ada data penjualan untuk diekspor")

    start, end = session.report_range
    return Response(
        content=report_to_csv(report, start, end),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{report_filename(start, end)}"'},
    )

"""
Customer Menu Routes

What a guest's phone talks to after scanning the table QR code: browse the
menu, build a cart, and check out at the cashier or online.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Cookie, Depends, Response

from qrmenu.cart import OptionSet, canonical_option
from qrmenu.core.config import get_settings
from qrmenu.core.exceptions import NotFoundError, PaymentError
from qrmenu.customer import CustomerSession, SessionStore, group_menu
from qrmenu.ordering import OrderSubmitter, normalize_table_number
from qrmenu.routes.deps import CART_COOKIE, get_customer_store
from qrmenu.schemas import (
    CartAddRequest,
    CartLineRequest,
    CheckoutMethodEnum,
    CheckoutRequest,
    OptionSelectionRequest,
    PaymentCallbackRequest,
)
from qrmenu.services.backend import get_backend_client
from qrmenu.services.payment import get_payment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/menu", tags=["Customer Menu"])


async def _session(
    table: Optional[str],
    response: Response,
    store: SessionStore,
    cart_id: Optional[str],
    refresh_menu: bool = False,
) -> CustomerSession:
    settings = get_settings()
    table_number = normalize_table_number(table, settings.default_table_number)
    session = store.get_or_create(cart_id, table_number)
    if session.session_id != cart_id:
        response.set_cookie(
            CART_COOKIE,
            session.session_id,
            max_age=settings.customer_session_ttl_seconds,
            httponly=True,
            samesite="lax",
        )
    await session.load_menu(get_backend_client(), force=refresh_menu)
    return session


def _line_options(body: CartLineRequest) -> OptionSet:
    return OptionSet(
        spiciness=canonical_option("spiciness", body.spiciness),
        temperature=canonical_option("temperature", body.temperature),
    )


def _menu_view(session: CustomerSession) -> dict[str, Any]:
    settings = get_settings()
    return {
        "table_number": session.table_number,
        "categories": group_menu(session.menu),
        "cart": session.cart.to_dict(),
        "selections": session.selections.to_dict(),
        "payment": {
            "client_key": settings.midtrans_client_key,
            "snap_url": settings.midtrans_snap_url,
        },
    }


# =============================================================================
# MENU & CART
# =============================================================================

@router.get("", summary="Menu for the default table")
async def default_menu(
    response: Response,
    store: SessionStore = Depends(get_customer_store),
    qrmenu_cart: Optional[str] = Cookie(default=None),
) -> dict[str, Any]:
    session = await _session(None, response, store, qrmenu_cart, refresh_menu=True)
    return _menu_view(session)


@router.get("/{table}", summary="Menu grouped by category, with the cart")
async def table_menu(
    table: str,
    response: Response,
    store: SessionStore = Depends(get_customer_store),
    qrmenu_cart: Optional[str] = Cookie(default=None),
) -> dict[str, Any]:
    session = await _session(table, response, store, qrmenu_cart, refresh_menu=True)
    return _menu_view(session)


@router.get("/{table}/cart")
async def view_cart(
    table: str,
    response: Response,
    store: SessionStore = Depends(get_customer_store),
    qrmenu_cart: Optional[str] = Cookie(default=None),
) -> dict[str, Any]:
    session = await _session(table, response, store, qrmenu_cart)
    return session.to_dict()


@router.put("/{table}/selections/{item_id}")
async def choose_option(
    table: str,
    item_id: int,
    body: OptionSelectionRequest,
    response: Response,
    store: SessionStore = Depends(get_customer_store),
    qrmenu_cart: Optional[str] = Cookie(default=None),
) -> dict[str, Any]:
    session = await _session(table, response, store, qrmenu_cart)
    options = session.select(item_id, body.option, body.value)
    return {"menu_item_id": item_id, "options": options.to_dict()}


@router.post("/{table}/cart/add")
async def add_to_cart(
    table: str,
    body: CartAddRequest,
    response: Response,
    store: SessionStore = Depends(get_customer_store),
    qrmenu_cart: Optional[str] = Cookie(default=None),
) -> dict[str, Any]:
    session = await _session(table, response, store, qrmenu_cart)
    line = session.add_selected(body.menu_item_id)
    return {"line": line.to_dict(), "cart": session.cart.to_dict()}


@router.post("/{table}/cart/remove")
async def remove_from_cart(
    table: str,
    body: CartLineRequest,
    response: Response,
    store: SessionStore = Depends(get_customer_store),
    qrmenu_cart: Optional[str] = Cookie(default=None),
) -> dict[str, Any]:
    session = await _session(table, response, store, qrmenu_cart)
    session.cart.remove_line(body.menu_item_id, _line_options(body))
    return {"cart": session.cart.to_dict()}


@router.post("/{table}/cart/delete")
async def delete_from_cart(
    table: str,
    body: CartLineRequest,
    response: Response,
    store: SessionStore = Depends(get_customer_store),
    qrmenu_cart: Optional[str] = Cookie(default=None),
) -> dict[str, Any]:
    session = await _session(table, response, store, qrmenu_cart)
    session.cart.delete_line(body.menu_item_id, _line_options(body))
    return {"cart": session.cart.to_dict()}


# =============================================================================
# CHECKOUT
# =============================================================================

@router.post("/{table}/checkout", summary="Pay at the cashier or start online payment")
async def checkout(
    table: str,
    body: CheckoutRequest,
    response: Response,
    store: SessionStore = Depends(get_customer_store),
    qrmenu_cart: Optional[str] = Cookie(default=None),
) -> dict[str, Any]:
    session = await _session(table, response, store, qrmenu_cart)
    submitter = OrderSubmitter(get_backend_client(), get_payment_service())

    if body.payment_method == CheckoutMethodEnum.CASHIER:
        result = await submitter.submit_cashier(session.table_number, session.cart, session.selections)
        return {
            "success": True,
            "message": (
                f"Pesanan berhasil dibuat dengan ID: {result.order_id}. "
                "Silakan lakukan pembayaran di kasir."
            ),
            "order": result.to_dict(),
        }

    session.pending = await submitter.start_online(session.table_number, session.cart)
    settings = get_settings()
    return {
        "success": True,
        "checkout": session.pending.to_dict(),
        "payment": {
            "client_key": settings.midtrans_client_key,
            "snap_url": settings.midtrans_snap_url,
        },
    }


@router.post("/{table}/checkout/callback", summary="Outcome reported by the payment widget")
async def checkout_callback(
    table: str,
    body: PaymentCallbackRequest,
    response: Response,
    store: SessionStore = Depends(get_customer_store),
    qrmenu_cart: Optional[str] = Cookie(default=None),
) -> dict[str, Any]:
    session = await _session(table, response, store, qrmenu_cart)
    pending = session.pending
    if pending is None or pending.checkout_id != body.checkout_id:
        raise NotFoundError("Tidak ada pembayaran yang sedang menunggu")

    submitter = OrderSubmitter(get_backend_client(), get_payment_service())
    try:
        result = await submitter.complete_online(
            pending,
            body.outcome,
            transaction_id=body.transaction_id,
            payment_type=body.payment_type,
            cart=session.cart,
            selections=session.selections,
        )
    except PaymentError:
        session.pending = None
        raise

    session.pending = None
    return {"success": True, "order": result.to_dict()}

"""
Order Submission

Turns a cart into the REST API's order payload and drives the two checkout
paths a customer can take:

    - Pay at the cashier: the order is posted immediately as "Belum Bayar".
    - Pay online: a Snap transaction is opened first; the order is posted
      only once the widget reports success ("Sudah Bayar") or pending
      ("Pending"). An error or a closed widget posts nothing.

The cart and its option selections are cleared only after the backend has
confirmed an order. A failed or cancelled checkout leaves them intact so the
customer can try again.
"""

import json
import logging
import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Union

from qrmenu.cart import Cart, Selections
from qrmenu.core.exceptions import (
    BackendError,
    EmptyCartError,
    PayloadValidationError,
    PaymentError,
    ValidationError,
)
from qrmenu.schemas import PaymentOutcomeEnum, PaymentStatusEnum, TAKE_AWAY
from qrmenu.services.backend.base import BaseBackendClient
from qrmenu.services.payment.base import BasePaymentService

logger = logging.getLogger(__name__)

CASH_METHOD = "cash"
ONLINE_METHOD = "midtrans"

_TABLE_PREFIX = "meja "


# =============================================================================
# PAYLOAD HELPERS
# =============================================================================

def build_order_items(cart: Cart) -> list[dict[str, Any]]:
    """
    Serialize cart lines into the backend's item shape.

    Unselected options are sent as ``None`` so the key is always present.
    """
    items = []
    for line in cart:
        spiciness, temperature = line.options.to_levels()
        items.append({
            "id_menu": int(line.menu_item_id),
            "quantity": int(line.quantity),
            "spiciness_level": spiciness,
            "temperature_level": temperature,
        })
    return items


def reject_booleans(payload: Any, path: str = "") -> None:
    """
    Raise PayloadValidationError if any value in ``payload`` is a bool.

    The backend stores option levels in text columns and turns a stray
    ``true``/``false`` into a literal "1"/"0"; this walks the whole payload
    before it is sent.
    """
    if isinstance(payload, bool):
        raise PayloadValidationError(path or "<root>", payload)
    if isinstance(payload, dict):
        for key, value in payload.items():
            reject_booleans(value, f"{path}.{key}" if path else str(key))
    elif isinstance(payload, (list, tuple)):
        for index, value in enumerate(payload):
            reject_booleans(value, f"{path}[{index}]")


def normalize_table_number(raw: Optional[Any], default: str = "1") -> str:
    """
    Reduce a table reference from a URL or form to the bare table number.

    >>> normalize_table_number("Meja 5")
    '5'
    >>> normalize_table_number(None)
    '1'
    """
    if raw is None:
        return default
    text = str(raw).strip()
    if not text or text == "undefined":
        return default
    if text.lower().startswith(_TABLE_PREFIX):
        text = text[len(_TABLE_PREFIX):].strip()
    return text or default


def new_checkout_order_id() -> str:
    """Gateway reference for a customer checkout: ``temp_<ms>_<9 chars>``."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"temp_{int(time.time() * 1000)}_{suffix}"


def item_details_for(cart: Cart) -> list[dict[str, Any]]:
    return [
        {
            "id": str(line.menu_item_id),
            "name": str(line.name),
            "price": int(line.price),
            "quantity": int(line.quantity),
        }
        for line in cart
    ]


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class PendingCheckout:
    """
    An online checkout waiting for the payment widget's verdict.

    The item payload and total are frozen when the transaction is opened, so
    what gets ordered is exactly what was paid for.
    """
    checkout_id: str
    table_number: str
    items: list[dict[str, Any]]
    total: int
    token: str
    redirect_url: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "checkout_id": self.checkout_id,
            "table_number": self.table_number,
            "total": self.total,
            "token": self.token,
            "redirect_url": self.redirect_url,
        }


@dataclass
class SubmissionResult:
    """A confirmed order as acknowledged by the backend."""
    order_id: Optional[Union[int, str]]
    total: int
    payment_status: str
    payment_method: str
    transaction_id: Optional[str] = None
    payment_type: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "total": self.total,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "transaction_id": self.transaction_id,
            "payment_type": self.payment_type,
        }


# =============================================================================
# SUBMITTER
# =============================================================================

class OrderSubmitter:
    """
    Places orders for one cart owner (a customer table or the cashier).

    Example:
        >>> submitter = OrderSubmitter(get_backend_client(), get_payment_service())
        >>> result = await submitter.submit_cashier("5", cart, selections)
        >>> print(result.order_id)
    """

    def __init__(self, backend: BaseBackendClient, payment: BasePaymentService):
        self.backend = backend
        self.payment = payment

    async def _post_order(
        self,
        payload: dict[str, Any],
        token: Optional[str] = None,
    ) -> Optional[Union[int, str]]:
        reject_booleans(payload)
        response = await self.backend.create_order(payload, token=token)
        order_id = response.get("orderId")
        if order_id is None:
            return None
        try:
            return int(order_id)
        except (TypeError, ValueError):
            logger.warning(f"Non-numeric order id from backend: {order_id!r}")
            return str(order_id)

    @staticmethod
    def _reset(cart: Cart, selections: Optional[Selections]) -> None:
        cart.clear()
        if selections is not None:
            selections.reset()

    async def submit_cashier(
        self,
        table_number: str,
        cart: Cart,
        selections: Optional[Selections] = None,
    ) -> SubmissionResult:
        """Post an unpaid order to be settled at the cashier."""
        if cart.is_empty:
            raise EmptyCartError()

        total = cart.total_price()
        payload = {
            "tableNumber": normalize_table_number(table_number),
            "items": build_order_items(cart),
            "payment_status": PaymentStatusEnum.UNPAID.value,
            "payment_method": CASH_METHOD,
        }
        order_id = await self._post_order(payload)

        logger.info(f"Order #{order_id} placed at table {payload['tableNumber']} (pay at cashier)")
        self._reset(cart, selections)

        return SubmissionResult(
            order_id=order_id,
            total=total,
            payment_status=PaymentStatusEnum.UNPAID.value,
            payment_method=CASH_METHOD,
        )

    async def start_online(self, table_number: str, cart: Cart) -> PendingCheckout:
        """
        Open a Snap transaction for the current cart.

        Raises:
            EmptyCartError: nothing to pay for
            PaymentError: the gateway did not issue a token
        """
        if cart.is_empty:
            raise EmptyCartError()

        table = normalize_table_number(table_number)
        items = build_order_items(cart)
        reject_booleans(items, "items")
        total = cart.total_price()
        checkout_id = new_checkout_order_id()

        transaction = await self.payment.create_transaction(
            order_id=checkout_id,
            gross_amount=total,
            item_details=item_details_for(cart),
            extra={
                "custom_field1": table,
                "custom_field2": json.dumps(items),
            },
        )
        if not transaction.success or not transaction.token:
            raise PaymentError(transaction.error_message or "Gagal membuat transaksi Midtrans.")

        logger.info(f"Checkout {checkout_id} opened for table {table} - Rp {total}")

        return PendingCheckout(
            checkout_id=checkout_id,
            table_number=table,
            items=items,
            total=total,
            token=transaction.token,
            redirect_url=transaction.redirect_url,
        )

    async def complete_online(
        self,
        checkout: PendingCheckout,
        outcome: PaymentOutcomeEnum,
        transaction_id: Optional[str] = None,
        payment_type: Optional[str] = None,
        cart: Optional[Cart] = None,
        selections: Optional[Selections] = None,
    ) -> SubmissionResult:
        """
        Act on the payment widget's outcome.

        Raises:
            PaymentError: the widget reported an error or was closed
            BackendError: payment went through but the order was not saved
        """
        outcome = PaymentOutcomeEnum(outcome)

        if outcome == PaymentOutcomeEnum.ERROR:
            logger.warning(f"Checkout {checkout.checkout_id}: payment error")
            raise PaymentError("Pembayaran gagal. Silakan coba lagi.")
        if outcome == PaymentOutcomeEnum.CLOSE:
            logger.info(f"Checkout {checkout.checkout_id}: payment window closed")
            raise PaymentError("Pembayaran dibatalkan.")

        if outcome == PaymentOutcomeEnum.SUCCESS:
            status = PaymentStatusEnum.PAID.value
        else:
            status = PaymentStatusEnum.PENDING.value

        payload = {
            "tableNumber": checkout.table_number,
            "items": checkout.items,
            "payment_status": status,
            "payment_method": ONLINE_METHOD,
            "midtrans_order_id": checkout.checkout_id,
            "midtrans_transaction_id": transaction_id,
        }
        try:
            order_id = await self._post_order(payload)
        except BackendError as e:
            logger.error(
                f"Checkout {checkout.checkout_id} paid ({status}) but order failed: {e.message}"
            )
            raise BackendError(
                "Pembayaran berhasil, tetapi terjadi kesalahan saat menyimpan pesanan. "
                "Silakan hubungi staff."
            )

        logger.info(f"Order #{order_id} placed at table {checkout.table_number} ({status})")
        if cart is not None:
            self._reset(cart, selections)

        return SubmissionResult(
            order_id=order_id,
            total=checkout.total,
            payment_status=status,
            payment_method=ONLINE_METHOD,
            transaction_id=transaction_id,
            payment_type=payment_type or "Online Payment",
        )

    async def submit_takeaway(
        self,
        token: str,
        cart: Cart,
        customer_name: Optional[str] = None,
        selections: Optional[Selections] = None,
    ) -> SubmissionResult:
        """Post a take-away order from the cashier dashboard."""
        if cart.is_empty:
            raise ValidationError("Pesanan harus memiliki setidaknya satu item.")

        name = (customer_name or "").strip() or None
        total = cart.total_price()
        payload = {
            "tableNumber": TAKE_AWAY,
            "items": build_order_items(cart),
            "customerName": name,
        }
        order_id = await self._post_order(payload, token=token)

        logger.info(f"Take-away order #{order_id} placed for {name or 'walk-in'}")
        self._reset(cart, selections)

        return SubmissionResult(
            order_id=order_id,
            total=total,
            payment_status=PaymentStatusEnum.UNPAID.value,
            payment_method=CASH_METHOD,
        )

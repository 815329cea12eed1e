"""
Admin Dashboard State

Everything a logged-in admin or cashier works with between requests:

- the polled order list (OrderPoller),
- the take-away order being rung up at the cashier,
- the placed order being edited,
- online payments started from the cashier payment modal,
- the last sales report.

Any call the REST API rejects with 401/403 logs the session out: the token
and every cached list are dropped, polling stops and the session leaves the
store.
"""

import asyncio
import logging
import math
import secrets
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Optional, TypeVar

from qrmenu.cart import Cart, CartLine, OptionSet, Selections
from qrmenu.core.config import Settings
from qrmenu.core.exceptions import (
    AuthenticationError,
    BackendError,
    EmptyCartError,
    InsufficientCashError,
    NotFoundError,
    PaymentError,
    PermissionDeniedError,
    RequestSupersededError,
    ValidationError,
)
from qrmenu.ordering import (
    CASH_METHOD,
    ONLINE_METHOD,
    OrderSubmitter,
    SubmissionResult,
    build_order_items,
    reject_booleans,
)
from qrmenu.schemas import (
    LoginResult,
    MenuItem,
    MenuItemForm,
    Order,
    OrderStatusEnum,
    PaymentOutcomeEnum,
    PaymentStatusEnum,
    SalesReport,
    Table,
    UserRoleEnum,
)
from qrmenu.services.backend.base import BaseBackendClient
from qrmenu.services.payment.base import BasePaymentService

logger = logging.getLogger(__name__)

T = TypeVar("T")

PAGE_SIZES = (8, 12, 24, 48)

# Payment modal choice -> status stored by the backend
MODAL_PAYMENT_STATUS = {
    "paid": PaymentStatusEnum.PAID.value,
    "unpaid": PaymentStatusEnum.UNPAID.value,
    "Pending": PaymentStatusEnum.PENDING.value,
}


def paginate(items: list[T], page: int, page_size: int) -> dict[str, Any]:
    """Slice ``items`` into a page. Out-of-range pages clamp to the nearest one."""
    if page_size not in PAGE_SIZES:
        raise ValidationError(f"page_size harus salah satu dari {', '.join(map(str, PAGE_SIZES))}")

    total_pages = max(1, math.ceil(len(items) / page_size))
    page = min(max(1, page), total_pages)
    start = (page - 1) * page_size
    return {
        "items": items[start:start + page_size],
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages,
        "total": len(items),
    }


# =============================================================================
# ORDER POLLING
# =============================================================================

class OrderPoller:
    """
    Keeps ``session.orders`` fresh.

    Periodic ticks run every ``interval`` seconds and are skipped while a
    fetch is already in flight. ``refresh()`` always wins: it cancels the
    in-flight fetch and bumps the generation counter, so a response that
    arrives for an older generation is thrown away instead of overwriting
    newer data.
    """

    def __init__(self, session: "AdminSession", interval: float):
        self.session = session
        self.interval = interval
        self.generation = 0
        self.last_error: Optional[str] = None
        self._inflight: Optional[asyncio.Task] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def start(self) -> None:
        """Begin periodic polling. A non-positive interval disables it."""
        if self.interval <= 0 or self.running:
            return
        self._stopped = False
        self._loop_task = asyncio.create_task(self._run())
        logger.debug(f"Order polling started every {self.interval:g}s")

    async def stop(self) -> None:
        self._stopped = True
        current = asyncio.current_task()
        tasks = [t for t in (self._inflight, self._loop_task) if t is not None and t is not current]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight = None
        self._loop_task = None

    async def _run(self) -> None:
        while not self._stopped:
            await self.tick()
            if self._stopped:
                break
            await asyncio.sleep(self.interval)

    async def _fetch(self, generation: int) -> list[Order]:
        """
        Run one fetch as a cancellable task.

        Raises:
            RequestSupersededError: cancelled or overtaken by a newer fetch
        """
        task = asyncio.create_task(
            self.session.backend.list_orders(self.session.token, force_refresh=True)
        )
        self._inflight = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task.cancelled() or generation != self.generation:
            raise RequestSupersededError(f"generation {generation} superseded by {self.generation}")

        orders = task.result()
        self.session.orders = orders
        self.session.last_refresh = datetime.now()
        self.last_error = None
        return orders

    async def tick(self) -> bool:
        """One periodic poll. Returns True if fresh orders were stored."""
        if self.in_flight:
            logger.debug("Poll skipped: previous fetch still in flight")
            return False

        self.generation += 1
        try:
            await self.session.guard(self._fetch(self.generation))
            return True
        except RequestSupersededError:
            logger.debug("Poll result discarded (superseded)")
            return False
        except AuthenticationError:
            self._stopped = True
            return False
        except BackendError as e:
            self.last_error = e.message
            logger.warning(f"Order poll failed: {e.message}")
            return False

    async def refresh(self) -> list[Order]:
        """Fetch now, superseding whatever is in flight."""
        if self.in_flight:
            self._inflight.cancel()

        self.generation += 1
        try:
            return await self.session.guard(self._fetch(self.generation))
        except RequestSupersededError:
            # A newer refresh started while this one was waiting.
            return self.session.orders


# =============================================================================
# DRAFTS
# =============================================================================

@dataclass
class TakeAwayDraft:
    """The cashier's "new order" form."""
    cart: Cart = field(default_factory=Cart)
    selections: Selections = field(default_factory=Selections)
    customer_name: str = ""

    def reset(self) -> None:
        self.cart.clear()
        self.selections.reset()
        self.customer_name = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "customer_name": self.customer_name,
            "cart": self.cart.to_dict(),
            "selections": self.selections.to_dict(),
        }


@dataclass
class EditDraft:
    """A placed order being re-composed."""
    order_id: int
    cart: Cart
    selections: Selections = field(default_factory=Selections)
    note: str = ""

    @classmethod
    def from_order(cls, order: Order) -> "EditDraft":
        draft = cls(order_id=order.order_id, cart=Cart.from_order_items(order.items))
        for item in order.items:
            if item.menu_item_id:
                draft.selections.seed(
                    item.menu_item_id,
                    OptionSet.from_levels(item.spiciness_level, item.temperature_level),
                )
        return draft

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "note": self.note,
            "cart": self.cart.to_dict(),
            "selections": self.selections.to_dict(),
        }


@dataclass
class CashierPayment:
    """An online payment opened from the payment modal."""
    order_id: int
    transaction_id: str
    total: int
    token: str
    redirect_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "transaction_id": self.transaction_id,
            "total": self.total,
            "token": self.token,
            "redirect_url": self.redirect_url,
        }


# =============================================================================
# SESSION
# =============================================================================

class AdminSession:
    """
    One logged-in dashboard user.

    Example:
        >>> session = AdminSession("sid", login, backend, payment, settings)
        >>> await session.open()
        >>> page = session.orders_page(page=1, page_size=12)
    """

    def __init__(
        self,
        session_id: str,
        login: LoginResult,
        backend: BaseBackendClient,
        payment: BasePaymentService,
        settings: Settings,
        on_logout: Optional[Callable[["AdminSession"], None]] = None,
    ):
        self.session_id = session_id
        self.token: Optional[str] = login.token
        self.role = login.role or ""
        self.username = login.username
        self.backend = backend
        self.payment = payment
        self.settings = settings
        self.submitter = OrderSubmitter(backend, payment)
        self._on_logout = on_logout

        self.orders: list[Order] = []
        self.menu: list[MenuItem] = []
        self.tables: list[Table] = []
        self.last_refresh: Optional[datetime] = None

        self.take_away = TakeAwayDraft()
        self.edit: Optional[EditDraft] = None
        self.payments: dict[int, CashierPayment] = {}

        today = date.today()
        self.report: Optional[SalesReport] = None
        self.report_range: tuple[date, date] = (today, today)

        self.poller = OrderPoller(self, settings.order_poll_interval_seconds)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def logged_in(self) -> bool:
        return self.token is not None

    async def open(self) -> None:
        """Initial load after login, then start polling."""
        for load in (self.poller.refresh, self.load_menu, self.load_tables):
            try:
                await load()
            except AuthenticationError:
                raise
            except BackendError as e:
                logger.warning(f"Initial dashboard load failed: {e.message}")
        self.poller.start()

    async def logout(self) -> None:
        if self.token is None:
            return
        logger.info(f"Dashboard logout: {self.username or 'unknown'} ({self.role or 'no role'})")
        self.token = None
        self.role = ""
        self.orders = []
        self.menu = []
        self.tables = []
        self.take_away.reset()
        self.edit = None
        self.payments.clear()
        self.report = None
        await self.poller.stop()
        if self._on_logout is not None:
            self._on_logout(self)

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await an authenticated call; a rejected token ends the session."""
        try:
            return await awaitable
        except AuthenticationError:
            logger.warning(f"Token rejected for {self.username or 'unknown'}; logging out")
            await self.logout()
            raise

    def _require_token(self) -> str:
        if self.token is None:
            raise AuthenticationError("Sesi berakhir, silakan login kembali")
        return self.token

    async def _refresh_after_change(self) -> None:
        try:
            await self.poller.refresh()
        except AuthenticationError:
            raise
        except BackendError as e:
            logger.warning(f"Refresh after change failed: {e.message}")

    # =========================================================================
    # ROLES
    # =========================================================================

    @property
    def is_admin(self) -> bool:
        return self.role == UserRoleEnum.ADMIN.value

    @property
    def can_create_orders(self) -> bool:
        return self.role in (UserRoleEnum.ADMIN.value, UserRoleEnum.CASHIER.value)

    def require_admin(self) -> None:
        if not self.is_admin:
            raise PermissionDeniedError("Fitur ini hanya untuk admin")

    def require_order_creator(self) -> None:
        if not self.can_create_orders:
            raise PermissionDeniedError("Hanya admin atau kasir yang dapat membuat pesanan")

    # =========================================================================
    # ORDERS
    # =========================================================================

    def orders_page(self, page: int = 1, page_size: Optional[int] = None) -> dict[str, Any]:
        result = paginate(self.orders, page, page_size or self.settings.orders_page_size)
        result["last_refresh"] = self.last_refresh
        result["poll_error"] = self.poller.last_error
        return result

    def find_order(self, order_id: int) -> Order:
        for order in self.orders:
            if order.order_id == order_id:
                return order
        raise NotFoundError(f"Pesanan #{order_id} tidak ditemukan")

    async def set_order_status(self, order_id: int, status: OrderStatusEnum) -> None:
        token = self._require_token()
        status = OrderStatusEnum(status)
        await self.guard(self.backend.update_order_status(token, order_id, status.value))
        logger.info(f"Order #{order_id} -> {status.value}")
        await self._refresh_after_change()

    async def set_payment_status(
        self,
        order_id: int,
        modal_status: str,
        method: Optional[str] = None,
    ) -> str:
        """Apply a payment modal choice (paid / unpaid / Pending)."""
        token = self._require_token()
        if modal_status not in MODAL_PAYMENT_STATUS:
            raise ValidationError(f"Status pembayaran tidak dikenal: {modal_status}")

        status = MODAL_PAYMENT_STATUS[modal_status]
        await self.guard(
            self.backend.update_payment_status(token, order_id, status, method or CASH_METHOD)
        )
        logger.info(f"Order #{order_id} payment -> {status} ({method or CASH_METHOD})")
        await self._refresh_after_change()
        return status

    # =========================================================================
    # CASHIER PAYMENTS
    # =========================================================================

    async def pay_cash(self, order_id: int, cash_received: int) -> dict[str, Any]:
        order = self.find_order(order_id)
        total = order.total_amount
        if cash_received < total:
            raise InsufficientCashError(cash_received, total)

        status = await self.set_payment_status(order_id, "paid", CASH_METHOD)
        return {
            "order_id": order_id,
            "total": total,
            "cash_received": cash_received,
            "change": cash_received - total,
            "payment_status": status,
        }

    async def start_online_payment(self, order_id: int) -> CashierPayment:
        order = self.find_order(order_id)
        total = order.total_amount
        transaction_id = f"admin_{order_id}_{int(time.time() * 1000)}"

        transaction = await self.payment.create_transaction(
            order_id=transaction_id,
            gross_amount=total,
            item_details=[{
                "id": str(order_id),
                "name": f"Pesanan #{order_id}",
                "price": total,
                "quantity": 1,
            }],
            extra={
                "customer_details": {
                    "first_name": order.customer_name or "Customer",
                },
            },
        )
        if not transaction.success or not transaction.token:
            raise PaymentError(transaction.error_message or "Gagal membuat transaksi Midtrans")

        payment = CashierPayment(
            order_id=order_id,
            transaction_id=transaction_id,
            total=total,
            token=transaction.token,
            redirect_url=transaction.redirect_url,
        )
        self.payments[order_id] = payment
        logger.info(f"Online payment {transaction_id} opened - Rp {total}")
        return payment

    async def complete_online_payment(
        self,
        order_id: int,
        transaction_id: str,
        outcome: PaymentOutcomeEnum,
    ) -> str:
        payment = self.payments.get(order_id)
        if payment is None or payment.transaction_id != transaction_id:
            raise NotFoundError(f"Tidak ada pembayaran online aktif untuk pesanan #{order_id}")
        del self.payments[order_id]

        outcome = PaymentOutcomeEnum(outcome)
        if outcome == PaymentOutcomeEnum.ERROR:
            raise PaymentError("Pembayaran gagal. Silakan coba lagi.")
        if outcome == PaymentOutcomeEnum.CLOSE:
            raise PaymentError("Pembayaran dibatalkan.")

        modal_status = "paid" if outcome == PaymentOutcomeEnum.SUCCESS else "Pending"
        return await self.set_payment_status(order_id, modal_status, ONLINE_METHOD)

    # =========================================================================
    # DRAFT CARTS (take-away and edit)
    # =========================================================================

    def menu_item(self, menu_item_id: int) -> MenuItem:
        for item in self.menu:
            if item.id_menu == menu_item_id:
                return item
        raise NotFoundError(f"Menu dengan ID {menu_item_id} tidak ditemukan")

    def _add_to(self, cart: Cart, selections: Selections, menu_item_id: int) -> CartLine:
        item = self.menu_item(menu_item_id)
        if not item.is_available:
            raise ValidationError(f"{item.name} sedang tidak tersedia")
        return cart.add_line(item, selections.get(menu_item_id))

    def take_away_select(self, menu_item_id: int, option: str, value: Optional[str]) -> OptionSet:
        self.require_order_creator()
        self.menu_item(menu_item_id)
        return self.take_away.selections.select(menu_item_id, option, value)

    def take_away_add(self, menu_item_id: int) -> CartLine:
        self.require_order_creator()
        return self._add_to(self.take_away.cart, self.take_away.selections, menu_item_id)

    def take_away_remove(self, menu_item_id: int, options: OptionSet, delete: bool = False) -> None:
        self.require_order_creator()
        if delete:
            self.take_away.cart.delete_line(menu_item_id, options)
        else:
            self.take_away.cart.remove_line(menu_item_id, options)

    async def submit_take_away(self, customer_name: Optional[str] = None) -> SubmissionResult:
        self.require_order_creator()
        token = self._require_token()
        if customer_name is not None:
            self.take_away.customer_name = customer_name

        result = await self.guard(self.submitter.submit_takeaway(
            token,
            self.take_away.cart,
            customer_name=self.take_away.customer_name,
            selections=self.take_away.selections,
        ))
        self.take_away.customer_name = ""
        await self._refresh_after_change()
        return result

    def start_edit(self, order_id: int) -> EditDraft:
        self.edit = EditDraft.from_order(self.find_order(order_id))
        return self.edit

    def editing(self, order_id: int) -> EditDraft:
        if self.edit is None or self.edit.order_id != order_id:
            raise NotFoundError(f"Pesanan #{order_id} tidak sedang diedit")
        return self.edit

    def edit_select(self, order_id: int, menu_item_id: int, option: str, value: Optional[str]) -> OptionSet:
        draft = self.editing(order_id)
        self.menu_item(menu_item_id)
        return draft.selections.select(menu_item_id, option, value)

    def edit_add(self, order_id: int, menu_item_id: int) -> CartLine:
        draft = self.editing(order_id)
        return self._add_to(draft.cart, draft.selections, menu_item_id)

    def edit_remove(self, order_id: int, menu_item_id: int, options: OptionSet, delete: bool = False) -> None:
        draft = self.editing(order_id)
        if delete:
            draft.cart.delete_line(menu_item_id, options)
        else:
            draft.cart.remove_line(menu_item_id, options)

    def cancel_edit(self) -> None:
        self.edit = None

    async def save_edit(self, order_id: int, note: Optional[str] = None) -> None:
        token = self._require_token()
        draft = self.editing(order_id)
        if note is not None:
            draft.note = note
        if draft.cart.total_items() == 0:
            raise EmptyCartError("Keranjang kosong.")

        payload = {"items": build_order_items(draft.cart), "note": draft.note or ""}
        reject_booleans(payload)
        await self.guard(self.backend.update_order(token, order_id, payload))

        logger.info(f"Order #{order_id} edited ({draft.cart.total_items()} items)")
        self.edit = None
        await self._refresh_after_change()

    # =========================================================================
    # MENU MANAGEMENT (admin)
    # =========================================================================

    async def load_menu(self) -> list[MenuItem]:
        token = self._require_token()
        self.menu = await self.guard(self.backend.list_menu(token))
        return self.menu

    @staticmethod
    def _menu_payload(form: MenuItemForm) -> dict[str, Any]:
        if not form.name or not form.category:
            raise ValidationError("Nama, harga, dan kategori menu tidak boleh kosong!")
        return {
            "name": form.name,
            "description": form.description,
            "price": form.price,
            "category": form.category,
            "is_available": 1 if form.is_available else 0,
        }

    async def create_menu_item(self, form: MenuItemForm) -> dict[str, Any]:
        self.require_admin()
        token = self._require_token()
        payload = self._menu_payload(form)
        payload["image_link"] = form.image_link

        response = await self.guard(self.backend.create_menu_item(token, payload))
        logger.info(f"Menu item created: {form.name}")
        await self.load_menu()
        return response

    async def update_menu_item(self, menu_item_id: int, form: MenuItemForm) -> dict[str, Any]:
        self.require_admin()
        token = self._require_token()
        existing = self.menu_item(menu_item_id)

        payload = self._menu_payload(form)
        payload.update({
            "image_url_existing": existing.image_url or None,
            "image_link": form.image_link,
            "clear_image": "true" if not form.image_link and not form.keep_existing_image else "false",
        })

        response = await self.guard(self.backend.update_menu_item(token, menu_item_id, payload))
        logger.info(f"Menu item {menu_item_id} updated")
        await self.load_menu()
        return response

    async def delete_menu_item(self, menu_item_id: int) -> None:
        self.require_admin()
        token = self._require_token()
        await self.guard(self.backend.delete_menu_item(token, menu_item_id))
        logger.info(f"Menu item {menu_item_id} deleted")
        await self.load_menu()

    async def toggle_availability(self, menu_item_id: int) -> bool:
        self.require_admin()
        token = self._require_token()
        available = not self.menu_item(menu_item_id).is_available
        await self.guard(self.backend.set_menu_availability(token, menu_item_id, available))
        await self.load_menu()
        return available

    # =========================================================================
    # TABLES (admin)
    # =========================================================================

    async def load_tables(self) -> list[Table]:
        token = self._require_token()
        self.tables = await self.guard(self.backend.list_tables(token))
        return self.tables

    async def create_table(self, table_number: str, capacity: Optional[int] = None) -> dict[str, Any]:
        self.require_admin()
        token = self._require_token()
        table_number = (table_number or "").strip()
        if not table_number:
            raise ValidationError("Nomor meja tidak boleh kosong!")

        response = await self.guard(self.backend.create_table(token, table_number, capacity or None))
        logger.info(f"Table {table_number} created")
        await self.load_tables()
        return response

    def find_table(self, table_number: str) -> Table:
        for table in self.tables:
            if table.table_number == table_number:
                return table
        raise NotFoundError(f"Meja {table_number} tidak ditemukan")

    # =========================================================================
    # REPORTS
    # =========================================================================

    async def load_report(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> SalesReport:
        token = self._require_token()
        start = start_date or self.report_range[0]
        end = end_date or self.report_range[1]
        if start > end:
            raise ValidationError("Tanggal mulai tidak boleh setelah tanggal akhir")

        self.report_range = (start, end)
        self.report = await self.guard(self.backend.sales_report(token, start, end))
        return self.report

    def to_dict(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "role": self.role,
            "is_admin": self.is_admin,
            "can_create_orders": self.can_create_orders,
            "last_refresh": self.last_refresh,
            "polling": self.poller.running,
        }


# =============================================================================
# SESSION STORE
# =============================================================================

class AdminSessionStore:
    """Logged-in dashboard sessions keyed by an opaque cookie value."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._sessions: dict[str, AdminSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def login(
        self,
        backend: BaseBackendClient,
        payment: BasePaymentService,
        username: str,
        password: str,
    ) -> AdminSession:
        if not username or not password:
            raise ValidationError("Username dan password harus diisi")

        result = await backend.login(username, password)
        session = AdminSession(
            secrets.token_urlsafe(32),
            result,
            backend,
            payment,
            self.settings,
            on_logout=self._forget,
        )
        self._sessions[session.session_id] = session
        logger.info(f"Dashboard login: {result.username or username} as {result.role or 'user'}")

        await session.open()
        return session

    def _forget(self, session: AdminSession) -> None:
        self._sessions.pop(session.session_id, None)

    def get(self, session_id: Optional[str]) -> AdminSession:
        session = self._sessions.get(session_id) if session_id else None
        if session is None or not session.logged_in:
            raise AuthenticationError("Sesi berakhir, silakan login kembali")
        return session

    async def logout(self, session_id: Optional[str]) -> None:
        session = self._sessions.get(session_id) if session_id else None
        if session is not None:
            await session.logout()

    async def close_all(self) -> None:
        for session in list(self._sessions.values()):
            await session.logout()

"""
Customer Menu Sessions

A guest scans the QR code on their table and lands on that table's menu.
Each browser gets a cart session (identified by a cookie) per table; the
session holds the menu snapshot, the cart, the pending option choices and
any online checkout waiting on the payment widget.

Sessions live in memory and expire after a period of inactivity.
"""

import logging
import secrets
import time
from typing import Any, Callable, Optional

from qrmenu.cart import Cart, CartLine, OptionSet, Selections
from qrmenu.core.exceptions import NotFoundError, ValidationError
from qrmenu.ordering import PendingCheckout
from qrmenu.schemas import CATEGORY_DISPLAY_NAMES, MenuItem, category_display_name
from qrmenu.services.backend.base import BaseBackendClient

logger = logging.getLogger(__name__)


def group_menu(items: list[MenuItem]) -> list[dict[str, Any]]:
    """
    Group available items by category.

    Known categories come in the house order; unknown ones follow in the
    order they first appear.
    """
    grouped: dict[str, list[MenuItem]] = {}
    for item in items:
        if item.is_available:
            grouped.setdefault(item.category, []).append(item)

    known = [c for c in CATEGORY_DISPLAY_NAMES if c in grouped]
    extra = [c for c in grouped if c not in CATEGORY_DISPLAY_NAMES]

    return [
        {
            "category": category,
            "display_name": category_display_name(category),
            "items": [item.model_dump() for item in grouped[category]],
        }
        for category in known + extra
    ]


class CustomerSession:
    """Cart state for one browser at one table."""

    def __init__(self, session_id: str, table_number: str, clock: Callable[[], float] = time.monotonic):
        self.session_id = session_id
        self.table_number = table_number
        self.cart = Cart()
        self.selections = Selections()
        self.menu: list[MenuItem] = []
        self.pending: Optional[PendingCheckout] = None
        self._clock = clock
        self.last_seen = clock()

    def touch(self) -> None:
        self.last_seen = self._clock()

    async def load_menu(self, backend: BaseBackendClient, force: bool = False) -> list[MenuItem]:
        if force or not self.menu:
            self.menu = await backend.list_menu()
            logger.debug(f"Menu loaded for table {self.table_number}: {len(self.menu)} items")
        return self.menu

    def menu_item(self, menu_item_id: int) -> MenuItem:
        for item in self.menu:
            if item.id_menu == menu_item_id:
                return item
        raise NotFoundError(f"Menu dengan ID {menu_item_id} tidak ditemukan")

    def select(self, menu_item_id: int, option: str, value: Optional[str]) -> OptionSet:
        self.menu_item(menu_item_id)
        return self.selections.select(menu_item_id, option, value)

    def add_selected(self, menu_item_id: int) -> CartLine:
        """Add one unit of an item using the options currently chosen for it."""
        item = self.menu_item(menu_item_id)
        if not item.is_available:
            raise ValidationError(f"{item.name} sedang tidak tersedia")
        return self.cart.add_line(item, self.selections.get(menu_item_id))

    def to_dict(self) -> dict[str, Any]:
        return {
            "table_number": self.table_number,
            "cart": self.cart.to_dict(),
            "selections": self.selections.to_dict(),
            "pending_checkout": self.pending.to_dict() if self.pending else None,
        }


class SessionStore:
    """
    In-memory customer sessions keyed by (cookie, table).

    Example:
        >>> store = SessionStore(ttl_seconds=3 * 60 * 60)
        >>> session = store.get_or_create(None, "5")
        >>> session.session_id  # goes into the cookie
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[tuple[str, str], CustomerSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _expired(self, session: CustomerSession) -> bool:
        return self._clock() - session.last_seen > self.ttl_seconds

    def purge_expired(self) -> int:
        stale = [key for key, session in self._sessions.items() if self._expired(session)]
        for key in stale:
            del self._sessions[key]
        if stale:
            logger.info(f"Purged {len(stale)} idle customer sessions")
        return len(stale)

    def get_or_create(self, session_id: Optional[str], table_number: str) -> CustomerSession:
        self.purge_expired()

        if session_id:
            session = self._sessions.get((session_id, table_number))
            if session is not None:
                session.touch()
                return session
        else:
            session_id = secrets.token_urlsafe(24)

        session = CustomerSession(session_id, table_number, clock=self._clock)
        self._sessions[(session_id, table_number)] = session
        logger.debug(f"New customer session for table {table_number}")
        return session

    def clear(self) -> None:
        self._sessions.clear()

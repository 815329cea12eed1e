"""
Restaurant Backend Client Abstract Base Class

Defines the interface contract for talking to the restaurant REST API.
Both MockBackendClient and HttpBackendClient implement these methods, so the
ordering front and dashboard behave identically whichever one is active.

Every method either returns parsed data or raises a QrMenuError subclass:
    - AuthenticationError on 401/403 (the caller logs the session out)
    - MalformedResponseError when the body is not the expected JSON
    - BackendError for everything else (network, timeouts, 4xx/5xx)

Design Pattern: Strategy Pattern
    - Development runs against an in-memory restaurant
    - Staging/production run against the deployed REST API
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Optional

from qrmenu.schemas import LoginResult, MenuItem, Order, SalesReport, Table


class BaseBackendClient(ABC):
    """
    Abstract base class for restaurant backend clients.

    Authenticated calls take the dashboard bearer token explicitly; the
    client itself holds no credentials.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the backend implementation."""
        pass

    # =========================================================================
    # AUTH
    # =========================================================================

    @abstractmethod
    async def login(self, username: str, password: str) -> LoginResult:
        """Exchange dashboard credentials for a bearer token and role."""
        pass

    # =========================================================================
    # MENU
    # =========================================================================

    @abstractmethod
    async def list_menu(self, token: Optional[str] = None) -> list[MenuItem]:
        """Fetch every menu item, available or not."""
        pass

    @abstractmethod
    async def create_menu_item(self, token: str, payload: dict[str, Any]) -> dict[str, Any]:
        pass

    @abstractmethod
    async def update_menu_item(
        self,
        token: str,
        menu_item_id: int,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        """Replace a menu item with the submitted form."""
        pass

    @abstractmethod
    async def delete_menu_item(self, token: str, menu_item_id: int) -> None:
        pass

    @abstractmethod
    async def set_menu_availability(
        self,
        token: str,
        menu_item_id: int,
        available: bool,
    ) -> dict[str, Any]:
        pass

    # =========================================================================
    # TABLES
    # =========================================================================

    @abstractmethod
    async def list_tables(self, token: str) -> list[Table]:
        pass

    @abstractmethod
    async def create_table(
        self,
        token: str,
        table_number: str,
        capacity: Optional[int] = None,
    ) -> dict[str, Any]:
        pass

    # =========================================================================
    # ORDERS
    # =========================================================================

    @abstractmethod
    async def list_orders(self, token: str, force_refresh: bool = False) -> list[Order]:
        """
        Fetch all orders, newest first.

        Args:
            token: Dashboard bearer token
            force_refresh: Bypass any HTTP cache between us and the backend
        """
        pass

    @abstractmethod
    async def create_order(
        self,
        payload: dict[str, Any],
        token: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Place an order.

        Customer orders are anonymous; cashier take-away orders carry the
        dashboard token.

        Returns:
            dict: Backend response, containing ``orderId``
        """
        pass

    @abstractmethod
    async def update_order(
        self,
        token: str,
        order_id: int,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        """Replace an order's items (and attach a note)."""
        pass

    @abstractmethod
    async def update_order_status(self, token: str, order_id: int, status: str) -> dict[str, Any]:
        pass

    @abstractmethod
    async def update_payment_status(
        self,
        token: str,
        order_id: int,
        payment_status: str,
        payment_method: str,
    ) -> dict[str, Any]:
        pass

    # =========================================================================
    # REPORTS
    # =========================================================================

    @abstractmethod
    async def sales_report(self, token: str, start_date: date, end_date: date) -> SalesReport:
        pass

    # =========================================================================
    # PAYMENTS
    # =========================================================================

    @abstractmethod
    async def create_payment_transaction(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Ask the backend to open a Midtrans Snap transaction.

        Returns:
            dict: Contains the Snap ``token`` (and usually ``redirect_url``)
        """
        pass

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify connectivity to the backend.

        Returns:
            bool: True if the backend is reachable
        """
        pass

    async def close(self) -> None:
        """Release network resources."""
        return None

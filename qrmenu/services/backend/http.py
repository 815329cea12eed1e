"""
HTTP Backend Client

Production implementation talking to the restaurant REST API with httpx.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - BACKEND_API_URL pointing at the deployed API (ending in /api)

Failure mapping:
    - Connection errors / timeouts   -> BackendError
    - 401 / 403                      -> AuthenticationError
    - Other non-2xx                  -> BackendError with the backend message
    - Non-JSON or wrong-shaped body  -> MalformedResponseError
"""

import logging
import time
from datetime import date
from typing import Any, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError as PydanticValidationError

from qrmenu.core.config import get_settings
from qrmenu.core.exceptions import (
    AuthenticationError,
    BackendError,
    MalformedResponseError,
)
from qrmenu.schemas import LoginResult, MenuItem, Order, SalesReport, Table
from qrmenu.services.backend.base import BaseBackendClient

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class HttpBackendClient(BaseBackendClient):
    """
    REST API client backed by a shared httpx.AsyncClient.

    Example:
        >>> client = HttpBackendClient()
        >>> menu = await client.list_menu()
        >>> print(menu[0].name)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: REST API root (defaults to BACKEND_API_URL)
            timeout: Per-request timeout in seconds
            transport: Custom transport (tests pass httpx.MockTransport)
        """
        settings = get_settings()
        self.base_url = (base_url or settings.backend_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.backend_timeout_seconds

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

        logger.info(f"HttpBackendClient initialized (base_url={self.base_url})")

    @property
    def provider_name(self) -> str:
        return "http"

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        fallback = f"HTTP {response.status_code}: {response.reason_phrase}"
        try:
            body = response.json()
        except ValueError:
            return response.text.strip() or fallback
        if isinstance(body, dict):
            return body.get("message") or body.get("error") or fallback
        return fallback

    async def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        request_headers = dict(headers or {})
        if token:
            request_headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._client.request(
                method,
                path,
                json=json,
                params=params,
                headers=request_headers,
            )
        except httpx.TimeoutException:
            logger.error(f"Backend timeout: {method} {path}")
            raise BackendError(
                f"Request timeout - Server tidak merespon dalam {self.timeout:g} detik"
            )
        except httpx.HTTPError as e:
            logger.error(f"Backend unreachable: {method} {path} - {e}")
            raise BackendError("Tidak dapat terhubung ke server.")

        if response.status_code in (401, 403):
            logger.warning(f"Backend rejected credentials: {method} {path} ({response.status_code})")
            raise AuthenticationError(self._error_message(response))

        if response.is_error:
            message = self._error_message(response)
            logger.error(f"Backend error: {method} {path} - {message}")
            raise BackendError(message)

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError:
            logger.error(f"Backend sent non-JSON body: {method} {path}")
            raise MalformedResponseError(f"Response dari server bukan JSON ({method} {path})")

    @staticmethod
    def _parse_list(data: Any, model: Type[ModelT], what: str) -> list[ModelT]:
        """Validate a list response. Rows that fail validation are dropped."""
        if not isinstance(data, list):
            raise MalformedResponseError(f"Data {what} tidak valid dari server")

        parsed = []
        for row in data:
            try:
                parsed.append(model.model_validate(row))
            except PydanticValidationError as e:
                logger.warning(f"Skipping malformed {what} row: {e.errors()[:1]}")
        return parsed

    @staticmethod
    def _as_dict(data: Any) -> dict[str, Any]:
        return data if isinstance(data, dict) else {}

    # =========================================================================
    # AUTH
    # =========================================================================

    async def login(self, username: str, password: str) -> LoginResult:
        data = await self._request(
            "POST",
            "/login",
            json={"username": username, "password": password},
        )
        if not isinstance(data, dict) or not data.get("token") or not data.get("user"):
            raise MalformedResponseError("Response tidak lengkap - missing token/user")

        user = data["user"] if isinstance(data["user"], dict) else {}
        return LoginResult(
            token=data["token"],
            role=user.get("role") or "",
            username=user.get("username") or username,
        )

    # =========================================================================
    # MENU
    # =========================================================================

    async def list_menu(self, token: Optional[str] = None) -> list[MenuItem]:
        data = await self._request("GET", "/menu", token=token)
        return self._parse_list(data, MenuItem, "menu")

    async def create_menu_item(self, token: str, payload: dict[str, Any]) -> dict[str, Any]:
        return self._as_dict(await self._request("POST", "/menu", token=token, json=payload))

    async def update_menu_item(
        self,
        token: str,
        menu_item_id: int,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        return self._as_dict(
            await self._request("PUT", f"/menu/{menu_item_id}", token=token, json=payload)
        )

    async def delete_menu_item(self, token: str, menu_item_id: int) -> None:
        await self._request("DELETE", f"/menu/{menu_item_id}", token=token)

    async def set_menu_availability(
        self,
        token: str,
        menu_item_id: int,
        available: bool,
    ) -> dict[str, Any]:
        return self._as_dict(await self._request(
            "PATCH",
            f"/menu/{menu_item_id}/availability",
            token=token,
            json={"is_available": 1 if available else 0},
        ))

    # =========================================================================
    # TABLES
    # =========================================================================

    async def list_tables(self, token: str) -> list[Table]:
        data = await self._request("GET", "/tables", token=token)
        return self._parse_list(data, Table, "meja")

    async def create_table(
        self,
        token: str,
        table_number: str,
        capacity: Optional[int] = None,
    ) -> dict[str, Any]:
        return self._as_dict(await self._request(
            "POST",
            "/tables",
            token=token,
            json={"table_number": table_number, "capacity": capacity},
        ))

    # =========================================================================
    # ORDERS
    # =========================================================================

    async def list_orders(self, token: str, force_refresh: bool = False) -> list[Order]:
        params = None
        headers = None
        if force_refresh:
            params = {"t": int(time.time() * 1000)}
            headers = {"Cache-Control": "no-cache", "Pragma": "no-cache"}

        data = await self._request("GET", "/orders", token=token, params=params, headers=headers)
        return self._parse_list(data, Order, "pesanan")

    async def create_order(
        self,
        payload: dict[str, Any],
        token: Optional[str] = None,
    ) -> dict[str, Any]:
        data = await self._request("POST", "/orders", token=token, json=payload)
        return self._as_dict(data)

    async def update_order(
        self,
        token: str,
        order_id: int,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        return self._as_dict(
            await self._request("PUT", f"/orders/{order_id}", token=token, json=payload)
        )

    async def update_order_status(self, token: str, order_id: int, status: str) -> dict[str, Any]:
        return self._as_dict(await self._request(
            "PUT",
            f"/orders/{order_id}/status",
            token=token,
            json={"status": status},
        ))

    async def update_payment_status(
        self,
        token: str,
        order_id: int,
        payment_status: str,
        payment_method: str,
    ) -> dict[str, Any]:
        return self._as_dict(await self._request(
            "PUT",
            f"/orders/{order_id}/payment_status",
            token=token,
            json={"payment_status": payment_status, "payment_method": payment_method},
        ))

    # =========================================================================
    # REPORTS
    # =========================================================================

    async def sales_report(self, token: str, start_date: date, end_date: date) -> SalesReport:
        data = await self._request(
            "GET",
            "/reports/sales",
            token=token,
            params={"startDate": start_date.isoformat(), "endDate": end_date.isoformat()},
        )
        if data is None:
            return SalesReport()
        if not isinstance(data, dict):
            raise MalformedResponseError("Data laporan tidak valid dari server")
        try:
            return SalesReport.model_validate(data)
        except PydanticValidationError as e:
            raise MalformedResponseError(f"Data laporan tidak valid dari server: {e.errors()[:1]}")

    # =========================================================================
    # PAYMENTS
    # =========================================================================

    async def create_payment_transaction(self, payload: dict[str, Any]) -> dict[str, Any]:
        data = await self._request("POST", "/midtrans/transaction", json=payload)
        if not isinstance(data, dict) or not data.get("token"):
            raise MalformedResponseError("Gagal membuat transaksi Midtrans: token tidak ada")
        return data

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def health_check(self) -> bool:
        try:
            await self._request("GET", "/menu")
            return True
        except BackendError as e:
            logger.warning(f"Backend health check failed: {e.message}")
            return False

    async def close(self) -> None:
        await self._client.aclose()
        logger.debug("HttpBackendClient closed")

"""
Midtrans Payment Service Implementation

Production implementation of Snap checkout. The server key lives with the
restaurant backend, so transactions are opened through its
POST /midtrans/transaction endpoint; this service only shapes the request
and reports the outcome in the shared PaymentTransaction form.

Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - MIDTRANS_CLIENT_KEY for the browser-side Snap widget
"""

import logging
import time
from typing import Any, Optional

from qrmenu.core.config import get_settings
from qrmenu.core.exceptions import BackendError
from qrmenu.services.backend.base import BaseBackendClient
from qrmenu.services.payment.base import BasePaymentService, PaymentTransaction

logger = logging.getLogger(__name__)


class MidtransPaymentService(BasePaymentService):
    """
    Snap transactions opened through the restaurant backend.

    Example:
        >>> service = MidtransPaymentService(get_backend_client())
        >>> tx = await service.create_transaction("admin_12_1700000000000", 45000, [...])
    """

    def __init__(self, backend: BaseBackendClient):
        settings = get_settings()

        if not settings.midtrans_client_key:
            logger.warning(
                "MIDTRANS_CLIENT_KEY is not set; the Snap widget will not load in browsers"
            )

        self.backend = backend

        logger.info(f"MidtransPaymentService initialized (via {backend.provider_name} backend)")

    @property
    def provider_name(self) -> str:
        return "midtrans"

    async def create_transaction(
        self,
        order_id: str,
        gross_amount: int,
        item_details: list[dict[str, Any]],
        extra: Optional[dict[str, Any]] = None,
    ) -> PaymentTransaction:
        start = time.perf_counter()

        payload = {
            "order_id": order_id,
            "gross_amount": int(gross_amount),
            "item_details": item_details,
            **(extra or {}),
        }

        try:
            data = await self.backend.create_payment_transaction(payload)
        except BackendError as e:
            logger.error(f"Midtrans: transaction {order_id} failed - {e.message}")
            return PaymentTransaction(
                success=False,
                order_id=order_id,
                gross_amount=gross_amount,
                error_message=e.message,
                response_time_ms=(time.perf_counter() - start) * 1000,
            )

        logger.info(f"Midtrans: transaction {order_id} opened - Rp {gross_amount}")

        return PaymentTransaction(
            success=True,
            order_id=order_id,
            token=data["token"],
            redirect_url=data.get("redirect_url"),
            gross_amount=gross_amount,
            response_time_ms=(time.perf_counter() - start) * 1000,
        )

    async def health_check(self) -> bool:
        return await self.backend.health_check()

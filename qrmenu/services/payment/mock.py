"""
Mock Payment Service Implementation

Simulates Midtrans Snap without making real API calls.
Used in development mode (ENV_MODE=development) to:
    - Test the complete online checkout flow locally
    - Develop without Midtrans sandbox credentials

Behavior:
    - Simulates gateway response times
    - Optionally fails a share of transactions (simulates gateway outages)
    - Generates Snap-like tokens and sandbox redirect URLs
"""

import asyncio
import logging
import random
import uuid
from typing import Any, Optional

from qrmenu.services.payment.base import BasePaymentService, PaymentTransaction

logger = logging.getLogger(__name__)


class MockPaymentService(BasePaymentService):
    """
    Mock implementation of the payment gateway.

    Attributes:
        failure_rate: Probability of a simulated gateway failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds

    Example:
        >>> service = MockPaymentService(failure_rate=0.0)
        >>> tx = await service.create_transaction("temp_1_abc", 20000, [])
        >>> print(tx.token)
    """

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.transactions: list[dict[str, Any]] = []

        logger.info(
            f"MockPaymentService initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> float:
        """Returns the simulated latency in milliseconds."""
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency > 0:
            await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def create_transaction(
        self,
        order_id: str,
        gross_amount: int,
        item_details: list[dict[str, Any]],
        extra: Optional[dict[str, Any]] = None,
    ) -> PaymentTransaction:
        if gross_amount <= 0:
            return PaymentTransaction(
                success=False,
                order_id=order_id,
                error_message="Jumlah pembayaran harus lebih dari 0",
            )

        latency_ms = await self._simulate_latency()

        if self._should_fail():
            logger.debug(f"Mock: Snap transaction {order_id} failed")
            return PaymentTransaction(
                success=False,
                order_id=order_id,
                gross_amount=gross_amount,
                error_message="Gagal membuat transaksi Midtrans.",
                response_time_ms=latency_ms,
            )

        token = f"snap_mock_{uuid.uuid4().hex[:24]}"
        self.transactions.append({
            "order_id": order_id,
            "gross_amount": gross_amount,
            "item_details": item_details,
            **(extra or {}),
        })

        logger.info(f"Mock: Snap transaction {order_id} opened - Rp {gross_amount}")

        return PaymentTransaction(
            success=True,
            order_id=order_id,
            token=token,
            redirect_url=f"https://app.sandbox.midtrans.com/snap/v2/vtweb/{token}",
            gross_amount=gross_amount,
            response_time_ms=latency_ms,
            metadata={"mock": True},
        )

    async def health_check(self) -> bool:
        logger.debug("Mock: Health check passed")
        return True

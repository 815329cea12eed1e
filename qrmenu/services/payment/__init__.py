"""
Payment Service Factory

Provides a single entry point for obtaining a payment service instance.
The rest of the application stays agnostic about which implementation is
being used.

Usage:
    from qrmenu.services.payment import get_payment_service

    # Returns MockPaymentService or MidtransPaymentService based on ENV_MODE
    payment_service = get_payment_service()

    tx = await payment_service.create_transaction(order_id, 48000, items)

Environment Switching:
    - ENV_MODE=development → MockPaymentService (no gateway calls)
    - ENV_MODE=staging → MidtransPaymentService (sandbox keys)
    - ENV_MODE=production → MidtransPaymentService (production keys)
"""

import logging
from functools import lru_cache

from qrmenu.core.config import get_settings
from qrmenu.services.backend import get_backend_client
from qrmenu.services.payment.base import BasePaymentService, PaymentTransaction
from qrmenu.services.payment.midtrans import MidtransPaymentService
from qrmenu.services.payment.mock import MockPaymentService

logger = logging.getLogger(__name__)


@lru_cache()
def get_payment_service() -> BasePaymentService:
    """
    Get the configured payment service instance.

    The instance is cached (singleton pattern) so every checkout shares it.

    Returns:
        BasePaymentService: Configured payment service instance

    Example:
        >>> service = get_payment_service()
        >>> print(service.provider_name)
        'mock'  # In development mode
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Payment Service: Using MockPaymentService (development mode)")
        return MockPaymentService(
            failure_rate=0.0,
            min_latency=0.1,
            max_latency=0.4,
        )

    logger.info(
        f"Payment Service: Using MidtransPaymentService "
        f"({settings.env_mode.value} mode)"
    )
    return MidtransPaymentService(get_backend_client())


def reset_payment_service() -> None:
    """
    Clear the cached payment service instance.

    The next call to get_payment_service() will create a new instance.
    """
    get_payment_service.cache_clear()
    logger.debug("Payment service cache cleared")


__all__ = [
    "get_payment_service",
    "reset_payment_service",
    "BasePaymentService",
    "PaymentTransaction",
    "MockPaymentService",
    "MidtransPaymentService",
]

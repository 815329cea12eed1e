"""
Payment Service Abstract Base Class

Defines the interface contract for payment gateway implementations.
Both MockPaymentService and MidtransPaymentService implement these methods,
so online checkout behaves the same whichever one is active.

The gateway's only server-side job here is opening a Snap transaction. The
browser runs the Snap widget with the returned token and reports the outcome
back to us; that outcome drives order submission.

Design Pattern: Strategy Pattern
    - Development issues fake Snap tokens locally
    - Staging/production get real tokens through the restaurant backend
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class PaymentTransaction:
    """
    Standardized result of opening a payment transaction.

    Attributes:
        success: Whether the gateway issued a token
        order_id: Gateway order reference (temp_... or admin_...)
        token: Snap token the browser passes to ``snap.pay``
        redirect_url: Hosted payment page, for browsers without the widget
        gross_amount: Amount in whole Rupiah
        error_message: Error description if the transaction was not created
        response_time_ms: Time taken by the gateway
    """
    success: bool
    order_id: Optional[str] = None
    token: Optional[str] = None
    redirect_url: Optional[str] = None
    gross_amount: int = 0
    error_message: Optional[str] = None
    response_time_ms: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "order_id": self.order_id,
            "token": self.token,
            "redirect_url": self.redirect_url,
            "gross_amount": self.gross_amount,
            "error_message": self.error_message,
            "response_time_ms": self.response_time_ms,
        }


class BasePaymentService(ABC):
    """
    Abstract base class for payment gateways.

    Example:
        >>> service = get_payment_service()
        >>> tx = await service.create_transaction(
        ...     order_id="temp_1700000000000_k3j9x0a1b",
        ...     gross_amount=48000,
        ...     item_details=[{"id": "3", "name": "Mie Aceh", "price": 24000, "quantity": 2}],
        ... )
        >>> if tx.success:
        ...     print(tx.token)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the payment provider.

        Returns:
            str: Provider name (e.g., "mock", "midtrans")
        """
        pass

    @abstractmethod
    async def create_transaction(
        self,
        order_id: str,
        gross_amount: int,
        item_details: list[dict[str, Any]],
        extra: Optional[dict[str, Any]] = None,
    ) -> PaymentTransaction:
        """
        Open a Snap transaction.

        Args:
            order_id: Unique gateway order reference
            gross_amount: Total in whole Rupiah; must equal the item sum
            item_details: ``{id, name, price, quantity}`` per line
            extra: Additional top-level fields (custom_field1, customer_details...)

        Returns:
            PaymentTransaction: Standardized result object
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify the gateway can issue tokens.

        Returns:
            bool: True if the service is operational
        """
        pass

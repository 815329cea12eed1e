"""
                        Services Module

Collaborators and helpers behind the ordering flow. Each remote collaborator
has a Mock (development) and a Real (staging/production) implementation.

Services:
    - backend: restaurant REST API client
    - payment: Midtrans Snap transactions
    - qr: table QR codes
    - receipt: printable receipts
    - reports: sales report CSV export
"""

from qrmenu.services.backend import get_backend_client
from qrmenu.services.payment import get_payment_service

__all__ = ["get_backend_client", "get_payment_service"]

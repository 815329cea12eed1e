"""
Shared route dependencies: session stores, collaborators and the current
dashboard session.
"""

from typing import Optional

from fastapi import Cookie, Request

from qrmenu.customer import SessionStore
from qrmenu.dashboard import AdminSession, AdminSessionStore

CART_COOKIE = "qrmenu_cart"
ADMIN_COOKIE = "qrmenu_admin"


def get_customer_store(request: Request) -> SessionStore:
    return request.app.state.customer_sessions


def get_admin_store(request: Request) -> AdminSessionStore:
    return request.app.state.admin_sessions


def current_admin(
    request: Request,
    qrmenu_admin: Optional[str] = Cookie(default=None),
) -> AdminSession:
    """Resolve the dashboard session from its cookie or raise AuthenticationError."""
    return get_admin_store(request).get(qrmenu_admin)

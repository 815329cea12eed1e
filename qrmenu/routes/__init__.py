"""
HTTP routers.

    - customer: /menu/{table} (guest menu, cart, checkout)
    - admin: /admin/* (login-protected dashboard)
"""

from qrmenu.routes import admin, customer

__all__ = ["admin", "customer"]

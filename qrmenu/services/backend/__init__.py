"""
Backend Client Factory

Single entry point for obtaining the restaurant backend client.

Usage:
    from qrmenu.services.backend import get_backend_client

    backend = get_backend_client()
    menu = await backend.list_menu()

Environment Switching:
    - ENV_MODE=development → MockBackendClient (in-memory restaurant)
    - ENV_MODE=staging / production → HttpBackendClient (REST API)
"""

import logging
from functools import lru_cache

from qrmenu.core.config import get_settings
from qrmenu.services.backend.base import BaseBackendClient
from qrmenu.services.backend.http import HttpBackendClient
from qrmenu.services.backend.mock import MockBackendClient

logger = logging.getLogger(__name__)


@lru_cache()
def get_backend_client() -> BaseBackendClient:
    """
    Get the configured backend client instance.

    The instance is cached so the whole process shares one connection pool
    (or, in development, one in-memory restaurant).

    Returns:
        BaseBackendClient: Configured backend client
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Backend: Using MockBackendClient (development mode)")
        return MockBackendClient(min_latency=0.05, max_latency=0.2)

    logger.info(
        f"Backend: Using HttpBackendClient "
        f"({settings.env_mode.value} mode, {settings.backend_api_url})"
    )
    return HttpBackendClient()


def reset_backend_client() -> None:
    """
    Clear the cached backend client instance.

    The next call to get_backend_client() will create a new instance.
    """
    get_backend_client.cache_clear()
    logger.debug("Backend client cache cleared")


__all__ = [
    "get_backend_client",
    "reset_backend_client",
    "BaseBackendClient",
    "HttpBackendClient",
    "MockBackendClient",
]

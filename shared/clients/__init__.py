# shared/clients/__init__.py

"""
Shared Client Connection Pools

Available pools:
- HTTP: get_http_session()

Usage:
    from shared.clients import get_http_session

    session = get_http_session(cookie=config.SESSION_COOKIE)
"""

from shared.clients.http_pool import get_http_session, close_session

__all__ = [
    'get_http_session',
    'close_session',
]

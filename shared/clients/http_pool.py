"""
HTTP Session Connection Pool

Provides thread-local pooled sessions for the Leitstellenspiel endpoints using
the requests library. The overview engine runs blocking requests inside a
thread pool, so every worker thread gets its own session while connections
within that session are reused.

Usage:
    from shared.clients.http_pool import get_http_session

    session = get_http_session(cookie="remember_user_token=...", timeout=20)
    response = session.get("https://www.leitstellenspiel.de/api/userinfo")
    data = response.json()

Features:
- Connection pooling with configurable pool size
- Default timeout applied to every request (TimeoutHTTPAdapter)
- Session cookie forwarded on every request
- No automatic retries: a failed request fails the pass once
"""

import threading
import atexit
import logging
from typing import Optional
from requests import Session
from requests.adapters import HTTPAdapter

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 20

# Global session cache (one per thread for thread safety)
_session_cache = threading.local()


class TimeoutHTTPAdapter(HTTPAdapter):
    """
    Custom HTTP adapter that sets a default timeout if none is provided.
    """
    def __init__(self, *args, **kwargs):
        self.timeout = kwargs.pop("timeout", DEFAULT_TIMEOUT)
        super().__init__(*args, **kwargs)

    def send(self, request, **kwargs):
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = self.timeout
        return super().send(request, **kwargs)


def get_http_session(
    cookie: str = "",
    pool_connections: int = 4,
    pool_maxsize: int = 8,
    timeout: Optional[float] = None
) -> Session:
    """
    Get a thread-local HTTP session with connection pooling.

    Each thread gets its own session instance (thread-safe), but connections
    within that session are pooled for efficiency. A thread's session is
    rebuilt when it is asked for a different cookie.

    Args:
        cookie: Raw Cookie header of an authenticated browser session
        pool_connections: Number of connection pools to cache (default: 4)
        pool_maxsize: Maximum number of connections in each pool (default: 8)
        timeout: Default timeout for all requests (default: DEFAULT_TIMEOUT)

    Returns:
        requests.Session: Configured session
    """
    cached = getattr(_session_cache, 'session', None)
    if cached is not None and getattr(_session_cache, 'cookie', None) == cookie:
        return cached
    if cached is not None:
        close_session()

    logger.info(
        f"Creating new HTTP session for thread {threading.current_thread().name}"
    )

    session = Session()

    adapter = TimeoutHTTPAdapter(
        pool_connections=pool_connections,
        pool_maxsize=pool_maxsize,
        max_retries=0,
        timeout=timeout or DEFAULT_TIMEOUT,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.headers.update({
        'User-Agent': 'LSS-Daily-Overview/1.0',
        'Accept': 'application/json, text/html;q=0.9',
        'Accept-Encoding': 'gzip, deflate',
        'X-Requested-With': 'XMLHttpRequest',
    })
    if cookie:
        session.headers['Cookie'] = cookie

    _session_cache.session = session
    _session_cache.cookie = cookie

    logger.info(
        f"HTTP session created: pool_size={pool_maxsize}, "
        f"timeout={timeout or DEFAULT_TIMEOUT}s, thread={threading.current_thread().name}"
    )

    return session


def close_session():
    """
    Close the HTTP session for the current thread.

    Releases all pooled connections and clears the cached session.
    Called automatically on application shutdown via atexit.
    """
    if getattr(_session_cache, 'session', None) is not None:
        try:
            _session_cache.session.close()
            logger.debug(
                f"Closed HTTP session for thread {threading.current_thread().name}"
            )
        except Exception as e:
            logger.warning(f"Error closing HTTP session: {e}")
        finally:
            _session_cache.session = None
            _session_cache.cookie = None


atexit.register(close_session)

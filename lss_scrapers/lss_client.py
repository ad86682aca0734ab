"""
Leitstellenspiel HTTP client                                         v1.0
------------------------------------------------------------------------
Blocking JSON/HTML downloads from www.leitstellenspiel.de using a pooled,
cookie-authenticated requests session.

Every failure (transport error, non-2xx status, login redirect, undecodable
JSON) is raised as SourceFetchError naming the source and URL. There is no
automatic retry.

Usage:
    client = LssClient("https://www.leitstellenspiel.de", cookie=os.environ["OVERVIEW_SESSION_COOKIE"])
    userinfo = client.get_json("userinfo", "/api/userinfo")
    html = client.get_html("schoolings", "/schoolings")
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urljoin

import requests

from daily_overview.exceptions import SourceFetchError
from shared.clients.http_pool import get_http_session

logger = logging.getLogger(__name__)

LOGIN_PATH_MARKER = "/users/sign_in"


class LssClient:

    def __init__(self, base_url: str, cookie: str = "", timeout: float = 20):
        self.base_url = base_url.rstrip("/")
        self.cookie = cookie
        self.timeout = timeout

    def url(self, path: str) -> str:
        return urljoin(self.base_url + "/", path)

    def _get(self, source: str, path: str) -> requests.Response:
        url = self.url(path)
        session = get_http_session(cookie=self.cookie, timeout=self.timeout)

        try:
            response = session.get(url)
        except requests.RequestException as e:
            raise SourceFetchError(source, f"request failed: {e}", url) from e

        if not response.ok:
            raise SourceFetchError(source, f"HTTP {response.status_code}", url)
        if LOGIN_PATH_MARKER in (response.url or ""):
            raise SourceFetchError(source, "redirected to login, session cookie missing or expired", url)

        logger.debug("Fetched %s (%s, %d bytes)", url, source, len(response.content))
        return response

    def get_json(self, source: str, path: str) -> Any:
        response = self._get(source, path)
        try:
            return response.json()
        except ValueError as e:
            raise SourceFetchError(source, f"invalid JSON: {e}", response.url) from e

    def get_html(self, source: str, path: str) -> str:
        return self._get(source, path).text

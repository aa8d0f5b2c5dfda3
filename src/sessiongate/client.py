"""Browser-side session proxy.

Keeps the ``authenticated``/``user`` pair the UI renders from, and echoes the
``XSRF-TOKEN`` cookie into the ``X-XSRF-TOKEN`` header on every mutating call.
"""

import logging
from typing import Any
from typing import Optional

import httpx

from sessiongate.csrf import is_mutating

logger = logging.getLogger(__name__)


class SessionClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        csrf_cookie_name: str = "XSRF-TOKEN",
        csrf_header_name: str = "X-XSRF-TOKEN",
        landing_route: str = "/",
    ):
        self.http = http
        self.csrf_cookie_name = csrf_cookie_name
        self.csrf_header_name = csrf_header_name
        self.landing_route = landing_route

        self.authenticated = False
        self.user: Optional[str] = None
        self.route: Optional[str] = None
        self.last_error: Optional[str] = None

    def csrf_headers(self) -> dict[str, str]:
        token = self.http.cookies.get(self.csrf_cookie_name)
        return {self.csrf_header_name: token} if token else {}

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if is_mutating(method):
            headers = dict(kwargs.pop("headers", None) or {})
            headers.update(self.csrf_headers())
            kwargs["headers"] = headers
        return await self.http.request(method, url, **kwargs)

    def _forget(self) -> None:
        self.authenticated = False
        self.user = None

    async def refresh(self) -> bool:
        """Ask the server whether this client is logged in."""
        try:
            resp = await self.request("GET", "/auth/session")
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Session check failed: %s", e)
            self.last_error = str(e)
            self._forget()
            return False

        self.authenticated = bool(data.get("authenticated"))
        self.user = data.get("user") if self.authenticated else None
        return self.authenticated

    async def logout(self) -> bool:
        # Whatever happens, the UI must not keep claiming a session.
        try:
            # judged on the logout response itself, not wherever it redirects
            resp = await self.request("POST", "/logout", follow_redirects=False)
        except httpx.HTTPError as e:
            logger.warning("Logout request failed: %s", e)
            self.last_error = str(e)
            self._forget()
            return False

        self._forget()
        if resp.is_success or resp.is_redirect:
            self.last_error = None
            self.route = self.landing_route
            return True

        logger.warning("Logout rejected with status %s", resp.status_code)
        self.last_error = f"HTTP {resp.status_code}"
        return False

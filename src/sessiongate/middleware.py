import logging
from typing import Optional

from air.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.base import RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from sessiongate.auth.session_store import AuthSession
from sessiongate.auth.session_store import SessionStore
from sessiongate.auth.utils import resolve_session
from sessiongate.csrf import CsrfTokenManager
from sessiongate.csrf import is_mutating
from sessiongate.csrf import tokens_match

logger = logging.getLogger(__name__)


class CsrfFilterMiddleware(BaseHTTPMiddleware):
    """Gate mutating requests on the CSRF header, then sync the CSRF cookie.

    The gate runs before any endpoint code. The cookie sync runs on every
    response, rejections included, so a client with a missing or stale
    cookie gets the current token back.
    """

    def __init__(self, app, store: SessionStore, csrf: CsrfTokenManager):
        super().__init__(app)
        self.store = store
        self.csrf = csrf

    def _passes(self, request: Request, session: Optional[AuthSession]) -> bool:
        presented = request.headers.get(self.csrf.header_name)
        if session is not None:
            return self.csrf.validate(session, presented)
        return tokens_match(request.cookies.get(self.csrf.cookie_name), presented)

    def _sync(self, request: Request, response: Response, session: Optional[AuthSession]) -> None:
        if session is not None:
            # The endpoint may have invalidated it (logout)
            session = self.store.get(session.id)
            if session is None:
                return
        self.csrf.sync_cookie(response, session, request.cookies.get(self.csrf.cookie_name))

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        session = await run_in_threadpool(resolve_session, request, self.store)

        if is_mutating(request.method):
            passed = await run_in_threadpool(self._passes, request, session)
            if not passed:
                logger.warning("CSRF check failed: %s %s", request.method, request.url.path)
                response = JSONResponse({"detail": "Bad CSRF token"}, status_code=403)
                await run_in_threadpool(self._sync, request, response, session)
                return response

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error: %s %s", request.method, request.url.path)
            response = JSONResponse({"detail": "Internal Server Error"}, status_code=500)
        await run_in_threadpool(self._sync, request, response, session)
        return response

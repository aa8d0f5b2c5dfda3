"""Per-session anti-forgery tokens, delivered with the double-submit cookie pattern.

The server-side session holds the authoritative token. ``XSRF-TOKEN`` is only
a way to hand it to same-origin JavaScript, which echoes it back in the
``X-XSRF-TOKEN`` header on every state-changing request.
"""

import secrets
from typing import Optional

from starlette.responses import Response

from sessiongate.auth.session_store import AuthSession
from sessiongate.auth.session_store import SessionStore

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})


def new_token() -> str:
    return secrets.token_urlsafe(32)


def is_mutating(method: str) -> bool:
    return method.upper() not in SAFE_METHODS


def tokens_match(bound: Optional[str], presented: Optional[str]) -> bool:
    if not bound or not presented:
        return False
    return secrets.compare_digest(bound.encode(), presented.encode())


class CsrfTokenManager:
    def __init__(
        self,
        store: SessionStore,
        cookie_name: str = "XSRF-TOKEN",
        header_name: str = "X-XSRF-TOKEN",
        secure: bool = False,
        samesite: str = "lax",
    ):
        self.store = store
        self.cookie_name = cookie_name
        self.header_name = header_name
        self.secure = secure
        self.samesite = samesite

    def token_for(self, session: AuthSession) -> Optional[str]:
        if session.csrf_token:
            return session.csrf_token
        # None only when the session disappeared underneath us
        return self.store.bind_token(session.id, new_token())

    def validate(self, session: AuthSession, presented: Optional[str]) -> bool:
        bound = session.csrf_token
        if not bound:
            # snapshot may predate binding
            current = self.store.get(session.id)
            bound = current.csrf_token if current is not None else None
        return tokens_match(bound, presented)

    def set_cookie(self, response: Response, token: str) -> None:
        response.set_cookie(
            key=self.cookie_name,
            value=token,
            path="/",
            httponly=False,  # the client has to read it
            secure=self.secure,
            samesite=self.samesite,
        )

    def response_sets_cookie(self, response: Response) -> bool:
        prefix = f"{self.cookie_name}=".encode("latin-1")
        return any(
            name == b"set-cookie" and value.startswith(prefix)
            for name, value in response.raw_headers
        )

    def sync_cookie(
        self,
        response: Response,
        session: Optional[AuthSession],
        presented_cookie: Optional[str],
    ) -> bool:
        """Make the response carry the current token if the client's copy is missing or stale.

        Returns True when a Set-Cookie was added.
        """
        if self.response_sets_cookie(response):
            return False

        if session is None:
            # No server state: plain double-submit, the cookie is the token
            if presented_cookie:
                return False
            token = new_token()
        else:
            token = self.token_for(session)
            if token is None or token == presented_cookie:
                return False

        self.set_cookie(response, token)
        return True

import logging
from typing import Optional

from itsdangerous import BadData
from itsdangerous import URLSafeTimedSerializer
from starlette.requests import HTTPConnection
from starlette.responses import Response

from sessiongate.auth.session_store import AuthSession
from sessiongate.auth.session_store import SessionStore
from sessiongate.csrf import CsrfTokenManager
from sessiongate.settings import settings

logger = logging.getLogger(__name__)

SESSION_SALT = "sessiongate-session-v1"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key=settings.session_secret, salt=SESSION_SALT)


def sign_session_id(session_id: str) -> str:
    return _serializer().dumps(session_id)


def unsign_session_id(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        session_id = _serializer().loads(value, max_age=settings.session_ttl_seconds)
    except BadData:
        logger.debug("Rejected session cookie with bad signature")
        return None
    return session_id if isinstance(session_id, str) else None


def get_session_id(conn: HTTPConnection) -> Optional[str]:
    return unsign_session_id(conn.cookies.get(settings.session_cookie_name))


def resolve_session(conn: HTTPConnection, store: SessionStore) -> Optional[AuthSession]:
    session_id = get_session_id(conn)
    if not session_id:
        return None
    return store.get(session_id)


def set_session_cookie(response: Response, session: AuthSession) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=sign_session_id(session.id),
        max_age=settings.session_ttl_seconds,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )


def start_session(
    conn: Optional[HTTPConnection],
    response: Response,
    store: SessionStore,
    csrf: CsrfTokenManager,
    principal: str,
) -> AuthSession:
    """Entry point for the identity-provider callback once it has a principal.

    Replaces whatever session the request carried, sets the session cookie
    and hands out the new session's CSRF token on the same response.
    """
    if conn is not None:
        previous = get_session_id(conn)
        if previous:
            store.invalidate(previous)

    session = store.create(principal)
    set_session_cookie(response, session)

    token = csrf.token_for(session)
    if token:
        csrf.set_cookie(response, token)
    return session

from typing import Optional

from fastapi import Depends
from fastapi import Request

from sessiongate.auth.session_store import AuthSession
from sessiongate.auth.session_store import SessionStore
from sessiongate.auth.utils import resolve_session


def get_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def request_session(
    request: Request, store: SessionStore = Depends(get_store)
) -> Optional[AuthSession]:
    return resolve_session(request, store)


def current_session(
    session: Optional[AuthSession] = Depends(request_session),
) -> Optional[AuthSession]:
    if session is None or not session.authenticated:
        return None
    return session

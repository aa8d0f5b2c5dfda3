import logging
from typing import Optional

from air.responses import RedirectResponse
from fastapi import APIRouter
from fastapi import Depends
from fastapi.responses import JSONResponse

from sessiongate.auth.deps import current_session
from sessiongate.auth.deps import get_store
from sessiongate.auth.deps import request_session
from sessiongate.auth.schema import SessionOut
from sessiongate.auth.session_store import AuthSession
from sessiongate.auth.session_store import SessionStore
from sessiongate.auth.utils import clear_session_cookie
from sessiongate.settings import settings

logger = logging.getLogger(__name__)

# JSON regardless of the app's default response class
router = APIRouter(tags=["auth"], default_response_class=JSONResponse)


@router.get("/auth/session", response_model=SessionOut)
def session_state(session: Optional[AuthSession] = Depends(current_session)):
    if session is None:
        return SessionOut(authenticated=False)
    return SessionOut(authenticated=True, user=session.principal)


@router.post("/logout")
def perform_logout(
    session: Optional[AuthSession] = Depends(request_session),
    store: SessionStore = Depends(get_store),
):
    # Unknown or expired sessions log out successfully too
    if session is not None:
        store.invalidate(session.id)
        logger.info("Logged out principal=%s", session.principal)

    response = RedirectResponse(url=settings.landing_route, status_code=303)
    clear_session_cookie(response)
    return response

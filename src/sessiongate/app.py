from typing import Optional

import air
from air.responses import JSONResponse

from sessiongate.auth.routes import router as auth_router
from sessiongate.auth.session_store import SessionStore
from sessiongate.auth.session_store import build_session_store
from sessiongate.csrf import CsrfTokenManager
from sessiongate.log import configure_logging
from sessiongate.middleware import CsrfFilterMiddleware
from sessiongate.settings import settings


def create_app(store: Optional[SessionStore] = None) -> air.Air:
    configure_logging(settings.log_level)

    if store is None:
        store = build_session_store(settings)
    csrf = CsrfTokenManager(
        store,
        cookie_name=settings.csrf_cookie_name,
        header_name=settings.csrf_header_name,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )

    app = air.Air()
    app.state.session_store = store
    app.state.csrf = csrf

    app.add_middleware(CsrfFilterMiddleware, store=store, csrf=csrf)
    app.include_router(auth_router)

    @app.get("/healthz")
    def healthz():
        return JSONResponse({"ok": True})

    return app


app = create_app()

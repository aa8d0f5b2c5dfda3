import os

# Minimal values for tests
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SESSION_SECRET", "test-secret")
os.environ.setdefault("SESSION_BACKEND", "memory")

from fastapi import APIRouter  # noqa: E402
from fastapi import Depends  # noqa: E402
from fastapi import Request  # noqa: E402
from httpx import ASGITransport  # noqa: E402
from httpx import AsyncClient  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from starlette.responses import JSONResponse  # noqa: E402

from sessiongate.app import create_app  # noqa: E402
from sessiongate.auth import models  # noqa: E402,F401  (registers the sessions table)
from sessiongate.auth.deps import current_session  # noqa: E402
from sessiongate.auth.session_store import MemorySessionStore  # noqa: E402
from sessiongate.auth.session_store import SqlSessionStore  # noqa: E402
from sessiongate.auth.utils import sign_session_id  # noqa: E402
from sessiongate.auth.utils import start_session  # noqa: E402
from sessiongate.auth.utils import unsign_session_id  # noqa: E402
from sessiongate.db import Base  # noqa: E402
from sessiongate.db import make_engine  # noqa: E402
from sessiongate.settings import settings  # noqa: E402


@pytest.fixture
def engine():
    test_engine = make_engine("sqlite:///:memory:")
    Base.metadata.create_all(test_engine)
    yield test_engine
    Base.metadata.drop_all(test_engine)
    test_engine.dispose()


# ---- Every store-backed test runs against both backends ----
@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        yield MemorySessionStore(ttl_seconds=3600)
        return
    engine = request.getfixturevalue("engine")
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    yield SqlSessionStore(factory, ttl_seconds=3600)


# ---- Records each time the mutating test endpoint actually runs ----
@pytest.fixture
def calls():
    return []


@pytest.fixture
def app(store, calls):
    application = create_app(store=store)
    router = APIRouter()

    # Stands in for the identity provider's callback
    @router.get("/_test/login/{principal}")
    def fake_provider_callback(principal: str, request: Request):
        response = JSONResponse({"ok": True})
        start_session(request, response, store, application.state.csrf, principal)
        return response

    @router.post("/_test/mutate")
    def mutate(session=Depends(current_session)):
        calls.append(session)
        return JSONResponse({"ok": True})

    @router.get("/_test/boom")
    def boom():
        raise RuntimeError("boom")

    application.include_router(router)
    return application


@pytest.fixture
def csrf(app):
    return app.state.csrf


# ---- HTTP client bound to the ASGI app ----
@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
async def logged_in(client):
    """Log in as alice through the provider callback; returns the session id."""
    resp = await client.get("/_test/login/alice")
    assert resp.status_code == 200
    return unsign_session_id(client.cookies.get(settings.session_cookie_name))


@pytest.fixture
def fresh_session(store, client):
    """A session the provider created but no response has gone out for yet."""
    session = store.create("bob")
    client.cookies.set(settings.session_cookie_name, sign_session_id(session.id))
    return session


# ---- Header a same-origin script would send, copied from the cookie ----
@pytest.fixture
def csrf_header(client):
    return lambda: {settings.csrf_header_name: client.cookies.get(settings.csrf_cookie_name)}


# ---- CSRF token values a response tried to set ----
@pytest.fixture
def csrf_cookies_set():
    prefix = f"{settings.csrf_cookie_name}="
    return lambda resp: [
        h.split(";", 1)[0][len(prefix) :]
        for h in resp.headers.get_list("set-cookie")
        if h.startswith(prefix)
    ]

import logging
import secrets
import threading
import time
from abc import ABC
from abc import abstractmethod
from dataclasses import dataclass
from dataclasses import replace
from typing import Optional

from sqlalchemy import delete
from sqlalchemy import update
from sqlalchemy.orm import sessionmaker

from sessiongate.auth.models import SessionRow
from sessiongate.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthSession:
    id: str
    principal: str
    created_at: float
    expires_at: float
    authenticated: bool = True
    csrf_token: Optional[str] = None

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.time()) >= self.expires_at


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionStore(ABC):
    """Server-side session state keyed by session id.

    Lookups hand out immutable snapshots. The only in-place change a session
    ever sees is the one-time binding of its CSRF token, done through
    ``bind_token`` as a compare-and-set.
    """

    def __init__(self, ttl_seconds: int):
        self.ttl_seconds = ttl_seconds

    def _new_session(self, principal: str) -> AuthSession:
        now = time.time()
        return AuthSession(
            id=new_session_id(),
            principal=principal,
            created_at=now,
            expires_at=now + self.ttl_seconds,
        )

    @abstractmethod
    def create(self, principal: str) -> AuthSession: ...

    @abstractmethod
    def get(self, session_id: str) -> Optional[AuthSession]: ...

    @abstractmethod
    def invalidate(self, session_id: str) -> None: ...

    @abstractmethod
    def bind_token(self, session_id: str, candidate: str) -> Optional[str]:
        """Bind ``candidate`` unless a token is already bound; return the bound one.

        Returns None when the session does not exist.
        """

    @abstractmethod
    def purge_expired(self) -> int: ...


class MemorySessionStore(SessionStore):
    # create() sweeps expired sessions at most this often
    purge_interval_seconds = 60

    def __init__(self, ttl_seconds: int = 60 * 60 * 24 * 14):
        super().__init__(ttl_seconds)
        self._sessions: dict[str, AuthSession] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._last_purge = time.time()

    def _lock_for(self, session_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = self._locks[session_id] = threading.Lock()
            return lock

    def _drop(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        with self._registry_lock:
            self._locks.pop(session_id, None)

    def create(self, principal: str) -> AuthSession:
        now = time.time()
        if now - self._last_purge >= self.purge_interval_seconds:
            self._last_purge = now
            self.purge_expired()

        session = self._new_session(principal)
        with self._lock_for(session.id):
            self._sessions[session.id] = session
        logger.info("Session created for principal=%s", principal)
        return session

    def get(self, session_id: str) -> Optional[AuthSession]:
        if session_id not in self._sessions:
            return None
        with self._lock_for(session_id):
            session = self._sessions.get(session_id)
            if session is None or session.is_expired():
                self._drop(session_id)
                return None
            return session

    def invalidate(self, session_id: str) -> None:
        with self._lock_for(session_id):
            existed = session_id in self._sessions
            self._drop(session_id)
        if existed:
            logger.info("Session invalidated id=%s...", session_id[:8])

    def bind_token(self, session_id: str, candidate: str) -> Optional[str]:
        if session_id not in self._sessions:
            return None
        with self._lock_for(session_id):
            session = self._sessions.get(session_id)
            if session is None:
                self._drop(session_id)
                return None
            if session.csrf_token:
                return session.csrf_token
            self._sessions[session_id] = replace(session, csrf_token=candidate)
            return candidate

    def purge_expired(self) -> int:
        now = time.time()
        expired = [sid for sid, s in list(self._sessions.items()) if s.is_expired(now)]
        for sid in expired:
            with self._lock_for(sid):
                self._drop(sid)
        return len(expired)


class SqlSessionStore(SessionStore):
    def __init__(self, session_factory: sessionmaker, ttl_seconds: int = 60 * 60 * 24 * 14):
        super().__init__(ttl_seconds)
        self.session_factory = session_factory

    @staticmethod
    def _to_session(row: SessionRow) -> AuthSession:
        return AuthSession(
            id=row.id,
            principal=row.principal,
            authenticated=row.authenticated,
            csrf_token=row.csrf_token,
            created_at=row.created_at,
            expires_at=row.expires_at,
        )

    def create(self, principal: str) -> AuthSession:
        session = self._new_session(principal)
        with self.session_factory() as db:
            db.add(
                SessionRow(
                    id=session.id,
                    principal=session.principal,
                    authenticated=session.authenticated,
                    csrf_token=None,
                    created_at=session.created_at,
                    expires_at=session.expires_at,
                )
            )
            db.commit()
        logger.info("Session created for principal=%s", principal)
        return session

    def get(self, session_id: str) -> Optional[AuthSession]:
        with self.session_factory() as db:
            row = db.get(SessionRow, session_id)
            if row is None:
                return None
            session = self._to_session(row)
            if session.is_expired():
                db.execute(delete(SessionRow).where(SessionRow.id == session_id))
                db.commit()
                return None
            return session

    def invalidate(self, session_id: str) -> None:
        with self.session_factory() as db:
            result = db.execute(delete(SessionRow).where(SessionRow.id == session_id))
            db.commit()
        if result.rowcount:
            logger.info("Session invalidated id=%s...", session_id[:8])

    def bind_token(self, session_id: str, candidate: str) -> Optional[str]:
        with self.session_factory() as db:
            # Only the first writer wins; everyone re-reads the winner.
            db.execute(
                update(SessionRow)
                .where(SessionRow.id == session_id, SessionRow.csrf_token.is_(None))
                .values(csrf_token=candidate)
            )
            db.commit()
            row = db.get(SessionRow, session_id)
            return row.csrf_token if row is not None else None

    def purge_expired(self) -> int:
        with self.session_factory() as db:
            result = db.execute(delete(SessionRow).where(SessionRow.expires_at <= time.time()))
            db.commit()
        return result.rowcount or 0


def build_session_store(cfg: Settings) -> SessionStore:
    if cfg.session_backend == "memory":
        return MemorySessionStore(ttl_seconds=cfg.session_ttl_seconds)

    from sessiongate.db import Base
    from sessiongate.db import SessionLocal
    from sessiongate.db import engine

    Base.metadata.create_all(bind=engine, tables=[SessionRow.__table__])
    return SqlSessionStore(SessionLocal, ttl_seconds=cfg.session_ttl_seconds)

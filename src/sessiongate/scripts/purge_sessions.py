"""
Delete expired sessions from the configured session store.

Meant for cron. Expired sessions are already unusable (lookups drop them),
this only reclaims the rows nobody comes back for.
"""

import sys

from sqlalchemy.exc import SQLAlchemyError

from sessiongate.auth.session_store import build_session_store
from sessiongate.settings import settings


def main() -> int:
    if settings.session_backend != "database":
        print("[purge_sessions] ℹ️ In-memory backend, nothing persisted. Nothing to do.")
        return 0

    try:
        store = build_session_store(settings)
        removed = store.purge_expired()
    except SQLAlchemyError as e:
        print(f"[purge_sessions] ❌ Failed to purge sessions: {e}", file=sys.stderr)
        return 1

    print(f"[purge_sessions] ✅ Removed {removed} expired session(s).")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

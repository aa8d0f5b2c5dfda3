from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sessiongate.settings import settings


def make_engine(database_url: str):
    connect_args = {}
    kwargs = {}
    if database_url.startswith("sqlite"):
        # Needed for SQLite + multithreaded servers
        connect_args = {"check_same_thread": False}
        if ":memory:" in database_url:
            # One shared connection, otherwise every thread sees its own empty db
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, future=True, connect_args=connect_args, **kwargs)


engine = make_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

Base = declarative_base()

from sqlalchemy import Boolean
from sqlalchemy import Column
from sqlalchemy import Float
from sqlalchemy import String

from sessiongate.db import Base


class SessionRow(Base):
    __tablename__ = "sessions"

    id = Column(String(64), primary_key=True)
    principal = Column(String(255), index=True, nullable=False)
    authenticated = Column(Boolean, default=True, nullable=False)
    csrf_token = Column(String(64), nullable=True)
    # epoch seconds
    created_at = Column(Float, nullable=False)
    expires_at = Column(Float, index=True, nullable=False)

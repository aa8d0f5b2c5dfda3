from typing import Optional

from pydantic import BaseModel


class SessionOut(BaseModel):
    authenticated: bool
    user: Optional[str] = None

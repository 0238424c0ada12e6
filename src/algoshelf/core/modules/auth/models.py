"""Admin session token models."""

from datetime import datetime
from typing import NewType

from pydantic import BaseModel, Field

AuthToken = NewType("AuthToken", str)

ADMIN_SUBJECT = "admin"


class Principal(BaseModel):
    """Verified identity carried by a session token."""

    subject: str = Field(..., description="Identity asserted by the token (always 'admin')")
    issued_at: datetime = Field(..., description="When the token was issued")
    expires_at: datetime = Field(..., description="When the token stops being accepted")


class IssuedToken(BaseModel):
    """Token handed out on successful login."""

    token: AuthToken
    expires_at: datetime

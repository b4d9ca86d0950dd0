"""
Source API credentials.
"""

from pydantic import Field
from typing import Optional
from datetime import datetime

from models.base import BaseSchema, FrozenSchema


class Credentials(BaseSchema):
    """
    In-flight credential holder.

    Mutable: a refresh replaces access_token in place so every
    later call in the run uses the new token.
    """

    access_token: str = Field(..., min_length=1)
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None

    @property
    def can_refresh(self) -> bool:
        return bool(self.refresh_token)


class TokenGrant(FrozenSchema):
    """Access token issued by a refresh exchange."""

    access_token: str
    expires_in: Optional[int] = None

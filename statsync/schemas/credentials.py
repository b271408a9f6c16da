from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class TokenSet(BaseModel):
    """Token material returned by a provider refresh call.

    Expiry may be given relative (``*_expires_in`` seconds) or absolute
    (``*_expires_at``); relative wins when both are present.
    """

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    expires_at: Optional[datetime] = None
    refresh_expires_in: Optional[int] = None
    refresh_expires_at: Optional[datetime] = None


class DecryptedCredentials(BaseModel):
    credentials: Optional[Any] = None  # {"username", "password"} or {"api_key"}
    access_token: Optional[str] = None
    credential_type: str
    config: Dict[str, Any] = Field(default_factory=dict)
    is_token_expired: bool


class RefreshResult(BaseModel):
    access_token: Optional[str] = None
    refreshed: bool


class IntegrationSummary(BaseModel):
    """Display-safe view of a credential; never carries secrets."""

    provider: str
    credential_type: str
    is_active: bool
    token_expires_at: Optional[datetime] = None
    last_refreshed_at: Optional[datetime] = None
    config: Dict[str, Any] = Field(default_factory=dict)
    has_errors: bool

    class Config:
        from_attributes = True


class ConfigUpdate(BaseModel):
    config: Dict[str, Any]


class CredentialsSave(BaseModel):
    credentials: Dict[str, Any]
    config: Dict[str, Any] = Field(default_factory=dict)
    credential_type: str = "basic"

from __future__ import annotations

import datetime as dt
import uuid
from typing import Optional

from sqlalchemy import (JSON, Boolean, Column, DateTime, Index, Integer, String,
                        Text, UniqueConstraint, Uuid)
from sqlalchemy.sql import func

from statsync.config import TOKEN_REFRESH_BUFFER_MINUTES
from statsync.db import Base


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def as_utc(value: Optional[dt.datetime]) -> Optional[dt.datetime]:
    """Treat naive timestamps (SQLite drops tzinfo) as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=dt.timezone.utc)


class IntegrationCredential(Base):
    """Encrypted provider credentials, one row per (tenant, provider)."""

    __tablename__ = "integration_credentials"
    __table_args__ = (
        UniqueConstraint("tenant_id", "provider", name="uq_integration_credentials_tenant_provider"),
        Index("ix_integration_credentials_provider", "provider"),
        Index("ix_integration_credentials_is_active", "is_active"),
        Index("ix_integration_credentials_token_expires_at", "token_expires_at"),
    )

    PROVIDERS = ("presto", "hudl", "synergy")
    CREDENTIAL_TYPES = ("basic", "oauth2", "api_key")

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    provider = Column(String(50), nullable=False)  # 'presto', 'hudl', ...
    credential_type = Column(String(20), nullable=False, default="basic")

    # Fernet-encrypted secrets
    credentials_encrypted = Column(Text, nullable=True)  # username/password or API key JSON
    access_token_encrypted = Column(Text, nullable=True)
    refresh_token_encrypted = Column(Text, nullable=True)

    # Token lifecycle
    token_expires_at = Column(DateTime(timezone=True), nullable=True)
    refresh_token_expires_at = Column(DateTime(timezone=True), nullable=True)
    last_refreshed_at = Column(DateTime(timezone=True), nullable=True)

    # Refresh backoff
    refresh_error_count = Column(Integer, nullable=False, default=0)
    last_refresh_error = Column(Text, nullable=True)  # sanitized
    is_active = Column(Boolean, nullable=False, default=True)

    # Provider-specific settings (external season/team ids, ...)
    config = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def is_token_expired(self, buffer_minutes: int = TOKEN_REFRESH_BUFFER_MINUTES) -> bool:
        """True when the access token is missing an expiry or expires within the buffer."""
        expires_at = as_utc(self.token_expires_at)
        if expires_at is None:
            return True
        return expires_at <= utcnow() + dt.timedelta(minutes=buffer_minutes)

    def is_refresh_token_expired(self) -> bool:
        expires_at = as_utc(self.refresh_token_expires_at)
        if expires_at is None:
            return False
        return expires_at <= utcnow()

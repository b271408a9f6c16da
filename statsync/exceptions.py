"""Errors raised by the credential lifecycle and sync layers.

``ReauthRequired`` and ``CredentialDeactivated`` are terminal: the integration
stays off until someone re-authenticates it. Everything else is worth retrying
on the next scheduled run.
"""
from __future__ import annotations

from typing import Optional
from uuid import UUID


class IntegrationError(Exception):
    """Base class for integration credential and sync failures."""

    def __init__(
        self,
        message: str,
        tenant_id: Optional[UUID] = None,
        provider: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.tenant_id = tenant_id
        self.provider = provider


class CredentialNotFound(IntegrationError, LookupError):
    """No (active) credential exists for the tenant/provider pair."""


class NoRefreshToken(IntegrationError):
    """Access token expired and there is no refresh token to renew it."""


class DecryptionFailed(IntegrationError):
    """Stored secret material could not be decrypted."""


class TokenRefreshFailed(IntegrationError):
    """The refresh call failed but the credential is still active."""


class ProviderCallFailed(IntegrationError):
    """A call to the stats provider failed; raised by sync engines."""


class TerminalCredentialError(IntegrationError):
    """The credential needs manual re-authentication before it can be used."""


class ReauthRequired(TerminalCredentialError):
    """The refresh token itself has expired."""


class CredentialDeactivated(TerminalCredentialError):
    """Too many consecutive refresh failures; the credential was switched off."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union
from uuid import UUID

from fastapi import Depends
from sqlalchemy import and_, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from statsync.config import MAX_REFRESH_ERRORS
from statsync.db import get_db
from statsync.exceptions import (CredentialDeactivated, CredentialNotFound,
                                 DecryptionFailed, IntegrationError,
                                 NoRefreshToken, ReauthRequired,
                                 TokenRefreshFailed)
from statsync.models.integration_credential import (IntegrationCredential, as_utc,
                                                      utcnow)
from statsync.schemas.credentials import (DecryptedCredentials,
                                          IntegrationSummary, RefreshResult,
                                          TokenSet)
from statsync.security import sanitize_error
from statsync.services.encryption_service import EncryptionService

logger = logging.getLogger(__name__)

RefreshFn = Callable[[str], Awaitable[Union[TokenSet, Mapping[str, Any]]]]


class IntegrationCredentialService:
    """Encrypted credential storage with token refresh and error backoff.

    Callers (sync engines, admin routes) never see ciphertext and never decide
    when a token needs refreshing; they hand ``refresh_token_if_needed`` a
    provider-specific ``refresh_fn`` and get back a usable access token.
    """

    def __init__(
        self,
        session: AsyncSession,
        encryption: Optional[EncryptionService] = None,
        max_refresh_errors: int = MAX_REFRESH_ERRORS,
    ) -> None:
        self.session = session
        self.encryption = encryption or EncryptionService()
        self.max_refresh_errors = max_refresh_errors

    async def _find(
        self, tenant_id: UUID, provider: str, active_only: bool = False
    ) -> Optional[IntegrationCredential]:
        conditions = [
            IntegrationCredential.tenant_id == tenant_id,
            IntegrationCredential.provider == provider,
        ]
        if active_only:
            conditions.append(IntegrationCredential.is_active == True)  # noqa: E712
        stmt = select(IntegrationCredential).where(and_(*conditions))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _find_or_raise(
        self, tenant_id: UUID, provider: str, active_only: bool = False
    ) -> IntegrationCredential:
        credential = await self._find(tenant_id, provider, active_only=active_only)
        if credential is None:
            qualifier = "active " if active_only else ""
            raise CredentialNotFound(
                f"No {qualifier}{provider} credentials found for tenant {tenant_id}",
                tenant_id=tenant_id,
                provider=provider,
            )
        return credential

    async def get_credentials(self, tenant_id: UUID, provider: str) -> DecryptedCredentials:
        """Decrypt the active credential for a tenant/provider pair."""
        credential = await self._find_or_raise(tenant_id, provider, active_only=True)

        credentials = None
        if credential.credentials_encrypted:
            try:
                credentials = self.encryption.decrypt(credential.credentials_encrypted)
            except DecryptionFailed as e:
                logger.error(f"Failed to decrypt {provider} credentials for tenant {tenant_id}")
                raise DecryptionFailed(
                    "Failed to decrypt credentials", tenant_id=tenant_id, provider=provider
                ) from e

        access_token = None
        if credential.access_token_encrypted:
            try:
                access_token = self.encryption.decrypt(credential.access_token_encrypted)
            except DecryptionFailed:
                # Basic credentials may still be usable without the token
                logger.error(f"Failed to decrypt {provider} access token for tenant {tenant_id}")

        return DecryptedCredentials(
            credentials=credentials,
            access_token=access_token,
            credential_type=credential.credential_type,
            config=dict(credential.config or {}),
            is_token_expired=credential.is_token_expired(),
        )

    async def save_credentials(
        self,
        tenant_id: UUID,
        provider: str,
        credentials: Any,
        config: Optional[Dict[str, Any]] = None,
        credential_type: str = "basic",
    ) -> IntegrationCredential:
        """Encrypt and upsert credentials; a save always reactivates and clears errors."""
        if credential_type not in IntegrationCredential.CREDENTIAL_TYPES:
            raise ValueError(f"Unsupported credential type: {credential_type}")

        encrypted = self.encryption.encrypt(credentials)
        credential = await self._find(tenant_id, provider)
        created = credential is None
        if created:
            credential = IntegrationCredential(tenant_id=tenant_id, provider=provider)
            self.session.add(credential)

        credential.credential_type = credential_type
        credential.credentials_encrypted = encrypted
        credential.config = dict(config or {})
        credential.is_active = True
        credential.refresh_error_count = 0
        credential.last_refresh_error = None

        await self.session.commit()
        await self.session.refresh(credential)

        logger.info(f"{'Created' if created else 'Updated'} {provider} credentials for tenant {tenant_id}")
        return credential

    async def save_tokens(
        self,
        tenant_id: UUID,
        provider: str,
        tokens: Union[TokenSet, Mapping[str, Any]],
    ) -> IntegrationCredential:
        """Attach token material to an existing credential."""
        credential = await self._find_or_raise(tenant_id, provider)
        if not isinstance(tokens, TokenSet):
            tokens = TokenSet.model_validate(tokens)

        now = utcnow()
        credential.last_refreshed_at = now
        credential.refresh_error_count = 0
        credential.last_refresh_error = None

        if tokens.access_token:
            credential.access_token_encrypted = self.encryption.encrypt(tokens.access_token)
        if tokens.refresh_token:
            credential.refresh_token_encrypted = self.encryption.encrypt(tokens.refresh_token)

        if tokens.expires_in:
            credential.token_expires_at = now + dt.timedelta(seconds=tokens.expires_in)
        elif tokens.expires_at:
            credential.token_expires_at = as_utc(tokens.expires_at).astimezone(dt.timezone.utc)

        if tokens.refresh_expires_in:
            credential.refresh_token_expires_at = now + dt.timedelta(seconds=tokens.refresh_expires_in)
        elif tokens.refresh_expires_at:
            credential.refresh_token_expires_at = as_utc(tokens.refresh_expires_at).astimezone(dt.timezone.utc)

        await self.session.commit()
        await self.session.refresh(credential)

        logger.info(
            f"Saved {provider} tokens for tenant {tenant_id}, expires at {credential.token_expires_at}"
        )
        return credential

    async def update_config(
        self, tenant_id: UUID, provider: str, config: Dict[str, Any]
    ) -> IntegrationCredential:
        """Shallow-merge ``config`` into the stored provider settings."""
        credential = await self._find_or_raise(tenant_id, provider)

        # Reassign so the JSON column is flagged dirty
        credential.config = {**(credential.config or {}), **config}
        await self.session.commit()
        await self.session.refresh(credential)

        logger.info(f"Updated {provider} config for tenant {tenant_id}")
        return credential

    async def refresh_token_if_needed(
        self, tenant_id: UUID, provider: str, refresh_fn: RefreshFn
    ) -> RefreshResult:
        """Return a valid access token, refreshing it through ``refresh_fn`` when expired.

        Refresh failures are counted; once ``max_refresh_errors`` consecutive
        failures accumulate the credential is deactivated and every later call
        raises ``CredentialDeactivated`` without touching the provider.
        Concurrent calls for the same pair are not coalesced.
        """
        credential = await self._find(tenant_id, provider)
        if credential is None or not credential.is_active:
            if credential is not None and credential.refresh_error_count >= self.max_refresh_errors:
                raise CredentialDeactivated(
                    f"{provider} credentials for tenant {tenant_id} were deactivated after "
                    f"repeated refresh failures. Re-authentication required.",
                    tenant_id=tenant_id,
                    provider=provider,
                )
            raise CredentialNotFound(
                f"No active {provider} credentials found for tenant {tenant_id}",
                tenant_id=tenant_id,
                provider=provider,
            )

        if not credential.is_token_expired():
            access_token = None
            if credential.access_token_encrypted:
                access_token = self.encryption.decrypt(credential.access_token_encrypted)
            return RefreshResult(access_token=access_token, refreshed=False)

        if not credential.refresh_token_encrypted:
            raise NoRefreshToken(
                f"No refresh token available for {provider} tenant {tenant_id}",
                tenant_id=tenant_id,
                provider=provider,
            )

        if credential.is_refresh_token_expired():
            credential.is_active = False
            await self.session.commit()
            logger.warning(f"{provider} refresh token expired for tenant {tenant_id}; credentials deactivated")
            raise ReauthRequired(
                f"Refresh token expired for {provider} tenant {tenant_id}. Re-authentication required.",
                tenant_id=tenant_id,
                provider=provider,
            )

        try:
            refresh_token = self.encryption.decrypt(credential.refresh_token_encrypted)
            new_tokens = await refresh_fn(refresh_token)
            if not isinstance(new_tokens, TokenSet):
                new_tokens = TokenSet.model_validate(new_tokens)
            if not new_tokens.access_token:
                raise ValueError("Refresh response did not include an access token")
        except Exception as e:
            raise await self._record_refresh_failure(credential, sanitize_error(str(e))) from e

        # save_tokens also clears the error count and stamps last_refreshed_at
        await self.save_tokens(tenant_id, provider, new_tokens)
        logger.info(f"Successfully refreshed {provider} tokens for tenant {tenant_id}")

        return RefreshResult(access_token=new_tokens.access_token, refreshed=True)

    async def _record_refresh_failure(
        self, credential: IntegrationCredential, error_message: str
    ) -> IntegrationError:
        """Count a failed refresh, deactivating at the threshold; returns the error to raise."""
        tenant_id, provider = credential.tenant_id, credential.provider
        credential.refresh_error_count = (credential.refresh_error_count or 0) + 1
        credential.last_refresh_error = error_message
        deactivated = credential.refresh_error_count >= self.max_refresh_errors
        if deactivated:
            credential.is_active = False
        attempts = credential.refresh_error_count
        await self.session.commit()

        if deactivated:
            logger.error(
                f"{provider} credentials deactivated for tenant {tenant_id} after {attempts} failures"
            )
            return CredentialDeactivated(
                f"{provider} credentials deactivated due to repeated refresh failures. "
                f"Re-authentication required.",
                tenant_id=tenant_id,
                provider=provider,
            )

        logger.warning(
            f"{provider} token refresh failed for tenant {tenant_id} (attempt {attempts}): {error_message}"
        )
        return TokenRefreshFailed(
            f"{provider} token refresh failed: {error_message}",
            tenant_id=tenant_id,
            provider=provider,
        )

    async def deactivate_credentials(
        self, tenant_id: UUID, provider: str
    ) -> Optional[IntegrationCredential]:
        credential = await self._find(tenant_id, provider)
        if credential is not None:
            credential.is_active = False
            await self.session.commit()
            logger.info(f"Deactivated {provider} credentials for tenant {tenant_id}")
        return credential

    async def delete_credentials(self, tenant_id: UUID, provider: str) -> bool:
        stmt = delete(IntegrationCredential).where(
            and_(
                IntegrationCredential.tenant_id == tenant_id,
                IntegrationCredential.provider == provider,
            )
        )
        result = await self.session.execute(stmt)
        await self.session.commit()

        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Deleted {provider} credentials for tenant {tenant_id}")
        return deleted

    async def get_team_integrations(self, tenant_id: UUID) -> List[IntegrationSummary]:
        """Redacted summary of every credential a tenant holds."""
        stmt = (
            select(IntegrationCredential)
            .where(IntegrationCredential.tenant_id == tenant_id)
            .order_by(IntegrationCredential.provider)
        )
        result = await self.session.execute(stmt)

        return [
            IntegrationSummary(
                provider=c.provider,
                credential_type=c.credential_type,
                is_active=c.is_active,
                token_expires_at=c.token_expires_at,
                last_refreshed_at=c.last_refreshed_at,
                config=c.config or {},
                has_errors=(c.refresh_error_count or 0) > 0,
            )
            for c in result.scalars().all()
        ]

    async def find_credentials_needing_refresh(
        self, buffer_minutes: int = 5
    ) -> List[IntegrationCredential]:
        """Active credentials with a refresh token whose access token expires within the buffer."""
        cutoff = utcnow() + dt.timedelta(minutes=buffer_minutes)
        stmt = select(IntegrationCredential).where(
            and_(
                IntegrationCredential.is_active == True,  # noqa: E712
                IntegrationCredential.token_expires_at < cutoff,
                IntegrationCredential.refresh_token_encrypted.isnot(None),
            )
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_active_tenant_ids(self, provider: str) -> List[UUID]:
        stmt = (
            select(IntegrationCredential.tenant_id)
            .where(
                and_(
                    IntegrationCredential.provider == provider,
                    IntegrationCredential.is_active == True,  # noqa: E712
                )
            )
            .order_by(IntegrationCredential.created_at, IntegrationCredential.tenant_id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


def create_credential_service(session: AsyncSession = Depends(get_db)) -> IntegrationCredentialService:
    """Create a credential service bound to the request's database session."""
    return IntegrationCredentialService(session)

from __future__ import annotations

from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from statsync.exceptions import CredentialNotFound
from statsync.schemas.credentials import ConfigUpdate, CredentialsSave
from statsync.services.credential_service import (IntegrationCredentialService,
                                                  create_credential_service)

router = APIRouter(prefix="/api/integrations", tags=["Integrations"])


def _parse_tenant_id(tenant_id: str) -> UUID:
    try:
        return UUID(tenant_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid tenant ID format")


@router.get("/{tenant_id}")
async def get_integrations(
    tenant_id: str,
    service: IntegrationCredentialService = Depends(create_credential_service),
) -> Dict[str, Any]:
    """Redacted view of every integration a tenant has configured."""
    integrations = await service.get_team_integrations(_parse_tenant_id(tenant_id))
    data = [integration.model_dump(mode="json") for integration in integrations]
    return {"success": True, "data": data, "count": len(data)}


@router.put("/{tenant_id}/{provider}")
async def save_credentials(
    tenant_id: str,
    provider: str,
    payload: CredentialsSave,
    service: IntegrationCredentialService = Depends(create_credential_service),
) -> Dict[str, Any]:
    """Store (or replace) a tenant's provider credentials."""
    try:
        await service.save_credentials(
            _parse_tenant_id(tenant_id),
            provider,
            payload.credentials,
            config=payload.config,
            credential_type=payload.credential_type,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "message": f"Saved {provider} credentials"}


@router.patch("/{tenant_id}/{provider}/config")
async def update_config(
    tenant_id: str,
    provider: str,
    payload: ConfigUpdate,
    service: IntegrationCredentialService = Depends(create_credential_service),
) -> Dict[str, Any]:
    """Merge provider settings into the stored config."""
    try:
        credential = await service.update_config(_parse_tenant_id(tenant_id), provider, payload.config)
    except CredentialNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "config": credential.config}


@router.post("/{tenant_id}/{provider}/deactivate")
async def deactivate_integration(
    tenant_id: str,
    provider: str,
    service: IntegrationCredentialService = Depends(create_credential_service),
) -> Dict[str, Any]:
    credential = await service.deactivate_credentials(_parse_tenant_id(tenant_id), provider)
    return {"success": True, "found": credential is not None}


@router.delete("/{tenant_id}/{provider}")
async def delete_integration(
    tenant_id: str,
    provider: str,
    service: IntegrationCredentialService = Depends(create_credential_service),
) -> Dict[str, Any]:
    deleted = await service.delete_credentials(_parse_tenant_id(tenant_id), provider)
    return {"success": True, "deleted": deleted}

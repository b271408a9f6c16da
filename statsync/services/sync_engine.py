from __future__ import annotations

import importlib
from typing import Any, Optional, Protocol, Sequence, runtime_checkable
from uuid import UUID


@runtime_checkable
class GameRef(Protocol):
    id: Any


@runtime_checkable
class SyncEngine(Protocol):
    """Provider sync operations the scheduler drives.

    Implementations fetch from the provider (using
    ``IntegrationCredentialService.refresh_token_if_needed`` for tokens),
    parse payloads and persist them. Every method may raise.
    """

    async def sync_all(self, tenant_id: UUID, triggered_by_user_id: Optional[UUID]) -> Any:
        ...

    async def get_live_eligible_games(self, tenant_id: UUID) -> Sequence[GameRef]:
        ...

    async def sync_live_stats(
        self, tenant_id: UUID, game_id: Any, triggered_by_user_id: Optional[UUID]
    ) -> Any:
        ...


def load_sync_engine(path: str) -> SyncEngine:
    """Resolve ``"package.module:attr"`` to a sync engine.

    ``attr`` may be an engine instance or a zero-argument factory/class.
    """
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Sync engine path must look like 'module:attr', got {path!r}")

    target = getattr(importlib.import_module(module_name), attr)
    if isinstance(target, type) or not isinstance(target, SyncEngine):
        target = target()
    if not isinstance(target, SyncEngine):
        raise TypeError(f"{path} does not provide sync_all/get_live_eligible_games/sync_live_stats")
    return target

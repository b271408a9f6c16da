from __future__ import annotations

import datetime as dt
import logging
import threading
from typing import Any, Dict, List, Optional, Set
from uuid import UUID

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.cron import CronTrigger

from statsync.config import (FULL_SYNC_CRON, LIVE_SYNC_CRON, SCHEDULER_TIMEZONE,
                             SYNC_PROVIDER)
from statsync.db import AsyncSessionLocal
from statsync.schemas.sync import SyncRunSummary
from statsync.security import sanitize_error
from statsync.services.credential_service import IntegrationCredentialService
from statsync.services.sync_engine import SyncEngine

logger = logging.getLogger(__name__)

FULL_SYNC_JOB_ID = "full_sync"
LIVE_STATS_JOB_ID = "live_stats_sync"


class SyncScheduler:
    """Drives the full-sync and live-stats cadences across every tenant.

    Tenants are processed one at a time to keep load on the provider bounded.
    ``syncing_tenants`` is keyed by tenant only, so a live-stats pass and a
    full sync never run for the same tenant at once; a tenant that is already
    busy is skipped, not queued.
    """

    def __init__(
        self,
        sync_engine: SyncEngine,
        session_factory=AsyncSessionLocal,
        provider: str = SYNC_PROVIDER,
        full_sync_cron: str = FULL_SYNC_CRON,
        live_sync_cron: str = LIVE_SYNC_CRON,
        scheduler: Optional[BaseScheduler] = None,
        timezone: str = SCHEDULER_TIMEZONE,
    ) -> None:
        self.sync_engine = sync_engine
        self.session_factory = session_factory
        self.provider = provider
        self.full_sync_cron = full_sync_cron
        self.live_sync_cron = live_sync_cron
        self.timezone = timezone

        self.running = False
        self.syncing_tenants: Set[UUID] = set()
        self._lock = threading.Lock()

        self._scheduler = scheduler
        self._owns_scheduler = scheduler is None
        self._jobs: Dict[str, Job] = {}

    async def start(self) -> None:
        """Register both recurring jobs. Calling it again while running is a no-op."""
        if self.running:
            logger.warning("Sync scheduler already running - skipping start")
            return

        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(timezone=self.timezone)

        self._jobs[FULL_SYNC_JOB_ID] = self._scheduler.add_job(
            self.full_sync_job,
            trigger=CronTrigger.from_crontab(self.full_sync_cron, timezone=self.timezone),
            id=FULL_SYNC_JOB_ID,
            name="Full provider sync",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._jobs[LIVE_STATS_JOB_ID] = self._scheduler.add_job(
            self.live_stats_job,
            trigger=CronTrigger.from_crontab(self.live_sync_cron, timezone=self.timezone),
            id=LIVE_STATS_JOB_ID,
            name="Live stats sync",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )

        if not self._scheduler.running:
            self._scheduler.start()

        self.running = True
        logger.info(
            f"Sync scheduler started - full sync '{self.full_sync_cron}', "
            f"live stats '{self.live_sync_cron}'"
        )

    async def stop(self) -> None:
        """Cancel future firings; syncs already in flight run to completion."""
        for job_id, job in self._jobs.items():
            try:
                job.remove()
            except JobLookupError:
                logger.warning(f"Sync job {job_id} was already removed from the scheduler")
        self._jobs.clear()

        if self._owns_scheduler and self._scheduler is not None:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            self._scheduler = None

        self.running = False
        logger.info("Sync scheduler stopped")

    def _claim(self, tenant_id: UUID) -> bool:
        with self._lock:
            if tenant_id in self.syncing_tenants:
                return False
            self.syncing_tenants.add(tenant_id)
            return True

    def _release(self, tenant_id: UUID) -> None:
        with self._lock:
            self.syncing_tenants.discard(tenant_id)

    async def _get_active_tenant_ids(self) -> List[UUID]:
        async with self.session_factory() as session:
            service = IntegrationCredentialService(session)
            return await service.get_active_tenant_ids(self.provider)

    async def run_full_sync(self) -> SyncRunSummary:
        """Full sync for every tenant with an active integration.

        Only the tenant lookup can raise; per-tenant failures are logged and
        the loop moves on to the next tenant.
        """
        tenant_ids = await self._get_active_tenant_ids()
        summary = SyncRunSummary()
        if not tenant_ids:
            return summary

        logger.info(f"Full sync starting for {len(tenant_ids)} tenant(s)")

        for tenant_id in tenant_ids:
            if not self._claim(tenant_id):
                logger.warning(f"Skipping full sync for tenant {tenant_id} - already syncing")
                summary.skipped.append(tenant_id)
                continue

            try:
                await self.sync_engine.sync_all(tenant_id, None)
                summary.synced.append(tenant_id)
                logger.info(f"Full sync completed for tenant {tenant_id}")
            except Exception as e:
                summary.failed.append(tenant_id)
                logger.error(f"Full sync failed for tenant {tenant_id}: {sanitize_error(str(e))}")
            finally:
                self._release(tenant_id)

        logger.info(
            f"Full sync finished: {len(summary.synced)} synced, "
            f"{len(summary.skipped)} skipped, {len(summary.failed)} failed"
        )
        return summary

    async def run_live_stats_sync(self) -> SyncRunSummary:
        """Sync live stats for each tenant's in-progress games."""
        tenant_ids = await self._get_active_tenant_ids()
        summary = SyncRunSummary()

        for tenant_id in tenant_ids:
            if not self._claim(tenant_id):
                logger.warning(f"Skipping live stats for tenant {tenant_id} - already syncing")
                summary.skipped.append(tenant_id)
                continue

            try:
                games = await self.sync_engine.get_live_eligible_games(tenant_id)
                if not games:
                    continue

                logger.info(f"Live stats: {len(games)} eligible game(s) for tenant {tenant_id}")

                for game in games:
                    try:
                        await self.sync_engine.sync_live_stats(tenant_id, game.id, None)
                        summary.games_synced += 1
                    except Exception as e:
                        summary.games_failed += 1
                        logger.error(
                            f"Live stats failed for tenant {tenant_id}, game {game.id}: "
                            f"{sanitize_error(str(e))}"
                        )
                summary.synced.append(tenant_id)
            except Exception as e:
                summary.failed.append(tenant_id)
                logger.error(f"Live stats check failed for tenant {tenant_id}: {sanitize_error(str(e))}")
            finally:
                self._release(tenant_id)

        return summary

    async def full_sync_job(self) -> None:
        """Timer entry point: never raises, so a failed run cannot take the process down."""
        try:
            await self.run_full_sync()
        except Exception as e:
            logger.error(f"Full sync job error: {sanitize_error(str(e))}")

    async def live_stats_job(self) -> None:
        try:
            await self.run_live_stats_sync()
        except Exception as e:
            logger.error(f"Live stats job error: {sanitize_error(str(e))}")

    def get_status(self) -> Dict[str, Any]:
        """Current run-state and the next firing of each job."""
        with self._lock:
            syncing = sorted(str(tenant_id) for tenant_id in self.syncing_tenants)

        next_runs: Dict[str, Optional[str]] = {}
        for job_id, job in self._jobs.items():
            next_run = getattr(job, "next_run_time", None)
            next_runs[job_id] = next_run.isoformat() if isinstance(next_run, dt.datetime) else None

        return {
            "running": self.running,
            "provider": self.provider,
            "syncing_tenants": syncing,
            "next_runs": next_runs,
        }

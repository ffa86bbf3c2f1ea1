"""
Reconciliation Engine

Aligns the stored inventory of one cloud account with a freshly fetched
resource set:

- fetched but not stored  -> inserted
- fetched and stored      -> status written, stored ID carried over
- stored but not fetched  -> removed

Matching binary-searches the stored list by UID and relies on the store
returning it in ascending UID order. Individual write failures are logged and
skipped so one bad row never blocks the rest of the pass.
"""
from bisect import bisect_left
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import structlog

from cloudwarden.core.exceptions import PersistenceError
from cloudwarden.modules.resources.domain.store import ResourceStore
from cloudwarden.schemas.resources import Resource

logger = structlog.get_logger()


@dataclass
class ReconcileSummary:
    """Counts of the writes attempted during one reconciliation pass."""
    inserted: int = 0
    updated: int = 0
    removed: int = 0
    errors: List[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "inserted": self.inserted,
            "updated": self.updated,
            "removed": self.removed,
            "errors": self.errors,
        }


def find_by_uid(stored: Sequence[Resource], uid: str) -> Optional[int]:
    """Index of ``uid`` in ``stored`` (ascending by UID), or None."""
    idx = bisect_left(stored, uid, key=lambda resource: resource.uid)
    if idx < len(stored) and stored[idx].uid == uid:
        return idx
    return None


class Reconciler:
    def __init__(self, store: ResourceStore):
        self.store = store
        self.last_summary: Optional[ReconcileSummary] = None

    async def reconcile(self, cloud_account_id: int, fetched: List[Resource]) -> List[Resource]:
        """Apply ``fetched`` to the stored inventory and return the refreshed inventory."""
        stored = await self.store.get_resources(cloud_account_id)
        visited = [False] * len(stored)
        summary = ReconcileSummary()

        for resource in fetched:
            idx = find_by_uid(stored, resource.uid)

            if idx is None:
                # Present on the cloud, absent from the store.
                try:
                    await self.store.insert_resource(resource)
                    summary.inserted += 1
                except PersistenceError as e:
                    summary.errors.append(f"insert {resource.uid}: {e.message}")
                    logger.error(
                        "resource_insert_failed",
                        cloud_account_id=cloud_account_id,
                        uid=resource.uid,
                        error=e.message,
                    )
                continue

            visited[idx] = True
            resource.id = stored[idx].id
            try:
                await self.store.update_status(resource.status, resource.id)
                summary.updated += 1
            except PersistenceError as e:
                summary.errors.append(f"update {resource.uid}: {e.message}")
                logger.error(
                    "resource_update_failed",
                    cloud_account_id=cloud_account_id,
                    uid=resource.uid,
                    resource_id=resource.id,
                    error=e.message,
                )

        await self._remove_stale(cloud_account_id, stored, visited, summary)

        self.last_summary = summary
        logger.info("resources_reconciled", cloud_account_id=cloud_account_id, **summary.as_dict())

        return await self.store.get_resources(cloud_account_id)

    async def _remove_stale(
        self,
        cloud_account_id: int,
        stored: Sequence[Resource],
        visited: Sequence[bool],
        summary: ReconcileSummary,
    ) -> None:
        for resource, seen in zip(stored, visited):
            if seen:
                continue

            # No longer present on the cloud.
            try:
                await self.store.remove_resource(resource.id)
                summary.removed += 1
            except PersistenceError as e:
                summary.errors.append(f"remove {resource.uid}: {e.message}")
                logger.error(
                    "resource_remove_failed",
                    cloud_account_id=cloud_account_id,
                    uid=resource.uid,
                    resource_id=resource.id,
                    error=e.message,
                )

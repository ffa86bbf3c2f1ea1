"""
Resource Fetch Engine

Lists every supported resource category of one cloud account concurrently and
merges the results. One task runs per category; both are awaited before the
call returns, and any failure fails the whole fetch.
"""
import asyncio
from typing import Any, List, Optional, Tuple

import structlog

from cloudwarden.schemas.resources import CloudAccount, CloudAccountRef, Resource, ResourceType
from cloudwarden.shared.adapters.factory import ClientKind, ProviderClientFactory

logger = structlog.get_logger()

# Fetch order is also the merge order of the returned list.
CATEGORY_CLIENTS: Tuple[Tuple[ResourceType, ClientKind], ...] = (
    (ResourceType.SQL, ClientKind.SQL),
    (ResourceType.COMPUTE, ClientKind.COMPUTE),
)


class ResourceFetcher:
    def __init__(self, clients: ProviderClientFactory):
        self.clients = clients

    async def fetch_all(self, account: CloudAccount) -> List[Resource]:
        """
        Fetch SQL and compute instances for ``account``.

        Raises the first failing category's error (in fetch order); results of
        a category that succeeded alongside a failure are discarded.
        """
        outcomes = await asyncio.gather(
            *(self._fetch_category(account, rtype, kind) for rtype, kind in CATEGORY_CLIENTS),
            return_exceptions=True,
        )

        for (rtype, _), outcome in zip(CATEGORY_CLIENTS, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    "resource_fetch_failed",
                    cloud_account_id=account.id,
                    resource_type=rtype.value,
                    error=str(outcome),
                )
                raise outcome

        instances: List[Resource] = []
        for outcome in outcomes:
            instances.extend(outcome)
        return instances

    async def _fetch_category(
        self, account: CloudAccount, resource_type: ResourceType, kind: ClientKind
    ) -> List[Resource]:
        client: Optional[Any] = self.clients.build(account, kind)
        if client is None:
            # Unimplemented provider/category pairs contribute no resources.
            return []

        instances = await client.list_instances()
        ref = CloudAccountRef(id=account.id, type=account.provider.value)
        for instance in instances:
            instance.cloud_account = ref

        logger.debug(
            "resource_category_fetched",
            cloud_account_id=account.id,
            resource_type=resource_type.value,
            count=len(instances),
        )
        return instances

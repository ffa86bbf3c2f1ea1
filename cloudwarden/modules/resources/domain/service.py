"""
Resource Sync Service

Façade used by the HTTP layer for inventory reads, synchronisation with the
cloud providers and state changes.
"""
from typing import Dict, List, Optional, Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from cloudwarden.core.exceptions import CloudWardenException
from cloudwarden.modules.resources.domain.fetcher import ResourceFetcher
from cloudwarden.modules.resources.domain.reconciler import Reconciler
from cloudwarden.modules.resources.domain.state import StateChanger
from cloudwarden.modules.resources.domain.store import ResourceStore, SQLResourceStore
from cloudwarden.schemas.resources import Resource, ResourceDetails
from cloudwarden.shared.adapters.base import CloudAccountClient
from cloudwarden.shared.adapters.factory import ProviderClientFactory

logger = structlog.get_logger()


class ResourceService:
    def __init__(
        self,
        store: ResourceStore,
        accounts: CloudAccountClient,
        clients: ProviderClientFactory,
    ):
        self.store = store
        self.accounts = accounts
        self.fetcher = ResourceFetcher(clients)
        self.reconciler = Reconciler(store)
        self.state_changer = StateChanger(store, accounts, clients)

    @classmethod
    def from_session(
        cls,
        db: AsyncSession,
        accounts: CloudAccountClient,
        clients: ProviderClientFactory,
    ) -> "ResourceService":
        return cls(SQLResourceStore(db), accounts, clients)

    async def get_all(
        self, cloud_account_id: int, resource_types: Optional[Sequence[str]] = None
    ) -> List[Resource]:
        return await self.store.get_resources(cloud_account_id, resource_types)

    async def sync_resources(self, cloud_account_id: int) -> List[Resource]:
        """Fetch live provider state for one account and reconcile the inventory with it."""
        account = await self.accounts.get_cloud_credentials(cloud_account_id)
        fetched = await self.fetcher.fetch_all(account)
        return await self.reconciler.reconcile(cloud_account_id, fetched)

    async def sync_all_accounts(self) -> Dict[int, int]:
        """
        Sync every registered cloud account, one after another.

        Returns the post-sync inventory size per account that synced; accounts
        that fail are logged and skipped.
        """
        accounts = await self.accounts.get_all_cloud_accounts()
        synced: Dict[int, int] = {}

        for account in accounts:
            try:
                inventory = await self.sync_resources(account.id)
            except CloudWardenException as e:
                logger.error(
                    "cloud_account_sync_failed",
                    cloud_account_id=account.id,
                    code=e.code,
                    error=e.message,
                )
                continue
            synced[account.id] = len(inventory)

        logger.info("cloud_accounts_synced", total=len(accounts), synced=len(synced))
        return synced

    async def change_state(self, details: ResourceDetails) -> None:
        await self.state_changer.change_state(details)

"""
Resource Group Service

CRUD over resource groups of one cloud account. Members must already be part
of that account's tracked inventory.
"""
from typing import List, Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from cloudwarden.core.exceptions import InvalidInputError, ResourceNotFoundError
from cloudwarden.modules.resources.domain.group_store import (
    ResourceGroupStore,
    SQLResourceGroupStore,
)
from cloudwarden.modules.resources.domain.store import ResourceStore, SQLResourceStore
from cloudwarden.schemas.resources import ResourceGroup, RGCreate, RGUpdate

logger = structlog.get_logger()


class ResourceGroupService:
    def __init__(self, groups: ResourceGroupStore, resources: ResourceStore):
        self.groups = groups
        self.resources = resources

    @classmethod
    def from_session(cls, db: AsyncSession) -> "ResourceGroupService":
        return cls(SQLResourceGroupStore(db), SQLResourceStore(db))

    async def _check_members(self, cloud_account_id: int, resource_ids: Sequence[int]) -> None:
        if not resource_ids:
            return
        tracked = {r.id for r in await self.resources.get_resources(cloud_account_id)}
        unknown = [rid for rid in resource_ids if rid not in tracked]
        if unknown:
            logger.warning(
                "resource_group_unknown_members",
                cloud_account_id=cloud_account_id,
                resource_ids=unknown,
            )
            raise InvalidInputError(["resource_ids"])

    async def get_all_resource_groups(self, cloud_account_id: int) -> List[ResourceGroup]:
        return await self.groups.get_resource_groups(cloud_account_id)

    async def get_resource_group(self, cloud_account_id: int, rg_id: int) -> ResourceGroup:
        group = await self.groups.get_resource_group(cloud_account_id, rg_id)
        if group is None:
            raise ResourceNotFoundError("ResourceGroup", rg_id)
        return group

    async def create_resource_group(self, cloud_account_id: int, rg: RGCreate) -> ResourceGroup:
        """The path's account id always wins over one in the payload."""
        rg = rg.model_copy(update={"cloud_account_id": cloud_account_id})
        await self._check_members(cloud_account_id, rg.resource_ids)

        rg_id = await self.groups.create_resource_group(rg)
        logger.info(
            "resource_group_created",
            cloud_account_id=cloud_account_id,
            resource_group_id=rg_id,
            members=len(set(rg.resource_ids)),
        )
        return await self.get_resource_group(cloud_account_id, rg_id)

    async def update_resource_group(self, rg: RGUpdate) -> ResourceGroup:
        await self.get_resource_group(rg.cloud_account_id, rg.id)
        await self._check_members(rg.cloud_account_id, rg.resource_ids)

        await self.groups.update_resource_group(rg)
        logger.info(
            "resource_group_updated",
            cloud_account_id=rg.cloud_account_id,
            resource_group_id=rg.id,
            members=len(set(rg.resource_ids)),
        )
        return await self.get_resource_group(rg.cloud_account_id, rg.id)

    async def delete_resource_group(self, cloud_account_id: int, rg_id: int) -> None:
        await self.get_resource_group(cloud_account_id, rg_id)
        await self.groups.delete_resource_group(cloud_account_id, rg_id)
        logger.info(
            "resource_group_deleted",
            cloud_account_id=cloud_account_id,
            resource_group_id=rg_id,
        )

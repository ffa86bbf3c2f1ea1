"""
Resource Group Store

Persistence for named groups of tracked resources. Groups are always scoped
to a cloud account; a group id from another account reads as missing.
Member resources come back ascending by UID, like the inventory itself.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

import structlog
from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cloudwarden.core.exceptions import (
    InvalidInputError,
    PersistenceError,
    ResourceNotFoundError,
)
from cloudwarden.models.resource import ResourceRecord
from cloudwarden.models.resource_group import ResourceGroupMemberRecord, ResourceGroupRecord
from cloudwarden.modules.resources.domain.store import _to_resource
from cloudwarden.schemas.resources import Resource, ResourceGroup, RGCreate, RGUpdate

logger = structlog.get_logger()


class ResourceGroupStore(ABC):
    @abstractmethod
    async def get_resource_groups(self, cloud_account_id: int) -> List[ResourceGroup]:
        raise NotImplementedError()

    @abstractmethod
    async def get_resource_group(
        self, cloud_account_id: int, rg_id: int
    ) -> Optional[ResourceGroup]:
        raise NotImplementedError()

    @abstractmethod
    async def create_resource_group(self, rg: RGCreate) -> int:
        """Persist a new group and its members; returns the new group id."""
        raise NotImplementedError()

    @abstractmethod
    async def update_resource_group(self, rg: RGUpdate) -> None:
        """Replace name, description and the whole member set of an existing group."""
        raise NotImplementedError()

    @abstractmethod
    async def delete_resource_group(self, cloud_account_id: int, rg_id: int) -> None:
        raise NotImplementedError()


def _to_group(record: ResourceGroupRecord, members: List[Resource]) -> ResourceGroup:
    return ResourceGroup(
        id=record.id,
        name=record.name,
        description=record.description,
        cloud_account_id=record.cloud_account_id,
        resources=members,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class SQLResourceGroupStore(ResourceGroupStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _write(self, operation: str, statements, **context) -> None:
        # Each entry is (statement, params); None runs it bare, an empty list skips it.
        try:
            for stmt, params in statements:
                if params is None:
                    await self.db.execute(stmt)
                elif params:
                    await self.db.execute(stmt, params)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning("resource_group_conflict", operation=operation, **context)
            raise InvalidInputError(["name"]) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("resource_group_write_failed", operation=operation, error=str(e), **context)
            raise PersistenceError(f"Failed to {operation}: {e}", details=context) from e

    async def _members(self, group_ids: Sequence[int]) -> Dict[int, List[Resource]]:
        members: Dict[int, List[Resource]] = {group_id: [] for group_id in group_ids}
        if not group_ids:
            return members

        stmt = (
            select(ResourceGroupMemberRecord.group_id, ResourceRecord)
            .join(ResourceRecord, ResourceRecord.id == ResourceGroupMemberRecord.resource_id)
            .where(ResourceGroupMemberRecord.group_id.in_(list(group_ids)))
            .order_by(ResourceRecord.resource_uid)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        for group_id, record in result.all():
            members[group_id].append(_to_resource(record))
        return members

    async def get_resource_groups(self, cloud_account_id: int) -> List[ResourceGroup]:
        stmt = (
            select(ResourceGroupRecord)
            .where(ResourceGroupRecord.cloud_account_id == cloud_account_id)
            .order_by(ResourceGroupRecord.id)
            .execution_options(populate_existing=True)
        )
        try:
            records = (await self.db.execute(stmt)).scalars().all()
            members = await self._members([record.id for record in records])
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to query resource groups: {e}",
                details={"cloud_account_id": cloud_account_id},
            ) from e
        return [_to_group(record, members[record.id]) for record in records]

    async def get_resource_group(
        self, cloud_account_id: int, rg_id: int
    ) -> Optional[ResourceGroup]:
        stmt = (
            select(ResourceGroupRecord)
            .where(
                ResourceGroupRecord.id == rg_id,
                ResourceGroupRecord.cloud_account_id == cloud_account_id,
            )
            .execution_options(populate_existing=True)
        )
        try:
            record = (await self.db.execute(stmt)).scalar_one_or_none()
            if record is None:
                return None
            members = await self._members([record.id])
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to load resource group: {e}",
                details={"cloud_account_id": cloud_account_id, "resource_group_id": rg_id},
            ) from e
        return _to_group(record, members[record.id])

    async def create_resource_group(self, rg: RGCreate) -> int:
        record = ResourceGroupRecord(
            name=rg.name,
            description=rg.description,
            cloud_account_id=rg.cloud_account_id,
        )
        self.db.add(record)
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(
                "resource_group_conflict",
                operation="create resource group",
                cloud_account_id=rg.cloud_account_id,
                name=rg.name,
            )
            raise InvalidInputError(["name"]) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(
                f"Failed to create resource group: {e}",
                details={"cloud_account_id": rg.cloud_account_id},
            ) from e

        group_id = record.id
        await self._write(
            "create resource group",
            [(insert(ResourceGroupMemberRecord), _member_rows(group_id, rg.resource_ids))],
            cloud_account_id=rg.cloud_account_id,
            resource_group_id=group_id,
        )
        return group_id

    async def update_resource_group(self, rg: RGUpdate) -> None:
        try:
            result = await self.db.execute(
                update(ResourceGroupRecord)
                .where(
                    ResourceGroupRecord.id == rg.id,
                    ResourceGroupRecord.cloud_account_id == rg.cloud_account_id,
                )
                .values(name=rg.name, description=rg.description)
            )
        except IntegrityError as e:
            await self.db.rollback()
            raise InvalidInputError(["name"]) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(
                f"Failed to update resource group: {e}",
                details={"resource_group_id": rg.id},
            ) from e
        if result.rowcount == 0:
            await self.db.rollback()
            raise ResourceNotFoundError("ResourceGroup", rg.id)

        await self._write(
            "update resource group",
            [
                (
                    delete(ResourceGroupMemberRecord).where(
                        ResourceGroupMemberRecord.group_id == rg.id
                    ),
                    None,
                ),
                (insert(ResourceGroupMemberRecord), _member_rows(rg.id, rg.resource_ids)),
            ],
            cloud_account_id=rg.cloud_account_id,
            resource_group_id=rg.id,
        )

    async def delete_resource_group(self, cloud_account_id: int, rg_id: int) -> None:
        owned = (
            select(ResourceGroupRecord.id)
            .where(
                ResourceGroupRecord.id == rg_id,
                ResourceGroupRecord.cloud_account_id == cloud_account_id,
            )
        )
        try:
            found = (await self.db.execute(owned)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to load resource group: {e}",
                details={"resource_group_id": rg_id},
            ) from e
        if found is None:
            raise ResourceNotFoundError("ResourceGroup", rg_id)

        await self._write(
            "delete resource group",
            [
                (delete(ResourceGroupMemberRecord).where(ResourceGroupMemberRecord.group_id == rg_id), None),
                (delete(ResourceGroupRecord).where(ResourceGroupRecord.id == rg_id), None),
            ],
            cloud_account_id=cloud_account_id,
            resource_group_id=rg_id,
        )


def _member_rows(group_id: int, resource_ids: Sequence[int]) -> List[dict]:
    # Duplicate ids collapse to one membership.
    return [
        {"group_id": group_id, "resource_id": resource_id}
        for resource_id in dict.fromkeys(resource_ids)
    ]

"""
Resource Store

Persistence contract for tracked resources and its SQLAlchemy implementation.

IMPORTANT: ``get_resources`` returns rows sorted ascending by resource UID.
The reconciler binary-searches that list, so every implementation must keep
this ordering.
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cloudwarden.core.exceptions import PersistenceError, ResourceNotFoundError
from cloudwarden.models.resource import ResourceRecord
from cloudwarden.models.resource_group import ResourceGroupMemberRecord
from cloudwarden.schemas.resources import CloudAccountRef, Resource

logger = structlog.get_logger()


class ResourceStore(ABC):
    @abstractmethod
    async def insert_resource(self, resource: Resource) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def get_resources(
        self, cloud_account_id: int, resource_types: Optional[Sequence[str]] = None
    ) -> List[Resource]:
        """Resources of one account, ascending by UID, optionally filtered by type."""
        raise NotImplementedError()

    @abstractmethod
    async def update_status(self, status: str, resource_id: int) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def remove_resource(self, resource_id: int) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def get_resource_by_id(self, resource_id: int) -> Resource:
        raise NotImplementedError()


def _to_resource(record: ResourceRecord) -> Resource:
    return Resource(
        id=record.id,
        uid=record.resource_uid,
        name=record.name,
        type=record.resource_type,
        status=record.state,
        cloud_account=CloudAccountRef(id=record.cloud_account_id, type=record.cloud_provider),
        settings=record.settings,
        region=record.region,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class SQLResourceStore(ResourceStore):
    """ResourceStore backed by an AsyncSession; every write commits on its own."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit(self, operation: str, **context) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("resource_store_write_failed", operation=operation, error=str(e), **context)
            raise PersistenceError(f"Failed to {operation}: {e}", details=context) from e

    async def insert_resource(self, resource: Resource) -> None:
        if resource.cloud_account is None:
            raise PersistenceError(
                "Cannot insert a resource without a cloud account",
                details={"uid": resource.uid},
            )
        self.db.add(
            ResourceRecord(
                resource_uid=resource.uid,
                name=resource.name,
                state=resource.status,
                cloud_account_id=resource.cloud_account.id,
                cloud_provider=resource.cloud_account.type,
                resource_type=resource.type.value,
                settings=resource.settings,
                region=resource.region,
            )
        )
        await self._commit("insert resource", uid=resource.uid)

    async def get_resources(
        self, cloud_account_id: int, resource_types: Optional[Sequence[str]] = None
    ) -> List[Resource]:
        stmt = select(ResourceRecord).where(ResourceRecord.cloud_account_id == cloud_account_id)
        if resource_types:
            stmt = stmt.where(ResourceRecord.resource_type.in_(list(resource_types)))
        stmt = stmt.order_by(ResourceRecord.resource_uid).execution_options(populate_existing=True)

        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to query resources: {e}",
                details={"cloud_account_id": cloud_account_id},
            ) from e
        return [_to_resource(record) for record in result.scalars().all()]

    async def update_status(self, status: str, resource_id: int) -> None:
        try:
            await self.db.execute(
                update(ResourceRecord)
                .where(ResourceRecord.id == resource_id)
                .values(state=status)
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(
                f"Failed to update resource status: {e}",
                details={"resource_id": resource_id},
            ) from e
        await self._commit("update resource status", resource_id=resource_id)

    async def remove_resource(self, resource_id: int) -> None:
        try:
            # Group memberships go with the resource.
            await self.db.execute(
                delete(ResourceGroupMemberRecord).where(
                    ResourceGroupMemberRecord.resource_id == resource_id
                )
            )
            await self.db.execute(delete(ResourceRecord).where(ResourceRecord.id == resource_id))
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(
                f"Failed to remove resource: {e}",
                details={"resource_id": resource_id},
            ) from e
        await self._commit("remove resource", resource_id=resource_id)

    async def get_resource_by_id(self, resource_id: int) -> Resource:
        try:
            record = await self.db.get(ResourceRecord, resource_id, populate_existing=True)
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to load resource: {e}",
                details={"resource_id": resource_id},
            ) from e
        if record is None:
            raise ResourceNotFoundError("Resource", resource_id)
        return _to_resource(record)

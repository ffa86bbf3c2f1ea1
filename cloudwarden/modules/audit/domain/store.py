from abc import ABC, abstractmethod
from typing import Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cloudwarden.core.exceptions import PersistenceError
from cloudwarden.models.audit_result import AuditResultRecord
from cloudwarden.schemas.audit import AuditResult, ResultData

logger = structlog.get_logger()


class AuditStore(ABC):
    @abstractmethod
    async def create_pending(self, result: AuditResult) -> AuditResult:
        """Persist ``result`` with no data and return it with its store ID."""
        raise NotImplementedError()

    @abstractmethod
    async def update_result(self, result: AuditResult) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def get_last_run(self, cloud_account_id: int, rule_id: str) -> Optional[AuditResult]:
        """Most recent result of ``rule_id`` for the account, or None if it never ran."""
        raise NotImplementedError()


def _to_result(record: AuditResultRecord) -> AuditResult:
    return AuditResult(
        id=record.id,
        rule_id=record.rule_id,
        cloud_account_id=record.cloud_account_id,
        result=ResultData.model_validate(record.result or {}),
        evaluated_at=record.evaluated_at,
    )


class SQLAuditStore(AuditStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_pending(self, result: AuditResult) -> AuditResult:
        record = AuditResultRecord(
            rule_id=result.rule_id,
            cloud_account_id=result.cloud_account_id,
            result=ResultData().model_dump(mode="json"),
            evaluated_at=result.evaluated_at,
        )
        try:
            self.db.add(record)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("audit_pending_create_failed", rule_id=result.rule_id, error=str(e))
            raise PersistenceError(
                f"Failed to create pending result: {e}",
                details={"rule_id": result.rule_id},
            ) from e

        return result.model_copy(update={"id": record.id, "result": ResultData()})

    async def update_result(self, result: AuditResult) -> None:
        try:
            await self.db.execute(
                update(AuditResultRecord)
                .where(AuditResultRecord.id == result.id)
                .values(result=result.result.model_dump(mode="json"))
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(
                f"Failed to update result: {e}",
                details={"rule_id": result.rule_id, "result_id": result.id},
            ) from e

    async def get_last_run(self, cloud_account_id: int, rule_id: str) -> Optional[AuditResult]:
        stmt = (
            select(AuditResultRecord)
            .where(
                AuditResultRecord.cloud_account_id == cloud_account_id,
                AuditResultRecord.rule_id == rule_id,
            )
            .order_by(AuditResultRecord.evaluated_at.desc(), AuditResultRecord.id.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to load last run: {e}",
                details={"rule_id": rule_id, "cloud_account_id": cloud_account_id},
            ) from e

        record = result.scalar_one_or_none()
        return _to_result(record) if record is not None else None

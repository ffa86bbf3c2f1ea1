from datetime import datetime
from typing import Any, Dict

from sqlalchemy import BigInteger, DateTime, Index, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from cloudwarden.db.base import Base


class AuditResultRecord(Base):
    """
    One execution of an audit rule against a cloud account.

    Rows are written twice: once pending (empty ``result.data``) before the
    rule runs, then updated in place with the rule's items.
    """

    __tablename__ = "audit_results"
    __table_args__ = (
        Index(
            "ix_audit_results_account_rule_evaluated",
            "cloud_account_id",
            "rule_id",
            "evaluated_at",
        ),
    )

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    rule_id: Mapped[str] = mapped_column(String(128), nullable=False)
    cloud_account_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    result: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    evaluated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from cloudwarden.db.base import Base


class ResourceGroupRecord(Base):
    """A user-defined grouping of tracked resources, unique by name within an account."""

    __tablename__ = "resource_groups"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        UniqueConstraint("cloud_account_id", "name", name="uq_resource_groups_account_name"),
    )

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    cloud_account_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class ResourceGroupMemberRecord(Base):
    """Membership link between a resource group and a tracked resource."""

    __tablename__ = "resource_group_members"

    group_id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        ForeignKey("resource_groups.id", ondelete="CASCADE"),
        primary_key=True,
    )
    resource_id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        ForeignKey("resources.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )

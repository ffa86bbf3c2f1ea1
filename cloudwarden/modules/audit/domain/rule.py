from abc import ABC, abstractmethod
from typing import List

from cloudwarden.schemas.audit import ResultItem
from cloudwarden.schemas.resources import CloudAccount


class AuditRule(ABC):
    """
    Abstract base class for audit rules.

    A rule is cloud agnostic at this level: it receives a resolved cloud
    account and implements the provider-specific logic itself, returning one
    item per evaluated instance.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique rule identifier (e.g., 'sql_instance_peak')."""
        raise NotImplementedError

    @property
    @abstractmethod
    def category(self) -> str:
        """Category key used to group rules (e.g., 'overprovision')."""
        raise NotImplementedError

    @abstractmethod
    async def execute(self, account: CloudAccount) -> List[ResultItem]:
        raise NotImplementedError

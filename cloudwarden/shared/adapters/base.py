from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from cloudwarden.schemas.resources import CloudAccount, Resource


class InstanceLister(ABC):
    """Lists every instance of one resource category visible to an account."""

    @abstractmethod
    async def list_instances(self) -> List[Resource]:
        raise NotImplementedError()


class InstanceIdler(ABC):
    """Starts and stops a single named instance."""

    @abstractmethod
    async def start_instance(self, instance_name: str) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def stop_instance(self, instance_name: str) -> None:
        raise NotImplementedError()


class SQLClient(InstanceLister, InstanceIdler):
    """Managed database instances (Cloud SQL, RDS)."""


class MetricsClient(ABC):
    """Reads utilisation time series for managed database instances."""

    @abstractmethod
    async def peak_cpu_utilization(
        self, instance: Resource, start: datetime, end: datetime
    ) -> Optional[float]:
        """
        Highest CPU utilisation (percent, 0-100) observed for ``instance``
        between ``start`` and ``end``, or None when no datapoints exist.
        """
        raise NotImplementedError()


class CloudAccountClient(ABC):
    """Resolves cloud accounts and their credentials from the account service."""

    @abstractmethod
    async def get_cloud_credentials(self, cloud_account_id: int) -> CloudAccount:
        raise NotImplementedError()

    @abstractmethod
    async def get_all_cloud_accounts(self) -> List[CloudAccount]:
        raise NotImplementedError()

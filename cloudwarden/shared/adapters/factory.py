from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import structlog

from cloudwarden.schemas.resources import CloudAccount, CloudProvider
from cloudwarden.shared.adapters.aws import AWSCloudWatchClient, AWSEC2Client, AWSRDSClient
from cloudwarden.shared.adapters.gcp import GCPCloudSQLClient, GCPComputeClient, GCPMonitoringClient

logger = structlog.get_logger()


class ClientKind(str, Enum):
    SQL = "sql"
    COMPUTE = "compute"
    METRICS = "metrics"


ClientBuilder = Callable[[CloudAccount], Any]
BuilderKey = Tuple[CloudProvider, ClientKind]

DEFAULT_BUILDERS: Dict[BuilderKey, ClientBuilder] = {
    (CloudProvider.AWS, ClientKind.SQL): AWSRDSClient,
    (CloudProvider.AWS, ClientKind.COMPUTE): AWSEC2Client,
    (CloudProvider.AWS, ClientKind.METRICS): AWSCloudWatchClient,
    (CloudProvider.GCP, ClientKind.SQL): GCPCloudSQLClient,
    (CloudProvider.GCP, ClientKind.COMPUTE): GCPComputeClient,
    (CloudProvider.GCP, ClientKind.METRICS): GCPMonitoringClient,
}


class ProviderClientFactory:
    """
    Builds provider clients for a cloud account.
    Uses a (provider, kind) tuple as the lookup key; a missing key means the
    capability is not implemented for that provider and yields None.
    """

    def __init__(self, builders: Optional[Mapping[BuilderKey, ClientBuilder]] = None):
        self._builders: Dict[BuilderKey, ClientBuilder] = dict(
            DEFAULT_BUILDERS if builders is None else builders
        )

    def register(self, provider: CloudProvider, kind: ClientKind, builder: ClientBuilder) -> None:
        self._builders[(provider, kind)] = builder

    def build(self, account: CloudAccount, kind: ClientKind) -> Any:
        builder = self._builders.get((account.provider, kind))
        if builder is None:
            logger.debug(
                "provider_client_not_implemented",
                provider=account.provider.value,
                kind=kind.value,
            )
            return None
        return builder(account)

    def sql_client(self, account: CloudAccount) -> Any:
        return self.build(account, ClientKind.SQL)

    def compute_client(self, account: CloudAccount) -> Any:
        return self.build(account, ClientKind.COMPUTE)

    def metrics_client(self, account: CloudAccount) -> Any:
        return self.build(account, ClientKind.METRICS)

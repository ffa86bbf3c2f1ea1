"""
GCP provider clients.

Cloud SQL goes through the Cloud SQL Admin discovery API, Compute Engine and
Cloud Monitoring through their google-cloud libraries. All three SDKs are
blocking, so calls are pushed onto a worker thread.
"""
import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import compute_v1, monitoring_v3
from google.oauth2 import service_account
from googleapiclient import discovery
from googleapiclient.errors import HttpError

from cloudwarden.core.exceptions import AdapterError
from cloudwarden.schemas.resources import (
    RUNNING,
    STOPPED,
    CloudAccount,
    Resource,
    ResourceType,
)
from cloudwarden.shared.adapters.base import InstanceLister, MetricsClient, SQLClient

logger = structlog.get_logger()

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

_COMPUTE_STATUS = {"RUNNING": RUNNING, "TERMINATED": STOPPED, "STOPPED": STOPPED}


class BaseGCPClient:
    """Builds service-account credentials for one account's project."""

    def __init__(self, account: CloudAccount):
        self.account = account
        creds_info: Dict[str, Any] = dict(account.credentials or {})
        self.project_id = str(creds_info.get("project_id") or "")
        if not self.project_id:
            raise AdapterError(
                "GCP credentials are missing project_id",
                details={"provider": "GCP", "cloud_account_id": account.id},
            )
        try:
            self.credentials = service_account.Credentials.from_service_account_info(  # type: ignore[no-untyped-call]
                creds_info, scopes=[CLOUD_PLATFORM_SCOPE]
            )
        except (ValueError, GoogleAuthError) as e:
            raise AdapterError(
                f"Invalid GCP service account credentials: {e}",
                details={"provider": "GCP", "cloud_account_id": account.id},
            ) from e


class GCPCloudSQLClient(BaseGCPClient, SQLClient):
    def __init__(self, account: CloudAccount):
        super().__init__(account)
        self._service: Any = None

    def _sqladmin(self) -> Any:
        if self._service is None:
            self._service = discovery.build(
                "sqladmin", "v1beta4", credentials=self.credentials, cache_discovery=False
            )
        return self._service

    async def list_instances(self) -> List[Resource]:
        try:
            items = await asyncio.to_thread(self._list_all)
        except (HttpError, GoogleAuthError) as e:
            raise AdapterError(
                f"Failed to list Cloud SQL instances: {e}",
                details={"provider": "GCP", "project_id": self.project_id},
            ) from e
        return [self._to_resource(item) for item in items]

    def _list_all(self) -> List[Dict[str, Any]]:
        instances = self._sqladmin().instances()
        items: List[Dict[str, Any]] = []
        page_token: Optional[str] = None
        while True:
            response = instances.list(project=self.project_id, pageToken=page_token).execute()
            items.extend(response.get("items", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                return items

    def _to_resource(self, item: Dict[str, Any]) -> Resource:
        settings = item.get("settings", {})
        if settings.get("activationPolicy") == "NEVER":
            status = STOPPED
        elif item.get("state") == "RUNNABLE":
            status = RUNNING
        else:
            status = str(item.get("state", "")).upper()

        return Resource(
            uid=item.get("connectionName") or f"{self.project_id}:{item['name']}",
            name=item["name"],
            type=ResourceType.SQL,
            status=status,
            region=item.get("region", ""),
            settings={
                "tier": settings.get("tier"),
                "database_version": item.get("databaseVersion"),
                "activation_policy": settings.get("activationPolicy"),
            },
        )

    async def _set_activation_policy(self, instance_name: str, policy: str) -> None:
        def _patch() -> None:
            self._sqladmin().instances().patch(
                project=self.project_id,
                instance=instance_name,
                body={"settings": {"activationPolicy": policy}},
            ).execute()

        try:
            await asyncio.to_thread(_patch)
        except (HttpError, GoogleAuthError) as e:
            raise AdapterError(
                f"Failed to set activation policy {policy} on {instance_name}: {e}",
                details={"provider": "GCP", "instance": instance_name},
            ) from e

    async def start_instance(self, instance_name: str) -> None:
        await self._set_activation_policy(instance_name, "ALWAYS")

    async def stop_instance(self, instance_name: str) -> None:
        await self._set_activation_policy(instance_name, "NEVER")


class GCPComputeClient(BaseGCPClient, InstanceLister):
    async def list_instances(self) -> List[Resource]:
        try:
            return await asyncio.to_thread(self._list_all)
        except (GoogleAPIError, GoogleAuthError) as e:
            raise AdapterError(
                f"Failed to list Compute Engine instances: {e}",
                details={"provider": "GCP", "project_id": self.project_id},
            ) from e

    def _list_all(self) -> List[Resource]:
        client = compute_v1.InstancesClient(credentials=self.credentials)
        request = compute_v1.AggregatedListInstancesRequest(project=self.project_id)
        resources: List[Resource] = []
        for zone_path, scoped in client.aggregated_list(request=request):
            zone = zone_path.split("/")[-1]
            for inst in scoped.instances:
                resources.append(
                    Resource(
                        uid=str(inst.id),
                        name=inst.name,
                        type=ResourceType.COMPUTE,
                        status=_COMPUTE_STATUS.get(inst.status, str(inst.status).upper()),
                        region=zone,
                        settings={"machine_type": inst.machine_type.split("/")[-1]},
                    )
                )
        return resources


class GCPMonitoringClient(BaseGCPClient, MetricsClient):
    CPU_METRIC = "cloudsql.googleapis.com/database/cpu/utilization"
    ALIGNMENT_SECONDS = 86400

    async def peak_cpu_utilization(
        self, instance: Resource, start: datetime, end: datetime
    ) -> Optional[float]:
        try:
            points = await asyncio.to_thread(self._max_points, instance.name, start, end)
        except (GoogleAPIError, GoogleAuthError) as e:
            raise AdapterError(
                f"Failed to read Cloud Monitoring metrics for {instance.name}: {e}",
                details={"provider": "GCP", "instance": instance.name},
            ) from e

        if not points:
            return None
        # Cloud SQL reports utilisation as a 0-1 fraction.
        return max(points) * 100

    def _max_points(self, instance_name: str, start: datetime, end: datetime) -> List[float]:
        client = monitoring_v3.MetricServiceClient(credentials=self.credentials)
        interval = monitoring_v3.TimeInterval(start_time=start, end_time=end)
        aggregation = monitoring_v3.Aggregation(
            alignment_period={"seconds": self.ALIGNMENT_SECONDS},
            per_series_aligner=monitoring_v3.Aggregation.Aligner.ALIGN_MAX,
        )
        results = client.list_time_series(
            request={
                "name": f"projects/{self.project_id}",
                "filter": (
                    f'metric.type="{self.CPU_METRIC}" AND '
                    f'resource.labels.database_id="{self.project_id}:{instance_name}"'
                ),
                "interval": interval,
                "aggregation": aggregation,
                "view": monitoring_v3.ListTimeSeriesRequest.TimeSeriesView.FULL,
            }
        )
        return [point.value.double_value for series in results for point in series.points]

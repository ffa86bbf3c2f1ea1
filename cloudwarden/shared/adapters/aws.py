"""
AWS provider clients.

Wraps aioboto3 RDS, EC2 and CloudWatch calls behind the provider client
contracts. Botocore failures are translated into AdapterError here so the
domain layer never sees SDK exceptions.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

import aioboto3
import structlog
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from cloudwarden.core.config import get_settings
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

# Standardized boto config with timeouts to prevent indefinite hangs
DEFAULT_BOTO_CONFIG = BotoConfig(
    read_timeout=30, connect_timeout=10, retries={"max_attempts": 3, "mode": "standard"}
)

# Mapping CamelCase to snake_case for aioboto3/boto3 credentials
AWS_CREDENTIAL_MAPPING = {
    "AccessKeyId": "aws_access_key_id",
    "SecretAccessKey": "aws_secret_access_key",
    "SessionToken": "aws_session_token",
    "aws_access_key_id": "aws_access_key_id",
    "aws_secret_access_key": "aws_secret_access_key",
    "aws_session_token": "aws_session_token",
}

_RDS_STATUS = {"available": RUNNING, "stopped": STOPPED}
_EC2_STATUS = {"running": RUNNING, "stopped": STOPPED}


def map_aws_credentials(credentials: Dict[str, Any]) -> Dict[str, str]:
    """
    Maps credentials dictionary to valid boto3/aioboto3 kwargs.
    Handles both CamelCase (AWS standard) and snake_case (boto3) keys.
    """
    mapped: Dict[str, str] = {}
    if not credentials:
        return mapped

    for src, dst in AWS_CREDENTIAL_MAPPING.items():
        if src in credentials:
            mapped[dst] = str(credentials[src])

    return mapped


def resolve_region(credentials: Dict[str, Any]) -> str:
    region = str(credentials.get("region") or credentials.get("Region") or "").strip()
    return region or get_settings().AWS_DEFAULT_REGION


class BaseAWSClient:
    """Holds one account's credentials and hands out aioboto3 client contexts."""

    def __init__(self, account: CloudAccount, session: Optional[aioboto3.Session] = None):
        self.account = account
        self.region = resolve_region(account.credentials)
        self.session = session or aioboto3.Session()

    def _client(self, service_name: str) -> Any:
        settings = get_settings()
        kwargs: Dict[str, Any] = {
            "region_name": self.region,
            "config": DEFAULT_BOTO_CONFIG,
        }
        if settings.AWS_ENDPOINT_URL:
            kwargs["endpoint_url"] = settings.AWS_ENDPOINT_URL
        kwargs.update(map_aws_credentials(self.account.credentials))
        return self.session.client(service_name, **kwargs)


class AWSRDSClient(BaseAWSClient, SQLClient):
    async def list_instances(self) -> List[Resource]:
        instances: List[Resource] = []
        try:
            async with self._client("rds") as rds:
                paginator = rds.get_paginator("describe_db_instances")
                async for page in paginator.paginate():
                    for db in page.get("DBInstances", []):
                        instances.append(self._to_resource(db))
        except (ClientError, BotoCoreError) as e:
            raise AdapterError(
                f"Failed to list RDS instances: {e}",
                details={"provider": "AWS", "region": self.region},
            ) from e
        return instances

    def _to_resource(self, db: Dict[str, Any]) -> Resource:
        identifier = db["DBInstanceIdentifier"]
        raw_status = str(db.get("DBInstanceStatus", ""))
        return Resource(
            uid=db.get("DbiResourceId") or identifier,
            name=identifier,
            type=ResourceType.SQL,
            status=_RDS_STATUS.get(raw_status, raw_status.upper()),
            region=self.region,
            settings={
                "engine": db.get("Engine"),
                "engine_version": db.get("EngineVersion"),
                "instance_class": db.get("DBInstanceClass"),
                "multi_az": db.get("MultiAZ"),
            },
        )

    async def start_instance(self, instance_name: str) -> None:
        try:
            async with self._client("rds") as rds:
                await rds.start_db_instance(DBInstanceIdentifier=instance_name)
        except (ClientError, BotoCoreError) as e:
            raise AdapterError(
                f"Failed to start RDS instance {instance_name}: {e}",
                details={"provider": "AWS", "instance": instance_name},
            ) from e

    async def stop_instance(self, instance_name: str) -> None:
        try:
            async with self._client("rds") as rds:
                await rds.stop_db_instance(DBInstanceIdentifier=instance_name)
        except (ClientError, BotoCoreError) as e:
            raise AdapterError(
                f"Failed to stop RDS instance {instance_name}: {e}",
                details={"provider": "AWS", "instance": instance_name},
            ) from e


class AWSEC2Client(BaseAWSClient, InstanceLister):
    async def list_instances(self) -> List[Resource]:
        instances: List[Resource] = []
        try:
            async with self._client("ec2") as ec2:
                paginator = ec2.get_paginator("describe_instances")
                async for page in paginator.paginate():
                    for reservation in page.get("Reservations", []):
                        for inst in reservation.get("Instances", []):
                            instances.append(self._to_resource(inst))
        except (ClientError, BotoCoreError) as e:
            raise AdapterError(
                f"Failed to list EC2 instances: {e}",
                details={"provider": "AWS", "region": self.region},
            ) from e
        return instances

    def _to_resource(self, inst: Dict[str, Any]) -> Resource:
        instance_id = inst["InstanceId"]
        tags = {t.get("Key"): t.get("Value") for t in inst.get("Tags", [])}
        raw_status = str(inst.get("State", {}).get("Name", ""))
        return Resource(
            uid=instance_id,
            name=tags.get("Name") or instance_id,
            type=ResourceType.COMPUTE,
            status=_EC2_STATUS.get(raw_status, raw_status.upper()),
            region=self.region,
            settings={
                "instance_type": inst.get("InstanceType"),
                "availability_zone": inst.get("Placement", {}).get("AvailabilityZone"),
            },
        )


class AWSCloudWatchClient(BaseAWSClient, MetricsClient):
    # One datapoint per day keeps a 30 day window well under the 1440 point cap.
    PERIOD_SECONDS = 86400

    async def peak_cpu_utilization(
        self, instance: Resource, start: datetime, end: datetime
    ) -> Optional[float]:
        try:
            async with self._client("cloudwatch") as cloudwatch:
                response = await cloudwatch.get_metric_statistics(
                    Namespace="AWS/RDS",
                    MetricName="CPUUtilization",
                    Dimensions=[{"Name": "DBInstanceIdentifier", "Value": instance.name}],
                    StartTime=start,
                    EndTime=end,
                    Period=self.PERIOD_SECONDS,
                    Statistics=["Maximum"],
                )
        except (ClientError, BotoCoreError) as e:
            raise AdapterError(
                f"Failed to read CloudWatch metrics for {instance.name}: {e}",
                details={"provider": "AWS", "instance": instance.name},
            ) from e

        datapoints = [dp["Maximum"] for dp in response.get("Datapoints", []) if "Maximum" in dp]
        if not datapoints:
            return None
        return float(max(datapoints))

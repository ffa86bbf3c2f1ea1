import pytest
from unittest.mock import AsyncMock, MagicMock

from botocore.exceptions import ClientError

from cloudwarden.core.config import get_settings
from cloudwarden.core.exceptions import AdapterError
from cloudwarden.schemas.resources import CloudAccount, CloudProvider, ResourceType
from cloudwarden.shared.adapters.aws import (
    AWSCloudWatchClient,
    AWSEC2Client,
    AWSRDSClient,
    map_aws_credentials,
    resolve_region,
)
from tests.utils import make_resource, utc


class AsyncContextManagerMock:
    def __init__(self, client):
        self.client = client

    async def __aenter__(self):
        return self.client

    async def __aexit__(self, exc_type, exc, tb):
        return False


class AsyncPages:
    def __init__(self, pages):
        self.pages = pages

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        for page in self.pages:
            yield page


def _session_with(client):
    session = MagicMock()
    session.client.return_value = AsyncContextManagerMock(client)
    return session


def _paginated_client(pages):
    client = MagicMock()
    paginator = MagicMock()
    paginator.paginate.return_value = AsyncPages(pages)
    client.get_paginator.return_value = paginator
    return client


def _client_error(operation):
    return ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, operation)


def test_map_aws_credentials_accepts_both_spellings():
    assert map_aws_credentials({"AccessKeyId": "AK", "SecretAccessKey": "SK", "Expiration": "x"}) == {
        "aws_access_key_id": "AK",
        "aws_secret_access_key": "SK",
    }
    assert map_aws_credentials({"aws_session_token": "ST"}) == {"aws_session_token": "ST"}
    assert map_aws_credentials({}) == {}


def test_resolve_region_falls_back_to_default():
    assert resolve_region({"region": "eu-west-1"}) == "eu-west-1"
    assert resolve_region({}) == get_settings().AWS_DEFAULT_REGION


def test_client_kwargs_include_credentials_and_region(aws_account):
    session = MagicMock()
    AWSRDSClient(aws_account, session=session)._client("rds")

    _, kwargs = session.client.call_args
    assert session.client.call_args.args == ("rds",)
    assert kwargs["region_name"] == "eu-west-1"
    assert kwargs["aws_access_key_id"] == "AKIATEST"
    assert kwargs["aws_secret_access_key"] == "secret"


@pytest.mark.asyncio
async def test_rds_list_instances_maps_status(aws_account):
    client = _paginated_client(
        [
            {
                "DBInstances": [
                    {
                        "DBInstanceIdentifier": "orders",
                        "DbiResourceId": "db-ABC",
                        "DBInstanceStatus": "available",
                        "Engine": "postgres",
                        "DBInstanceClass": "db.m5.large",
                    },
                    {"DBInstanceIdentifier": "legacy", "DBInstanceStatus": "stopped"},
                ]
            },
            {"DBInstances": [{"DBInstanceIdentifier": "new", "DBInstanceStatus": "creating"}]},
        ]
    )
    rds = AWSRDSClient(aws_account, session=_session_with(client))

    instances = await rds.list_instances()

    assert [(i.uid, i.name, i.status) for i in instances] == [
        ("db-ABC", "orders", "RUNNING"),
        ("legacy", "legacy", "STOPPED"),
        ("new", "new", "CREATING"),
    ]
    assert instances[0].type == ResourceType.SQL
    assert instances[0].settings["instance_class"] == "db.m5.large"
    assert instances[0].region == "eu-west-1"


@pytest.mark.asyncio
async def test_rds_start_and_stop(aws_account):
    client = MagicMock()
    client.start_db_instance = AsyncMock()
    client.stop_db_instance = AsyncMock()
    rds = AWSRDSClient(aws_account, session=_session_with(client))

    await rds.start_instance("orders")
    await rds.stop_instance("orders")

    client.start_db_instance.assert_awaited_once_with(DBInstanceIdentifier="orders")
    client.stop_db_instance.assert_awaited_once_with(DBInstanceIdentifier="orders")


@pytest.mark.asyncio
async def test_rds_client_error_becomes_adapter_error(aws_account):
    client = MagicMock()
    client.stop_db_instance = AsyncMock(side_effect=_client_error("StopDBInstance"))
    rds = AWSRDSClient(aws_account, session=_session_with(client))

    with pytest.raises(AdapterError) as exc:
        await rds.stop_instance("orders")

    assert exc.value.status_code == 502
    assert exc.value.details["instance"] == "orders"


@pytest.mark.asyncio
async def test_ec2_list_instances_uses_name_tag(aws_account):
    client = _paginated_client(
        [
            {
                "Reservations": [
                    {
                        "Instances": [
                            {
                                "InstanceId": "i-1",
                                "State": {"Name": "running"},
                                "Tags": [{"Key": "Name", "Value": "web"}],
                                "InstanceType": "t3.micro",
                            },
                            {"InstanceId": "i-2", "State": {"Name": "stopped"}},
                        ]
                    }
                ]
            }
        ]
    )
    ec2 = AWSEC2Client(aws_account, session=_session_with(client))

    instances = await ec2.list_instances()

    assert [(i.uid, i.name, i.status) for i in instances] == [
        ("i-1", "web", "RUNNING"),
        ("i-2", "i-2", "STOPPED"),
    ]
    assert all(i.type == ResourceType.COMPUTE for i in instances)


@pytest.mark.asyncio
async def test_cloudwatch_peak_cpu(aws_account):
    client = MagicMock()
    client.get_metric_statistics = AsyncMock(
        return_value={"Datapoints": [{"Maximum": 12.0}, {"Maximum": 47.5}, {"Average": 99.0}]}
    )
    cloudwatch = AWSCloudWatchClient(aws_account, session=_session_with(client))
    start, end = utc(2026, 3, 1), utc(2026, 3, 31)

    peak = await cloudwatch.peak_cpu_utilization(make_resource("db-1", name="orders"), start, end)

    assert peak == 47.5
    kwargs = client.get_metric_statistics.await_args.kwargs
    assert kwargs["Dimensions"] == [{"Name": "DBInstanceIdentifier", "Value": "orders"}]
    assert kwargs["Statistics"] == ["Maximum"]
    assert kwargs["StartTime"] == start


@pytest.mark.asyncio
async def test_cloudwatch_no_datapoints(aws_account):
    client = MagicMock()
    client.get_metric_statistics = AsyncMock(return_value={"Datapoints": []})
    cloudwatch = AWSCloudWatchClient(aws_account, session=_session_with(client))

    assert await cloudwatch.peak_cpu_utilization(make_resource("db-1"), utc(2026, 3, 1), utc(2026, 3, 2)) is None


def test_account_without_region_uses_default():
    account = CloudAccount(id=5, provider=CloudProvider.AWS, credentials={})

    assert AWSRDSClient(account, session=MagicMock()).region == get_settings().AWS_DEFAULT_REGION

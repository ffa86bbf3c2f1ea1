from datetime import datetime, timezone
from itertools import count
from typing import Dict, Iterable, List, Optional, Sequence, Set

from cloudwarden.core.exceptions import PersistenceError, ResourceNotFoundError
from cloudwarden.modules.audit.domain.rule import AuditRule
from cloudwarden.modules.audit.domain.store import AuditStore
from cloudwarden.modules.resources.domain.store import ResourceStore
from cloudwarden.schemas.audit import AuditResult, ResultItem
from cloudwarden.schemas.resources import (
    CloudAccount,
    CloudAccountRef,
    Resource,
    ResourceType,
)
from cloudwarden.shared.adapters.base import CloudAccountClient, SQLClient


def make_resource(
    uid: str,
    status: str = "RUNNING",
    resource_type: ResourceType = ResourceType.SQL,
    cloud_account_id: int = 1,
    resource_id: Optional[int] = None,
    name: Optional[str] = None,
) -> Resource:
    return Resource(
        id=resource_id,
        uid=uid,
        name=name or uid,
        type=resource_type,
        status=status,
        cloud_account=CloudAccountRef(id=cloud_account_id, type="AWS"),
        region="eu-west-1",
    )


class FakeCloudAccounts(CloudAccountClient):
    def __init__(self, accounts: Iterable[CloudAccount]):
        self.accounts = {account.id: account for account in accounts}
        self.calls: List[int] = []

    async def get_cloud_credentials(self, cloud_account_id: int) -> CloudAccount:
        self.calls.append(cloud_account_id)
        account = self.accounts.get(cloud_account_id)
        if account is None:
            raise ResourceNotFoundError("CloudAccount", cloud_account_id)
        return account

    async def get_all_cloud_accounts(self) -> List[CloudAccount]:
        return list(self.accounts.values())


class FakeSQLClient(SQLClient):
    def __init__(self, instances: Optional[List[Resource]] = None, error: Optional[Exception] = None):
        self.instances = instances or []
        self.error = error
        self.started: List[str] = []
        self.stopped: List[str] = []

    async def list_instances(self) -> List[Resource]:
        if self.error is not None:
            raise self.error
        return [instance.model_copy() for instance in self.instances]

    async def start_instance(self, instance_name: str) -> None:
        if self.error is not None:
            raise self.error
        self.started.append(instance_name)

    async def stop_instance(self, instance_name: str) -> None:
        if self.error is not None:
            raise self.error
        self.stopped.append(instance_name)


class InMemoryResourceStore(ResourceStore):
    """Keeps resources in a dict and records every write."""

    def __init__(self, resources: Iterable[Resource] = ()):
        self._ids = count(1)
        self.rows: Dict[int, Resource] = {}
        self.inserts: List[str] = []
        self.updates: List[tuple] = []
        self.removals: List[int] = []
        self.fail_uids: Set[str] = set()
        self.fail_ids: Set[int] = set()
        for resource in resources:
            rid = next(self._ids)
            self.rows[rid] = resource.model_copy(update={"id": rid})

    async def insert_resource(self, resource: Resource) -> None:
        self.inserts.append(resource.uid)
        if resource.uid in self.fail_uids:
            raise PersistenceError(f"insert failed for {resource.uid}")
        rid = next(self._ids)
        self.rows[rid] = resource.model_copy(update={"id": rid})

    async def get_resources(
        self, cloud_account_id: int, resource_types: Optional[Sequence[str]] = None
    ) -> List[Resource]:
        rows = [
            r.model_copy()
            for r in self.rows.values()
            if r.cloud_account is not None and r.cloud_account.id == cloud_account_id
            and (not resource_types or r.type.value in resource_types)
        ]
        return sorted(rows, key=lambda r: r.uid)

    async def update_status(self, status: str, resource_id: int) -> None:
        self.updates.append((status, resource_id))
        if resource_id in self.fail_ids:
            raise PersistenceError(f"update failed for {resource_id}")
        self.rows[resource_id] = self.rows[resource_id].model_copy(update={"status": status})

    async def remove_resource(self, resource_id: int) -> None:
        self.removals.append(resource_id)
        if resource_id in self.fail_ids:
            raise PersistenceError(f"remove failed for {resource_id}")
        del self.rows[resource_id]

    async def get_resource_by_id(self, resource_id: int) -> Resource:
        if resource_id not in self.rows:
            raise ResourceNotFoundError("Resource", resource_id)
        return self.rows[resource_id].model_copy()


class StaticRule(AuditRule):
    """Rule returning fixed items, or raising ``error`` when executed."""

    def __init__(
        self,
        name: str,
        category: str,
        items: Optional[List[ResultItem]] = None,
        error: Optional[Exception] = None,
    ):
        self._name = name
        self._category = category
        self.items = items if items is not None else [
            ResultItem(instance_name=f"{name}-db", status="compliant")
        ]
        self.error = error
        self.executions = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def category(self) -> str:
        return self._category

    async def execute(self, account: CloudAccount) -> List[ResultItem]:
        self.executions += 1
        if self.error is not None:
            raise self.error
        return list(self.items)


class InMemoryAuditStore(AuditStore):
    def __init__(self):
        self._ids = count(1)
        self.rows: Dict[int, AuditResult] = {}
        self.fail_updates = False
        self.fail_creates = False

    async def create_pending(self, result: AuditResult) -> AuditResult:
        if self.fail_creates:
            raise PersistenceError("create failed")
        rid = next(self._ids)
        self.rows[rid] = result.model_copy(update={"id": rid}, deep=True)
        return result.model_copy(update={"id": rid})

    async def update_result(self, result: AuditResult) -> None:
        if self.fail_updates:
            raise PersistenceError("update failed")
        self.rows[result.id] = result.model_copy(deep=True)

    async def get_last_run(self, cloud_account_id: int, rule_id: str) -> Optional[AuditResult]:
        runs = [
            r for r in self.rows.values()
            if r.cloud_account_id == cloud_account_id and r.rule_id == rule_id
        ]
        if not runs:
            return None
        return max(runs, key=lambda r: (r.evaluated_at, r.id))


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock

from sqlalchemy.exc import OperationalError

from cloudwarden.core.exceptions import (
    InvalidInputError,
    PersistenceError,
    ResourceNotFoundError,
)
from cloudwarden.modules.audit.domain.registry import AuditRuleRegistry
from cloudwarden.modules.resources.domain import (
    ResourceGroupService,
    SQLResourceGroupStore,
    SQLResourceStore,
)
from cloudwarden.modules.resources.domain.group_store import ResourceGroupStore
from cloudwarden.schemas.resources import CloudProvider, RGCreate, RGUpdate
from cloudwarden.shared.adapters.factory import ClientKind, ProviderClientFactory
from tests.utils import FakeSQLClient, StaticRule, make_resource


@pytest_asyncio.fixture
async def tracked(db_session):
    """Ids of three tracked resources in account 1 and one in account 2, by uid."""
    store = SQLResourceStore(db_session)
    for uid in ("db-c", "db-a", "db-b"):
        await store.insert_resource(make_resource(uid))
    await store.insert_resource(make_resource("other", cloud_account_id=2))

    ids = {r.uid: r.id for r in await store.get_resources(1)}
    ids.update({r.uid: r.id for r in await store.get_resources(2)})
    return ids


@pytest.fixture
def service(db_session):
    return ResourceGroupService.from_session(db_session)


@pytest.mark.asyncio
async def test_create_and_read_group(service, tracked):
    group = await service.create_resource_group(
        1,
        RGCreate(
            name="databases",
            description="all sql",
            resource_ids=[tracked["db-c"], tracked["db-a"], tracked["db-c"]],
        ),
    )

    assert group.id is not None
    assert group.cloud_account_id == 1
    assert group.description == "all sql"
    assert [r.uid for r in group.resources] == ["db-a", "db-c"]
    assert group.created_at is not None

    assert await service.get_resource_group(1, group.id) == group
    assert [g.id for g in await service.get_all_resource_groups(1)] == [group.id]
    assert await service.get_all_resource_groups(2) == []


@pytest.mark.asyncio
async def test_payload_account_is_overridden_by_path(service, tracked):
    group = await service.create_resource_group(
        1, RGCreate(name="g", cloud_account_id=99, resource_ids=[tracked["db-a"]])
    )

    assert group.cloud_account_id == 1
    assert await service.get_all_resource_groups(99) == []


@pytest.mark.asyncio
async def test_group_from_other_account_is_not_found(service, tracked):
    group = await service.create_resource_group(1, RGCreate(name="g"))

    with pytest.raises(ResourceNotFoundError) as exc:
        await service.get_resource_group(2, group.id)

    assert exc.value.entity == "ResourceGroup"
    assert exc.value.value == group.id


@pytest.mark.asyncio
async def test_members_must_belong_to_account(service, tracked):
    with pytest.raises(InvalidInputError) as exc:
        await service.create_resource_group(
            1, RGCreate(name="g", resource_ids=[tracked["db-a"], tracked["other"]])
        )

    assert exc.value.params == ["resource_ids"]
    assert await service.get_all_resource_groups(1) == []


@pytest.mark.asyncio
async def test_duplicate_name_in_account_rejected(service, tracked):
    await service.create_resource_group(1, RGCreate(name="g"))

    with pytest.raises(InvalidInputError) as exc:
        await service.create_resource_group(1, RGCreate(name="g"))

    assert exc.value.params == ["name"]
    # Same name is fine in another account.
    await service.create_resource_group(2, RGCreate(name="g"))
    assert len(await service.get_all_resource_groups(1)) == 1


@pytest.mark.asyncio
async def test_update_replaces_members(service, tracked):
    group = await service.create_resource_group(
        1, RGCreate(name="g", resource_ids=[tracked["db-a"], tracked["db-b"]])
    )

    updated = await service.update_resource_group(
        RGUpdate(
            id=group.id,
            cloud_account_id=1,
            name="renamed",
            description="only c",
            resource_ids=[tracked["db-c"]],
        )
    )

    assert updated.name == "renamed"
    assert updated.description == "only c"
    assert [r.uid for r in updated.resources] == ["db-c"]


@pytest.mark.asyncio
async def test_update_missing_group_is_not_found(service, tracked):
    with pytest.raises(ResourceNotFoundError):
        await service.update_resource_group(RGUpdate(id=404, cloud_account_id=1, name="x"))


@pytest.mark.asyncio
async def test_delete_group_keeps_resources(service, tracked, db_session):
    group = await service.create_resource_group(
        1, RGCreate(name="g", resource_ids=[tracked["db-a"]])
    )

    await service.delete_resource_group(1, group.id)

    with pytest.raises(ResourceNotFoundError):
        await service.get_resource_group(1, group.id)
    with pytest.raises(ResourceNotFoundError):
        await service.delete_resource_group(1, group.id)
    assert len(await SQLResourceStore(db_session).get_resources(1)) == 3


@pytest.mark.asyncio
async def test_removed_resource_leaves_group(service, tracked, db_session):
    group = await service.create_resource_group(
        1, RGCreate(name="g", resource_ids=[tracked["db-a"], tracked["db-b"]])
    )

    await SQLResourceStore(db_session).remove_resource(tracked["db-a"])

    assert [r.uid for r in (await service.get_resource_group(1, group.id)).resources] == ["db-b"]


@pytest.mark.asyncio
async def test_store_delete_of_foreign_group_is_not_found(db_session, tracked):
    store = SQLResourceGroupStore(db_session)
    rg_id = await store.create_resource_group(RGCreate(name="g", cloud_account_id=1))

    with pytest.raises(ResourceNotFoundError):
        await store.delete_resource_group(2, rg_id)
    assert await store.get_resource_group(1, rg_id) is not None


@pytest.mark.asyncio
async def test_store_query_failure_wrapped():
    db = AsyncMock()
    db.execute.side_effect = OperationalError("SELECT", {}, Exception("db gone"))

    with pytest.raises(PersistenceError):
        await SQLResourceGroupStore(db).get_resource_groups(1)


@pytest.mark.asyncio
async def test_service_maps_missing_group_to_not_found():
    groups = AsyncMock(spec=ResourceGroupStore)
    groups.get_resource_group.return_value = None
    service = ResourceGroupService(groups, AsyncMock())

    with pytest.raises(ResourceNotFoundError) as exc:
        await service.get_resource_group(1, 7)

    assert str(exc.value) == "No entity found with ResourceGroup: 7"
    groups.get_resource_group.assert_awaited_once_with(1, 7)


@pytest_asyncio.fixture
async def ac(async_client_factory, cloud_accounts):
    sql_client = FakeSQLClient([make_resource("db-b"), make_resource("db-a")])
    return await async_client_factory(
        cloud_accounts=cloud_accounts,
        client_factory=ProviderClientFactory(
            {(CloudProvider.AWS, ClientKind.SQL): lambda account: sql_client}
        ),
        rule_registry=AuditRuleRegistry([StaticRule("r1", "c1")]),
    )


@pytest.mark.asyncio
async def test_resource_group_routes(ac):
    synced = (await ac.post("/cloud-accounts/1/resources/sync")).json()
    ids = {r["uid"]: r["id"] for r in synced}

    response = await ac.post(
        "/cloud-accounts/1/resource-groups",
        json={"name": "dbs", "resource_ids": [ids["db-b"], ids["db-a"]]},
    )
    assert response.status_code == 201
    group = response.json()
    assert group["cloud_account_id"] == 1
    assert [r["uid"] for r in group["resources"]] == ["db-a", "db-b"]

    response = await ac.get("/cloud-accounts/1/resource-groups")
    assert [g["id"] for g in response.json()] == [group["id"]]

    response = await ac.put(
        f"/cloud-accounts/1/resource-groups/{group['id']}",
        json={"name": "dbs", "description": "a only", "resource_ids": [ids["db-a"]]},
    )
    assert response.status_code == 200
    assert [r["uid"] for r in response.json()["resources"]] == ["db-a"]

    response = await ac.delete(f"/cloud-accounts/1/resource-groups/{group['id']}")
    assert response.status_code == 204

    response = await ac.get(f"/cloud-accounts/1/resource-groups/{group['id']}")
    assert response.status_code == 404
    assert response.json()["details"] == {"entity": "ResourceGroup", "value": str(group["id"])}


@pytest.mark.asyncio
async def test_resource_group_unknown_member_is_400(ac):
    response = await ac.post(
        "/cloud-accounts/1/resource-groups",
        json={"name": "dbs", "resource_ids": [12345]},
    )

    assert response.status_code == 400
    assert response.json()["details"]["params"] == ["resource_ids"]

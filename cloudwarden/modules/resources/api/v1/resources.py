from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel

from cloudwarden.core.dependencies import get_resource_service
from cloudwarden.modules.resources.domain import ResourceService
from cloudwarden.schemas.resources import (
    Resource,
    ResourceDetails,
    ResourceState,
    ResourceType,
)

router = APIRouter(tags=["Resources"])


class StateChangeRequest(BaseModel):
    name: str
    type: ResourceType
    state: ResourceState


@router.post("/cloud-accounts/resources/sync", response_model=Dict[int, int])
async def sync_all_resources(
    service: ResourceService = Depends(get_resource_service),
) -> Dict[int, int]:
    """Sync every registered cloud account; the body maps account id to inventory size."""
    return await service.sync_all_accounts()


@router.get("/cloud-accounts/{cloud_account_id}/resources", response_model=List[Resource])
async def get_resources(
    cloud_account_id: int,
    resource_type: Optional[List[ResourceType]] = Query(default=None, alias="type"),
    service: ResourceService = Depends(get_resource_service),
) -> List[Resource]:
    types = [t.value for t in resource_type] if resource_type else None
    return await service.get_all(cloud_account_id, types)


@router.post("/cloud-accounts/{cloud_account_id}/resources/sync", response_model=List[Resource])
async def sync_resources(
    cloud_account_id: int,
    service: ResourceService = Depends(get_resource_service),
) -> List[Resource]:
    return await service.sync_resources(cloud_account_id)


@router.post(
    "/cloud-accounts/{cloud_account_id}/resources/{resource_id}/state",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def change_state(
    cloud_account_id: int,
    resource_id: int,
    body: StateChangeRequest,
    service: ResourceService = Depends(get_resource_service),
) -> Response:
    await service.change_state(
        ResourceDetails(
            id=resource_id,
            cloud_account_id=cloud_account_id,
            name=body.name,
            type=body.type,
            state=body.state,
        )
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)

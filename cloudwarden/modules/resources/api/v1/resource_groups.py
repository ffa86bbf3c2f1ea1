from typing import List

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from cloudwarden.core.dependencies import get_resource_group_service
from cloudwarden.modules.resources.domain import ResourceGroupService
from cloudwarden.schemas.resources import ResourceGroup, RGCreate, RGUpdate

router = APIRouter(prefix="/cloud-accounts/{cloud_account_id}/resource-groups", tags=["Resource Groups"])


class RGUpdateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    resource_ids: List[int] = Field(default_factory=list)


@router.get("", response_model=List[ResourceGroup])
async def get_all_resource_groups(
    cloud_account_id: int,
    service: ResourceGroupService = Depends(get_resource_group_service),
) -> List[ResourceGroup]:
    return await service.get_all_resource_groups(cloud_account_id)


@router.post("", response_model=ResourceGroup, status_code=status.HTTP_201_CREATED)
async def create_resource_group(
    cloud_account_id: int,
    body: RGCreate,
    service: ResourceGroupService = Depends(get_resource_group_service),
) -> ResourceGroup:
    return await service.create_resource_group(cloud_account_id, body)


@router.get("/{rg_id}", response_model=ResourceGroup)
async def get_resource_group(
    cloud_account_id: int,
    rg_id: int,
    service: ResourceGroupService = Depends(get_resource_group_service),
) -> ResourceGroup:
    return await service.get_resource_group(cloud_account_id, rg_id)


@router.put("/{rg_id}", response_model=ResourceGroup)
async def update_resource_group(
    cloud_account_id: int,
    rg_id: int,
    body: RGUpdateRequest,
    service: ResourceGroupService = Depends(get_resource_group_service),
) -> ResourceGroup:
    return await service.update_resource_group(
        RGUpdate(id=rg_id, cloud_account_id=cloud_account_id, **body.model_dump())
    )


@router.delete("/{rg_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_resource_group(
    cloud_account_id: int,
    rg_id: int,
    service: ResourceGroupService = Depends(get_resource_group_service),
) -> Response:
    await service.delete_resource_group(cloud_account_id, rg_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""
Resource Inventory Schemas

Provides a unified data model for tracked cloud resources across all providers.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

RUNNING = "RUNNING"
STOPPED = "STOPPED"


class CloudProvider(str, Enum):
    AWS = "AWS"
    GCP = "GCP"
    AZURE = "AZURE"


class ResourceType(str, Enum):
    SQL = "SQL"
    COMPUTE = "COMPUTE"


class ResourceState(str, Enum):
    START = "START"
    SUSPEND = "SUSPEND"


_TARGET_STATUS = {
    ResourceState.START: RUNNING,
    ResourceState.SUSPEND: STOPPED,
}


def status_for(state: ResourceState) -> str:
    """Status label a resource carries once ``state`` has been applied."""
    return _TARGET_STATUS[state]


class CloudAccount(BaseModel):
    """A registered cloud account as served by the cloud-account service."""

    id: int
    name: str = ""
    provider: CloudProvider
    credentials: Dict[str, Any] = Field(default_factory=dict, repr=False)

    @field_validator("provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class CloudAccountRef(BaseModel):
    id: int
    type: str


class Resource(BaseModel):
    """Normalized representation of a tracked cloud resource."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    uid: str
    name: str
    type: ResourceType
    status: str
    cloud_account: Optional[CloudAccountRef] = None
    settings: Optional[Dict[str, Any]] = None
    region: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ResourceDetails(BaseModel):
    """Desired-state command for a single tracked resource."""
    id: int
    cloud_account_id: int
    name: str
    type: ResourceType
    state: ResourceState


class RGCreate(BaseModel):
    """Payload for a new resource group; members are tracked resource ids."""
    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    resource_ids: List[int] = Field(default_factory=list)
    cloud_account_id: int = 0


class RGUpdate(BaseModel):
    """Full replacement of a group's name, description and member set."""
    id: int
    cloud_account_id: int
    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    resource_ids: List[int] = Field(default_factory=list)


class ResourceGroup(BaseModel):
    """A named set of tracked resources within one cloud account."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str = ""
    cloud_account_id: int
    resources: List[Resource] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

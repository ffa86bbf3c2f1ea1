from .group_store import ResourceGroupStore, SQLResourceGroupStore
from .groups import ResourceGroupService
from .service import ResourceService
from .store import ResourceStore, SQLResourceStore

__all__ = [
    "ResourceGroupService",
    "ResourceGroupStore",
    "ResourceService",
    "ResourceStore",
    "SQLResourceGroupStore",
    "SQLResourceStore",
]

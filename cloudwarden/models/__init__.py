from cloudwarden.models.audit_result import AuditResultRecord
from cloudwarden.models.resource import ResourceRecord
from cloudwarden.models.resource_group import ResourceGroupMemberRecord, ResourceGroupRecord

__all__ = [
    "AuditResultRecord",
    "ResourceGroupMemberRecord",
    "ResourceGroupRecord",
    "ResourceRecord",
]

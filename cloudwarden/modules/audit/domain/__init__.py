from .registry import AuditRuleRegistry
from .rule import AuditRule
from .service import AuditService
from .store import AuditStore, SQLAuditStore

__all__ = ["AuditRule", "AuditRuleRegistry", "AuditService", "AuditStore", "SQLAuditStore"]

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

COMPLIANT = "compliant"
WARNING = "warning"
DANGER = "danger"


class ResultItem(BaseModel):
    """One finding produced by a rule for a single instance."""
    instance_name: str
    status: str
    data: Dict[str, Any] = Field(default_factory=dict)


class ResultData(BaseModel):
    data: List[ResultItem] = Field(default_factory=list)


class AuditResult(BaseModel):
    id: Optional[int] = None
    rule_id: str
    cloud_account_id: int
    result: ResultData = Field(default_factory=ResultData)
    evaluated_at: datetime

    @property
    def is_pending(self) -> bool:
        return not self.result.data


class RuleDescriptor(BaseModel):
    name: str
    category: str

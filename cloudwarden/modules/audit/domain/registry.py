from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from cloudwarden.modules.audit.domain.rule import AuditRule
from cloudwarden.schemas.audit import RuleDescriptor


class AuditRuleRegistry:
    """
    Immutable set of audit rules, indexed by name and by category.

    Built once at startup and handed to the services that need it. The
    category index is derived from the rules themselves; iteration order of
    both indices is registration order.
    """

    def __init__(self, rules: Iterable[AuditRule]):
        by_name: Dict[str, AuditRule] = {}
        by_category: Dict[str, List[AuditRule]] = {}

        for rule in rules:
            if rule.name in by_name:
                raise ValueError(f"Duplicate audit rule registration: {rule.name}")
            by_name[rule.name] = rule
            by_category.setdefault(rule.category, []).append(rule)

        self._rules: Mapping[str, AuditRule] = MappingProxyType(by_name)
        self._categories: Mapping[str, Tuple[AuditRule, ...]] = MappingProxyType(
            {category: tuple(members) for category, members in by_category.items()}
        )

    @property
    def rules(self) -> Mapping[str, AuditRule]:
        return self._rules

    @property
    def categories(self) -> Mapping[str, Tuple[AuditRule, ...]]:
        return self._categories

    def get(self, rule_id: str) -> Optional[AuditRule]:
        return self._rules.get(rule_id)

    def in_category(self, category: str) -> Optional[Tuple[AuditRule, ...]]:
        return self._categories.get(category)

    def describe(self) -> List[RuleDescriptor]:
        return [
            RuleDescriptor(name=rule.name, category=rule.category)
            for rule in self._rules.values()
        ]

    def __len__(self) -> int:
        return len(self._rules)

"""
Audit Service

Executes registered audit rules against a cloud account and records their
results. Every execution first writes a pending result row, runs the rule,
then fills the row with the rule's items. A rule that fails leaves its row
pending.

Persistence errors on the final write are surfaced for single-rule runs and
logged for category/all runs, so one bad write does not stop a batch. Rule
execution errors always abort.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from cloudwarden.core.exceptions import PersistenceError, ResourceNotFoundError
from cloudwarden.modules.audit.domain.registry import AuditRuleRegistry
from cloudwarden.modules.audit.domain.rule import AuditRule
from cloudwarden.modules.audit.domain.store import AuditStore, SQLAuditStore
from cloudwarden.schemas.audit import AuditResult, ResultData, RuleDescriptor
from cloudwarden.schemas.resources import CloudAccount
from cloudwarden.shared.adapters.base import CloudAccountClient

logger = structlog.get_logger()


class AuditService:
    def __init__(
        self,
        registry: AuditRuleRegistry,
        store: AuditStore,
        accounts: CloudAccountClient,
    ):
        self.registry = registry
        self.store = store
        self.accounts = accounts

    @classmethod
    def from_session(
        cls,
        registry: AuditRuleRegistry,
        db: AsyncSession,
        accounts: CloudAccountClient,
    ) -> "AuditService":
        return cls(registry, SQLAuditStore(db), accounts)

    def list_rules(self) -> List[RuleDescriptor]:
        return self.registry.describe()

    async def _create_pending(self, rule: AuditRule, cloud_account_id: int) -> AuditResult:
        return await self.store.create_pending(
            AuditResult(
                rule_id=rule.name,
                cloud_account_id=cloud_account_id,
                result=ResultData(),
                evaluated_at=datetime.now(timezone.utc),
            )
        )

    async def _execute(self, rule: AuditRule, account: CloudAccount) -> ResultData:
        logger.info("audit_rule_started", rule_id=rule.name, cloud_account_id=account.id)
        try:
            items = await rule.execute(account)
        except Exception as e:
            logger.error(
                "audit_rule_failed",
                rule_id=rule.name,
                cloud_account_id=account.id,
                error=str(e),
            )
            raise
        logger.info(
            "audit_rule_completed",
            rule_id=rule.name,
            cloud_account_id=account.id,
            items=len(items),
        )
        return ResultData(data=items)

    async def _run_batch(self, rule: AuditRule, account: CloudAccount) -> AuditResult:
        res = await self._create_pending(rule, account.id)
        res.result = await self._execute(rule, account)

        try:
            await self.store.update_result(res)
        except PersistenceError as e:
            logger.error(
                "audit_result_update_failed",
                rule_id=rule.name,
                cloud_account_id=account.id,
                result_id=res.id,
                error=e.message,
            )
        return res

    async def run_by_id(self, cloud_account_id: int, rule_id: str) -> AuditResult:
        rule = self.registry.get(rule_id)
        if rule is None:
            raise ResourceNotFoundError("Rule", rule_id)

        res = await self._create_pending(rule, cloud_account_id)
        account = await self.accounts.get_cloud_credentials(cloud_account_id)
        res.result = await self._execute(rule, account)

        await self.store.update_result(res)
        return res

    async def run_by_category(self, cloud_account_id: int, category: str) -> List[AuditResult]:
        rules = self.registry.in_category(category)
        if rules is None:
            raise ResourceNotFoundError("Category", category)

        account = await self.accounts.get_cloud_credentials(cloud_account_id)
        return [await self._run_batch(rule, account) for rule in rules]

    async def run_all(self, cloud_account_id: int) -> Dict[str, List[AuditResult]]:
        """Run every registered rule; results are grouped by rule category."""
        account = await self.accounts.get_cloud_credentials(cloud_account_id)
        results: Dict[str, List[AuditResult]] = {}

        for rule in self.registry.rules.values():
            res = await self._run_batch(rule, account)
            results.setdefault(rule.category, []).append(res)

        return results

    async def get_result_by_id(self, cloud_account_id: int, rule_id: str) -> AuditResult:
        if self.registry.get(rule_id) is None:
            raise ResourceNotFoundError("Rule", rule_id)

        res = await self.store.get_last_run(cloud_account_id, rule_id)
        if res is None:
            raise ResourceNotFoundError("Result", rule_id)
        return res

    async def get_result_by_category(
        self, cloud_account_id: int, category: Optional[str] = None
    ) -> Dict[str, List[AuditResult]]:
        if category is None:
            categories = self.registry.categories
        else:
            rules = self.registry.in_category(category)
            if rules is None:
                raise ResourceNotFoundError("Category", category)
            categories = {category: rules}

        results: Dict[str, List[AuditResult]] = {}
        for name, rules in categories.items():
            last_runs = []
            for rule in rules:
                last_run = await self.store.get_last_run(cloud_account_id, rule.name)
                if last_run is not None:
                    last_runs.append(last_run)
            results[name] = last_runs
        return results

    async def get_result_by_all(self, cloud_account_id: int) -> List[AuditResult]:
        results: List[AuditResult] = []
        for rule in self.registry.rules.values():
            last_run = await self.store.get_last_run(cloud_account_id, rule.name)
            if last_run is not None:
                results.append(last_run)
        return results

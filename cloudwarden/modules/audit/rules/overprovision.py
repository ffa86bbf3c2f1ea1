"""
Over-provisioning rules.

Flag managed database instances whose peak CPU stays far below capacity over
the lookback window; they are candidates for a smaller tier.
"""
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import structlog

from cloudwarden.core.config import get_settings
from cloudwarden.modules.audit.domain.rule import AuditRule
from cloudwarden.schemas.audit import COMPLIANT, DANGER, WARNING, ResultItem
from cloudwarden.schemas.resources import RUNNING, CloudAccount
from cloudwarden.shared.adapters.factory import ProviderClientFactory

logger = structlog.get_logger()

CATEGORY = "overprovision"


class SQLInstancePeak(AuditRule):
    """
    Peak CPU utilisation of every running SQL instance of an account.

    peak < danger threshold  -> danger
    peak < warning threshold -> warning
    otherwise (or no data)   -> compliant
    """

    def __init__(
        self,
        clients: ProviderClientFactory,
        lookback_days: Optional[int] = None,
        danger_pct: Optional[float] = None,
        warning_pct: Optional[float] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        settings = get_settings()
        self.clients = clients
        self.lookback = timedelta(
            days=settings.AUDIT_SQL_PEAK_LOOKBACK_DAYS if lookback_days is None else lookback_days
        )
        self.danger_pct = settings.AUDIT_SQL_PEAK_DANGER_PCT if danger_pct is None else danger_pct
        self.warning_pct = settings.AUDIT_SQL_PEAK_WARNING_PCT if warning_pct is None else warning_pct
        self._clock = clock

    @property
    def name(self) -> str:
        return "sql_instance_peak"

    @property
    def category(self) -> str:
        return CATEGORY

    def classify(self, peak: Optional[float]) -> str:
        if peak is None:
            return COMPLIANT
        if peak < self.danger_pct:
            return DANGER
        if peak < self.warning_pct:
            return WARNING
        return COMPLIANT

    async def execute(self, account: CloudAccount) -> List[ResultItem]:
        sql_client = self.clients.sql_client(account)
        metrics_client = self.clients.metrics_client(account)
        if sql_client is None or metrics_client is None:
            logger.info(
                "audit_rule_provider_unsupported",
                rule_id=self.name,
                provider=account.provider.value,
            )
            return []

        end = self._clock()
        start = end - self.lookback
        items: List[ResultItem] = []

        for instance in await sql_client.list_instances():
            if instance.status != RUNNING:
                continue

            peak = await metrics_client.peak_cpu_utilization(instance, start, end)
            items.append(
                ResultItem(
                    instance_name=instance.name,
                    status=self.classify(peak),
                    data={
                        "peak_cpu_percent": round(peak, 2) if peak is not None else None,
                        "lookback_days": self.lookback.days,
                        "region": instance.region,
                        "settings": instance.settings or {},
                    },
                )
            )

        return items

from typing import List

from cloudwarden.modules.audit.domain.rule import AuditRule
from cloudwarden.shared.adapters.factory import ProviderClientFactory

from .overprovision import SQLInstancePeak


def default_rules(clients: ProviderClientFactory) -> List[AuditRule]:
    """Every rule shipped with the service, in registration order."""
    return [
        SQLInstancePeak(clients),
    ]


__all__ = ["SQLInstancePeak", "default_rules"]

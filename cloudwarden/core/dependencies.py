from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from cloudwarden.db.session import get_db
from cloudwarden.modules.audit.domain import AuditRuleRegistry, AuditService
from cloudwarden.modules.resources.domain import ResourceGroupService, ResourceService
from cloudwarden.shared.adapters.base import CloudAccountClient
from cloudwarden.shared.adapters.factory import ProviderClientFactory


def get_cloud_accounts(request: Request) -> CloudAccountClient:
    return request.app.state.cloud_accounts


def get_client_factory(request: Request) -> ProviderClientFactory:
    return request.app.state.client_factory


def get_rule_registry(request: Request) -> AuditRuleRegistry:
    return request.app.state.rule_registry


def get_resource_service(
    db: AsyncSession = Depends(get_db),
    accounts: CloudAccountClient = Depends(get_cloud_accounts),
    clients: ProviderClientFactory = Depends(get_client_factory),
) -> ResourceService:
    return ResourceService.from_session(db, accounts, clients)


def get_resource_group_service(db: AsyncSession = Depends(get_db)) -> ResourceGroupService:
    return ResourceGroupService.from_session(db)


def get_audit_service(
    db: AsyncSession = Depends(get_db),
    accounts: CloudAccountClient = Depends(get_cloud_accounts),
    registry: AuditRuleRegistry = Depends(get_rule_registry),
) -> AuditService:
    return AuditService.from_session(registry, db, accounts)

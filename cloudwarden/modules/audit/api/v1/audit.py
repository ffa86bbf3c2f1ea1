from typing import Dict, List

from fastapi import APIRouter, Depends

from cloudwarden.core.dependencies import get_audit_service
from cloudwarden.modules.audit.domain import AuditService
from cloudwarden.schemas.audit import AuditResult, RuleDescriptor

router = APIRouter(prefix="/audit", tags=["Audit"])


@router.get("/rules", response_model=List[RuleDescriptor])
async def list_rules(service: AuditService = Depends(get_audit_service)) -> List[RuleDescriptor]:
    return service.list_rules()


@router.post("/cloud-accounts/{cloud_account_id}/all", response_model=Dict[str, List[AuditResult]])
async def run_all(
    cloud_account_id: int,
    service: AuditService = Depends(get_audit_service),
) -> Dict[str, List[AuditResult]]:
    return await service.run_all(cloud_account_id)


@router.post(
    "/cloud-accounts/{cloud_account_id}/category/{category}",
    response_model=List[AuditResult],
)
async def run_by_category(
    cloud_account_id: int,
    category: str,
    service: AuditService = Depends(get_audit_service),
) -> List[AuditResult]:
    return await service.run_by_category(cloud_account_id, category)


@router.post("/cloud-accounts/{cloud_account_id}/rule/{rule_id}", response_model=AuditResult)
async def run_by_id(
    cloud_account_id: int,
    rule_id: str,
    service: AuditService = Depends(get_audit_service),
) -> AuditResult:
    return await service.run_by_id(cloud_account_id, rule_id)


@router.get("/cloud-accounts/{cloud_account_id}/results", response_model=List[AuditResult])
async def get_result_by_all(
    cloud_account_id: int,
    service: AuditService = Depends(get_audit_service),
) -> List[AuditResult]:
    return await service.get_result_by_all(cloud_account_id)


@router.get(
    "/cloud-accounts/{cloud_account_id}/results/category",
    response_model=Dict[str, List[AuditResult]],
)
async def get_result_by_category(
    cloud_account_id: int,
    service: AuditService = Depends(get_audit_service),
) -> Dict[str, List[AuditResult]]:
    return await service.get_result_by_category(cloud_account_id)


@router.get(
    "/cloud-accounts/{cloud_account_id}/results/category/{category}",
    response_model=Dict[str, List[AuditResult]],
)
async def get_result_for_category(
    cloud_account_id: int,
    category: str,
    service: AuditService = Depends(get_audit_service),
) -> Dict[str, List[AuditResult]]:
    return await service.get_result_by_category(cloud_account_id, category)


@router.get(
    "/cloud-accounts/{cloud_account_id}/results/rule/{rule_id}",
    response_model=AuditResult,
)
async def get_result_by_id(
    cloud_account_id: int,
    rule_id: str,
    service: AuditService = Depends(get_audit_service),
) -> AuditResult:
    return await service.get_result_by_id(cloud_account_id, rule_id)

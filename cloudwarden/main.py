from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cloudwarden.core.config import get_settings
from cloudwarden.core.exceptions import CloudWardenException
from cloudwarden.core.logging import setup_logging
from cloudwarden.modules.audit.api.v1.audit import router as audit_router
from cloudwarden.modules.audit.domain import AuditRuleRegistry
from cloudwarden.modules.audit.rules import default_rules
from cloudwarden.modules.resources.api.v1.resource_groups import router as resource_groups_router
from cloudwarden.modules.resources.api.v1.resources import router as resources_router
from cloudwarden.shared.adapters.base import CloudAccountClient
from cloudwarden.shared.adapters.cloud_accounts import HTTPCloudAccountClient
from cloudwarden.shared.adapters.factory import ProviderClientFactory

logger = structlog.get_logger()


def create_app(
    cloud_accounts: Optional[CloudAccountClient] = None,
    client_factory: Optional[ProviderClientFactory] = None,
    rule_registry: Optional[AuditRuleRegistry] = None,
) -> FastAPI:
    """
    Build the API application.

    Collaborators are constructed once here and shared by every request; the
    rule registry in particular is read-only after construction.
    """
    settings = get_settings()
    setup_logging()

    clients = client_factory or ProviderClientFactory()
    registry = rule_registry or AuditRuleRegistry(default_rules(clients))
    accounts = cloud_accounts or HTTPCloudAccountClient()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info(
            "app_starting",
            app_name=settings.APP_NAME,
            environment=settings.ENVIRONMENT,
            rules=len(registry),
        )
        yield
        logger.info("app_stopping")

    app = FastAPI(title=settings.APP_NAME, version=settings.VERSION, lifespan=lifespan)
    app.state.cloud_accounts = accounts
    app.state.client_factory = clients
    app.state.rule_registry = registry

    @app.exception_handler(CloudWardenException)
    async def cloudwarden_exception_handler(
        request: Request, exc: CloudWardenException
    ) -> JSONResponse:
        """Render domain errors with their status code and a stable error body."""
        log: Any = logger.warning if exc.status_code < 500 else logger.error
        log(
            "request_failed",
            path=request.url.path,
            method=request.method,
            code=exc.code,
            error=exc.message,
        )
        message = exc.message
        if settings.is_production and exc.status_code >= 500:
            message = "An unexpected internal error occurred"
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.__class__.__name__,
                "code": exc.code,
                "message": message,
                "details": exc.details,
            },
        )

    @app.get("/health", tags=["Health"])
    async def health() -> dict:
        return {"status": "ok", "version": settings.VERSION}

    app.include_router(resources_router)
    app.include_router(resource_groups_router)
    app.include_router(audit_router)
    return app


app = create_app()

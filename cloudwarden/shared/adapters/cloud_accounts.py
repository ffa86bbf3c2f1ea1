from typing import Any, List, Optional

import httpx
import structlog
from pydantic import ValidationError

from cloudwarden.core.config import get_settings
from cloudwarden.core.exceptions import AdapterError, ResourceNotFoundError
from cloudwarden.schemas.resources import CloudAccount
from cloudwarden.shared.adapters.base import CloudAccountClient

logger = structlog.get_logger()


class HTTPCloudAccountClient(CloudAccountClient):
    """
    Reads cloud accounts from the cloud-account service.

    Responses may be wrapped in a ``{"data": ...}`` envelope; both shapes are
    accepted.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.CLOUD_ACCOUNT_SERVICE_URL).rstrip("/")
        self.timeout_seconds = timeout_seconds or settings.CLOUD_ACCOUNT_TIMEOUT_SECONDS
        self._transport = transport

    async def _get(self, path: str, *, not_found: Optional[ResourceNotFoundError] = None) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(path)
        except httpx.HTTPError as e:
            logger.error("cloud_account_service_unreachable", path=path, error=str(e))
            raise AdapterError(f"Cloud account service request failed: {e}") from e

        if response.status_code == 404 and not_found is not None:
            raise not_found
        if response.is_error:
            logger.error(
                "cloud_account_service_error",
                path=path,
                status_code=response.status_code,
            )
            raise AdapterError(
                f"Cloud account service returned {response.status_code}",
                details={"path": path, "status_code": response.status_code},
            )

        payload = response.json()
        if isinstance(payload, dict) and "data" in payload:
            return payload["data"]
        return payload

    async def get_cloud_credentials(self, cloud_account_id: int) -> CloudAccount:
        data = await self._get(
            f"/cloud-accounts/{cloud_account_id}/credentials",
            not_found=ResourceNotFoundError("CloudAccount", cloud_account_id),
        )
        try:
            return CloudAccount.model_validate({"id": cloud_account_id, **data})
        except (ValidationError, TypeError) as e:
            raise AdapterError(
                f"Malformed cloud account payload for {cloud_account_id}",
                details={"cloud_account_id": cloud_account_id},
            ) from e

    async def get_all_cloud_accounts(self) -> List[CloudAccount]:
        data = await self._get("/cloud-accounts")
        try:
            return [CloudAccount.model_validate(item) for item in data or []]
        except (ValidationError, TypeError) as e:
            raise AdapterError("Malformed cloud account list payload") from e

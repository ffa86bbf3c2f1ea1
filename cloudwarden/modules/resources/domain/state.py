import structlog

from cloudwarden.core.exceptions import InvalidInputError, PersistenceError
from cloudwarden.modules.resources.domain.store import ResourceStore
from cloudwarden.schemas.resources import ResourceDetails, ResourceState, ResourceType, status_for
from cloudwarden.shared.adapters.base import CloudAccountClient
from cloudwarden.shared.adapters.factory import ProviderClientFactory

logger = structlog.get_logger()


class StateChanger:
    """
    Applies a desired START/SUSPEND state to one tracked resource: provider
    first, store second.
    """

    def __init__(
        self,
        store: ResourceStore,
        accounts: CloudAccountClient,
        clients: ProviderClientFactory,
    ):
        self.store = store
        self.accounts = accounts
        self.clients = clients

    async def change_state(self, details: ResourceDetails) -> None:
        resource = await self.store.get_resource_by_id(details.id)
        target_status = status_for(details.state)

        if resource.status == target_status:
            logger.info(
                "resource_state_unchanged",
                resource_id=details.id,
                status=target_status,
            )
            return

        account = await self.accounts.get_cloud_credentials(details.cloud_account_id)

        if details.type != ResourceType.SQL:
            raise InvalidInputError(["type"])

        sql_client = self.clients.sql_client(account)
        if sql_client is None:
            raise InvalidInputError(["provider"])

        if details.state == ResourceState.START:
            await sql_client.start_instance(details.name)
        else:
            await sql_client.stop_instance(details.name)

        logger.info(
            "resource_state_changed",
            resource_id=details.id,
            cloud_account_id=details.cloud_account_id,
            status=target_status,
        )

        try:
            await self.store.update_status(target_status, details.id)
        except PersistenceError as e:
            # The provider already applied the change; the next sync repairs the row.
            logger.error(
                "resource_state_store_stale",
                resource_id=details.id,
                status=target_status,
                error=e.message,
            )

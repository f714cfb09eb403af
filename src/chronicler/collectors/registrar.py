"""Registration of tracked microservices."""

import logging

from chronicler.core.errors import ChroniclerError
from chronicler.core.models import Service
from chronicler.core.ports import StorageBackend

logger = logging.getLogger(__name__)


class ServiceRegistrar:
    """Records one Service per microservice name.

    Registration is idempotent: registering a name twice stores it once,
    and storage failures are logged rather than raised.
    """

    def __init__(self, backend: StorageBackend) -> None:
        self.backend = backend

    async def register(self, name: str, interval_ms: int) -> bool:
        """Record the microservice if it is not stored yet.

        Returns:
            True if the service was newly recorded.
        """
        service = Service(microservice=name, interval=int(interval_ms))
        try:
            created = await self.backend.upsert_service(service)
        except ChroniclerError as exc:
            logger.warning("Error saving service %r: %s", name, exc)
            return False
        if created:
            logger.info('Microservice "%s" recorded in services', name)
        else:
            logger.debug('Microservice "%s" already recorded', name)
        return created

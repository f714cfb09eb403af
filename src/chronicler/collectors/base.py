"""Shared plumbing for interval-driven pollers."""

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from chronicler.core.errors import ChroniclerError, WriteError
from chronicler.core.models import TickResult
from chronicler.core.ports import StorageBackend
from chronicler.core.schema import CollectionSpec
from chronicler.runtime.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class Poller:
    """Base class for pollers writing to a StorageBackend.

    Keeps the poller's timer handle and issues timestamps that never go
    backwards within this poller's record stream, even if the wall clock
    is adjusted.
    """

    label = "poller"

    def __init__(
        self,
        backend: StorageBackend,
        scheduler: Scheduler,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.backend = backend
        self.scheduler = scheduler
        self.handle: TimerHandle | None = None
        self._clock = clock
        self._last_timestamp = 0.0

    def _timestamp(self, candidate: float | None = None) -> float:
        """Return a timestamp no earlier than the last one issued."""
        now = self._clock() if candidate is None else candidate
        self._last_timestamp = max(now, self._last_timestamp)
        return self._last_timestamp

    async def _provision(self, collection: CollectionSpec) -> None:
        try:
            await self.backend.ensure_schema(collection)
        except ChroniclerError as exc:
            logger.warning(
                "Error creating %s collection %s: %s",
                self.label,
                collection.document_name,
                exc,
            )

    async def _write(
        self, collection: CollectionSpec, records: Sequence[Any]
    ) -> TickResult:
        try:
            await self.backend.insert_batch(collection, records)
        except WriteError as exc:
            logger.warning("Error inserting %s data: %s", self.label, exc)
            return TickResult(error=exc)
        logger.debug(
            "%s data recorded: %d record(s) in %s",
            self.label,
            len(records),
            collection.document_name,
        )
        return TickResult(written=len(records))

    def stop(self) -> None:
        """Cancel this poller's timer."""
        if self.handle is not None:
            self.scheduler.cancel(self.handle)

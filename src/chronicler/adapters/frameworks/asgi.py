"""ASGI request tracing middleware.

Works with any ASGI server (uvicorn, hypercorn, daphne) and any ASGI
framework (FastAPI, Starlette, Django's ASGI handler) without depending on
one of them.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Callable, Coroutine, Sequence
from http import HTTPStatus
from typing import Any

from chronicler.config import NotificationConfig
from chronicler.core.errors import ChroniclerError
from chronicler.core.models import CommunicationRecord
from chronicler.core.ports import StorageBackend
from chronicler.core.schema import COMMUNICATIONS
from chronicler.runtime.alerts import AlertDispatcher, should_alert

logger = logging.getLogger(__name__)

# ASGI type aliases
Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]

CORRELATION_HEADER = "x-correlation-id"


def _find_header(headers: Sequence[tuple[bytes, bytes]], name: str) -> str | None:
    """Return the first value of a header (case-insensitive), if present."""
    wanted = name.lower().encode()
    for key, value in headers:
        if key.lower() == wanted:
            return value.decode("utf-8", errors="replace")
    return None


def _endpoint(scope: Scope) -> str:
    """Return the request path with its query string, as originally requested."""
    path = scope["path"]
    query = scope.get("query_string", b"")
    if query:
        return f"{path}?{query.decode('latin-1')}"
    return path


def _status_message(status_code: int) -> str:
    """Return the standard reason phrase for a status code."""
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return ""


class RequestTracerMiddleware:
    """ASGI middleware recording one CommunicationRecord per completed request.

    Each request moves through armed (correlation id captured), in flight
    (wrapped app running) and completed (final response body sent). The
    record is built only on completion and persisted in a background task,
    so the response is never delayed by storage. A request whose response
    never completes leaves no record.

    The recorded correlation id is the one the app sets on the response, else
    the one on the request, else a generated uuid4 that is added to the
    response headers.

    When the response status is 400 or above and notification configs were
    supplied, the dispatcher is awaited before the record is written.
    """

    def __init__(
        self,
        app: ASGIApp,
        backend: StorageBackend,
        microservice: str,
        dispatcher: AlertDispatcher | None = None,
        notifications: Sequence[NotificationConfig] = (),
        correlation_header: str = CORRELATION_HEADER,
    ) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application to wrap.
            backend: Storage backend receiving communication records.
            microservice: Name recorded with every communication.
            dispatcher: Alert dispatcher for failed responses (optional).
            notifications: Channel configs handed to the dispatcher.
            correlation_header: Header carrying the correlation id
                (default: "x-correlation-id").
        """
        self.app = app
        self.backend = backend
        self.microservice = microservice
        self.dispatcher = dispatcher
        self.notifications = tuple(notifications)
        self.correlation_header = correlation_header
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        """Number of records still being persisted."""
        return len(self._pending)

    async def drain(self) -> None:
        """Wait until every scheduled record write has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI callable interface that traces HTTP requests through the app."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = _find_header(scope.get("headers", []), self.correlation_header)
        captured: dict[str, Any] = {
            "status": None,
            "completed": False,
            "correlation_id": request_id,
        }

        async def traced_send(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                captured["status"] = message["status"]
                response_id = _find_header(
                    message.get("headers", []), self.correlation_header
                )
                if response_id is not None:
                    captured["correlation_id"] = response_id
                elif request_id is None:
                    captured["correlation_id"] = str(uuid.uuid4())
                    message = self._with_correlation_header(
                        message, captured["correlation_id"]
                    )
            await send(message)
            if (
                message["type"] == "http.response.body"
                and not message.get("more_body", False)
                and not captured["completed"]
            ):
                captured["completed"] = True
                self._complete(scope, captured["correlation_id"], captured["status"])

        await self.app(scope, receive, traced_send)

    def _with_correlation_header(
        self, message: dict[str, Any], correlation_id: str
    ) -> dict[str, Any]:
        headers = list(message.get("headers", []))
        headers.append(
            (self.correlation_header.lower().encode(), correlation_id.encode())
        )
        return {**message, "headers": headers}

    def _complete(self, scope: Scope, correlation_id: str, status: int | None) -> None:
        """Build the record and hand it to a background task."""
        try:
            status_code = status or 0
            record = CommunicationRecord(
                microservice=self.microservice,
                endpoint=_endpoint(scope),
                method=scope["method"],
                correlation_id=correlation_id,
                status_code=status_code,
                status_message=_status_message(status_code),
                timestamp=time.time(),
            )
            task = asyncio.get_running_loop().create_task(self._persist(record))
        except Exception:
            logger.exception("Error tracing request to %s", scope.get("path"))
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _persist(self, record: CommunicationRecord) -> None:
        if self.dispatcher is not None and should_alert(
            record.status_code, self.notifications
        ):
            try:
                await self.dispatcher.notify(
                    record.status_code, record.status_message, self.notifications
                )
            except Exception:
                logger.exception("Error dispatching alert for %s", record.endpoint)
        try:
            await self.backend.insert(COMMUNICATIONS, record)
        except ChroniclerError as exc:
            logger.warning("Error saving communications: %s", exc)
            return
        logger.debug("Request cycle saved: %s %s", record.method, record.endpoint)

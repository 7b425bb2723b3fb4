"""Per-request dispatch: route, decode, run the handler, serialize the envelope."""

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import Response

from src.api.handlers import HANDLERS, Handler
from src.api.router import HandlerId, RouteMatch, Router
from src.database import QueryExecutor
from src.exceptions import ApiError
from src.schemas.envelope import Envelope, failure

logger = logging.getLogger(__name__)

# Only these methods carry a body worth decoding
WRITE_METHODS = frozenset({"POST", "PUT"})

CLIENT_CLOSED_REQUEST = 499


def decode_body(raw: bytes) -> dict[str, Any]:
    """Decode a JSON object body; anything else becomes an empty mapping."""
    if not raw:
        return {}
    try:
        decoded = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError):
        logger.debug("Ignoring request body that is not valid JSON")
        return {}
    return decoded if isinstance(decoded, dict) else {}


class RequestDispatcher:
    """Runs one request from routing through to the serialized response.

    Handlers are blocking, so each one runs in the worker thread pool inside
    its own task. The task is abandoned if the client goes away first.
    """

    def __init__(
        self,
        router: Router,
        executor: QueryExecutor,
        handlers: Mapping[HandlerId, Handler] | None = None,
        disconnect_poll_interval: float = 0.1,
    ):
        self.router = router
        self.executor = executor
        self.handlers = dict(HANDLERS if handlers is None else handlers)
        self.disconnect_poll_interval = disconnect_poll_interval

        missing = set(HandlerId) - set(self.handlers)
        if missing:
            raise ValueError(f"No handler registered for: {', '.join(sorted(missing))}")

    def run_handler(self, match: RouteMatch, body: Mapping[str, Any]) -> Envelope:
        """Invoke the matched handler, turning any exception into a failure envelope."""
        handler = self.handlers[match.handler_id]
        try:
            return handler(self.executor, *match.params, body)
        except ApiError as e:
            if e.status_code < 500:
                logger.debug(f"{match.handler_id} rejected request: {e.message}")
            else:
                logger.error(f"{match.handler_id} failed: {e.message}")
            return failure(e.message, e.status_code)
        except Exception as e:
            logger.exception(f"Unhandled error in {match.handler_id}")
            return failure(str(e), 500)

    async def dispatch(self, request: Request) -> Response:
        method = request.method.upper()
        match = self.router.resolve(request.url.path, method)

        body: dict[str, Any] = {}
        if method in WRITE_METHODS:
            body = decode_body(await request.body())

        envelope = await self._execute(request, match, body)
        return Response(
            content=envelope.to_json(),
            status_code=envelope.status,
            media_type="application/json",
        )

    async def _execute(
        self, request: Request, match: RouteMatch, body: Mapping[str, Any]
    ) -> Envelope:
        work = asyncio.ensure_future(run_in_threadpool(self.run_handler, match, body))
        watcher = asyncio.ensure_future(self._wait_for_disconnect(request))
        try:
            done, _ = await asyncio.wait({work, watcher}, return_when=asyncio.FIRST_COMPLETED)
            if work not in done and watcher.exception() is not None:
                # Disconnect state is unknown, so finish the work instead of abandoning it
                logger.warning(f"Could not check for client disconnect: {watcher.exception()}")
                return await work
        finally:
            watcher.cancel()
            if not work.done():
                work.cancel()

        if work in done:
            return work.result()

        logger.info(
            f"Client disconnected during {request.method} {request.url.path}, "
            f"abandoned {match.handler_id}"
        )
        return failure("Client disconnected", CLIENT_CLOSED_REQUEST)

    async def _wait_for_disconnect(self, request: Request) -> None:
        while not await request.is_disconnected():
            await asyncio.sleep(self.disconnect_poll_interval)

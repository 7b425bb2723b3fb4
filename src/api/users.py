"""Users API endpoint.

Every path and method is handed to the request dispatcher, which performs
its own routing against the users route table.
"""

from fastapi import APIRouter, Request
from starlette.types import Receive, Scope, Send

from src.api.dependencies import get_dispatcher


class DispatchEndpoint:
    """ASGI endpoint that routes the request and returns its JSON envelope.

    Registered as an ASGI app rather than a function so the route is not
    limited to a fixed list of methods.
    """

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        response = await get_dispatcher(request).dispatch(request)
        await response(scope, receive, send)


router = APIRouter(tags=["users"])
router.add_route("/{path:path}", DispatchEndpoint(), methods=None, include_in_schema=False)

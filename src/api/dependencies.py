"""FastAPI dependencies resolving per-application resources."""

from fastapi import Request

from src.api.dispatcher import RequestDispatcher


def get_dispatcher(request: Request) -> RequestDispatcher:
    """Dispatcher built for the running application at startup."""
    return request.app.state.dispatcher

"""Tests for the request dispatcher."""

import asyncio
import time
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.api.dispatcher import CLIENT_CLOSED_REQUEST, RequestDispatcher, decode_body
from src.api.handlers import HANDLERS
from src.api.router import HandlerId, RouteMatch, create_router
from src.exceptions import PayloadValidationError, StorageError
from src.schemas.envelope import success


def make_dispatcher(overrides=None):
    handlers = {**HANDLERS, **(overrides or {})}
    return RequestDispatcher(
        create_router(), MagicMock(), handlers=handlers, disconnect_poll_interval=0.01
    )


class TestDecodeBody:
    """Tests for request body decoding."""

    def test_json_object(self):
        assert decode_body(b'{"name": "Bob"}') == {"name": "Bob"}

    @pytest.mark.parametrize(
        "raw",
        [
            b"",
            b"not json",
            b"{",
            b"\xff\xfe\x00",
            b"[1, 2]",
            b'"Bob"',
            b"null",
            b"[" * 100000 + b"]" * 100000,
        ],
    )
    def test_anything_else_is_empty(self, raw):
        assert decode_body(raw) == {}


class TestRunHandler:
    """Tests for handler invocation and error conversion."""

    def test_params_are_spread_before_body(self):
        handler = MagicMock(return_value=success([]))
        dispatcher = make_dispatcher({HandlerId.UPDATE_USER: handler})
        body = {"name": "Bob"}

        dispatcher.run_handler(RouteMatch(HandlerId.UPDATE_USER, ("5",)), body)

        handler.assert_called_once_with(dispatcher.executor, "5", body)

    def test_validation_error_is_400(self):
        handler = MagicMock(side_effect=PayloadValidationError("Name is required"))
        dispatcher = make_dispatcher({HandlerId.CREATE_USER: handler})

        envelope = dispatcher.run_handler(RouteMatch(HandlerId.CREATE_USER), {})

        assert (envelope.status, envelope.error) == (400, "Name is required")

    def test_storage_error_is_500_with_raw_message(self):
        handler = MagicMock(side_effect=StorageError('relation "users" does not exist'))
        dispatcher = make_dispatcher({HandlerId.GET_USERS: handler})

        envelope = dispatcher.run_handler(RouteMatch(HandlerId.GET_USERS), {})

        assert (envelope.status, envelope.error) == (500, 'relation "users" does not exist')

    def test_unexpected_error_is_500(self):
        handler = MagicMock(side_effect=RuntimeError("boom"))
        dispatcher = make_dispatcher({HandlerId.GET_USERS: handler})

        envelope = dispatcher.run_handler(RouteMatch(HandlerId.GET_USERS), {})

        assert (envelope.status, envelope.error) == (500, "boom")

    def test_missing_handler_is_rejected(self):
        handlers = {k: v for k, v in HANDLERS.items() if k != HandlerId.DELETE_USER}

        with pytest.raises(ValueError, match="deleteUser"):
            RequestDispatcher(create_router(), MagicMock(), handlers=handlers)


def make_request(method: str = "GET", path: str = "/", disconnected: bool = False):
    request = MagicMock()
    request.method = method
    request.url.path = path
    request.body = AsyncMock(return_value=b"")
    request.is_disconnected = AsyncMock(return_value=disconnected)
    return request


class TestDispatch:
    """Tests for the async dispatch path."""

    @pytest.mark.asyncio
    async def test_get_does_not_read_body(self):
        handler = MagicMock(return_value=success([{"id": 1}]))
        dispatcher = make_dispatcher({HandlerId.GET_USERS: handler})
        request = make_request("GET", "/")

        response = await dispatcher.dispatch(request)

        request.body.assert_not_called()
        handler.assert_called_once_with(dispatcher.executor, {})
        assert response.status_code == 200
        assert response.media_type == "application/json"

    @pytest.mark.asyncio
    async def test_invalid_body_reaches_handler_as_empty_mapping(self):
        handler = MagicMock(return_value=success([], 201))
        dispatcher = make_dispatcher({HandlerId.CREATE_USER: handler})
        request = make_request("POST", "/")
        request.body = AsyncMock(return_value=b"{broken")

        response = await dispatcher.dispatch(request)

        handler.assert_called_once_with(dispatcher.executor, {})
        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_status_code_mirrors_envelope(self):
        handler = MagicMock(side_effect=PayloadValidationError("Name is required"))
        dispatcher = make_dispatcher({HandlerId.UPDATE_USER: handler})
        request = make_request("PUT", "/3")
        request.body = AsyncMock(return_value=b"{}")

        response = await dispatcher.dispatch(request)

        assert response.status_code == 400
        assert b'"error":"Name is required"' in response.body

    @pytest.mark.asyncio
    async def test_disconnect_abandons_handler(self):
        def slow_handler(db, body):
            time.sleep(0.2)
            return success([{"id": 1}])

        dispatcher = make_dispatcher({HandlerId.GET_USERS: slow_handler})
        request = make_request("GET", "/", disconnected=True)

        response = await dispatcher.dispatch(request)

        assert response.status_code == CLIENT_CLOSED_REQUEST
        # Let the abandoned thread finish before the loop closes
        await asyncio.sleep(0.3)

    @pytest.mark.asyncio
    async def test_failed_disconnect_check_still_returns_result(self):
        def slow_handler(db, body):
            time.sleep(0.05)
            return success([{"id": 1}])

        dispatcher = make_dispatcher({HandlerId.GET_USERS: slow_handler})
        request = make_request("GET", "/")
        request.is_disconnected = AsyncMock(side_effect=RuntimeError("receive failed"))

        response = await dispatcher.dispatch(request)

        assert response.status_code == 200
        assert b'"data":[{"id":1}]' in response.body

"""CRUD handlers for the users endpoints.

Each handler receives the query executor, the path params captured by the
router (as strings, in order) and finally the decoded request body.
"""

from collections.abc import Callable, Mapping
from typing import Any

from src.api.router import HandlerId
from src.database import QueryExecutor
from src.schemas.envelope import Envelope, success
from src.schemas.user import UserPayload

Handler = Callable[..., Envelope]

HANDLERS: dict[HandlerId, Handler] = {}


def handles(handler_id: HandlerId) -> Callable[[Handler], Handler]:
    """Register a function as the handler for ``handler_id``."""

    def decorator(func: Handler) -> Handler:
        if handler_id in HANDLERS:
            raise ValueError(f"Handler already registered for {handler_id}")
        HANDLERS[handler_id] = func
        return func

    return decorator


def get_handler(handler_id: HandlerId) -> Handler:
    return HANDLERS[handler_id]


@handles(HandlerId.GET_USERS)
def get_users(db: QueryExecutor, body: Mapping[str, Any] | None = None) -> Envelope:
    """List every user."""
    rows = db.execute('SELECT id, name, email FROM "users"')
    return success(rows)


@handles(HandlerId.GET_USER)
def get_user(db: QueryExecutor, user_id: str, body: Mapping[str, Any] | None = None) -> Envelope:
    """Get a single user's name and email."""
    row = db.fetch_one('SELECT name, email FROM "users" WHERE id = ?', [int(user_id)])
    return success([row] if row else [])


@handles(HandlerId.CREATE_USER)
def create_user(db: QueryExecutor, body: Mapping[str, Any]) -> Envelope:
    """Create a user and return the stored row."""
    payload = UserPayload.from_body(body)
    row = db.fetch_one(
        'INSERT INTO "users" (name, email) VALUES (?, ?) RETURNING id, name, email',
        [payload.name, payload.email],
    )
    return success([row], 201)


@handles(HandlerId.UPDATE_USER)
def update_user(db: QueryExecutor, user_id: str, body: Mapping[str, Any]) -> Envelope:
    """Replace a user's name and email."""
    payload = UserPayload.from_body(body)
    row = db.fetch_one(
        'UPDATE "users" SET name = ?, email = ?, updated_at = CURRENT_TIMESTAMP '
        "WHERE id = ? RETURNING id, name, email",
        [payload.name, payload.email, int(user_id)],
    )
    return success([row] if row else [])


@handles(HandlerId.DELETE_USER)
def delete_user(db: QueryExecutor, user_id: str, body: Mapping[str, Any] | None = None) -> Envelope:
    """Delete a user; only the first delete of an id reports ``deleted``."""
    row = db.fetch_one(
        'DELETE FROM "users" WHERE id = ? RETURNING id, name, email', [int(user_id)]
    )
    return success({"deleted": True} if row else [])


@handles(HandlerId.NOT_FOUND)
def not_found(db: QueryExecutor, *args: Any) -> Envelope:
    """Fallback for unmatched routes: an empty success, not a 404."""
    return success([])

"""
Messages exchanged on the persistent cart connection.

Every frame is a JSON object with an ``event`` key naming the variant. Client
frames are parsed into one typed message and dispatched by a single handler.
"""

from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional, Union
from pydantic import Field, TypeAdapter, ValidationError

from storefront.core.exceptions import InvalidPayloadError
from storefront.schemas.base import BaseSchema


# --- client -> server ---

class AuthenticateMessage(BaseSchema):
    event: Literal["authenticate"]
    identity: Optional[Any] = None
    token: Optional[str] = None


class CartUpdateMessage(BaseSchema):
    event: Literal["cart_update"]
    cart: Optional[Any] = None


class PongMessage(BaseSchema):
    event: Literal["pong"]


ClientMessage = Annotated[
    Union[AuthenticateMessage, CartUpdateMessage, PongMessage],
    Field(discriminator="event"),
]

_client_message_adapter = TypeAdapter(ClientMessage)


def parse_client_message(raw: Any) -> Union[AuthenticateMessage, CartUpdateMessage, PongMessage]:
    """Parse a decoded client frame, raising InvalidPayloadError for anything unknown."""
    if not isinstance(raw, dict):
        raise InvalidPayloadError("Message must be a JSON object")
    try:
        return _client_message_adapter.validate_python(raw)
    except ValidationError as e:
        event = raw.get("event")
        if event is None:
            raise InvalidPayloadError("Message has no event") from e
        raise InvalidPayloadError(f"Unsupported or malformed event: {event}") from e


# --- server -> client ---

class AuthenticatedEvent(BaseSchema):
    event: Literal["authenticated"] = "authenticated"
    identity: str
    connection_id: str
    timestamp: datetime


class CartUpdatedEvent(BaseSchema):
    event: Literal["cart_updated"] = "cart_updated"
    cart: List[dict]
    identity: str
    timestamp: datetime
    source_connection_id: str


class PingEvent(BaseSchema):
    event: Literal["ping"] = "ping"
    timestamp: datetime


class AuthErrorEvent(BaseSchema):
    event: Literal["auth_error"] = "auth_error"
    message: str


class ErrorEvent(BaseSchema):
    event: Literal["error"] = "error"
    message: str

# storefront/services/websockets/cart_channel.py
import logging
from dataclasses import dataclass
from typing import Any, List

from pydantic import ValidationError as PydanticValidationError

from storefront.core.exceptions import InvalidPayloadError, UnauthenticatedError
from storefront.core.utils import utc_now
from storefront.schemas.cart import BroadcastCartLine
from storefront.schemas.realtime import CartUpdatedEvent
from storefront.services.websockets.registry import Connection, ConnectionRegistry

logger = logging.getLogger(__name__)


@dataclass
class BroadcastResult:
    event: CartUpdatedEvent
    delivered: int
    failed: int


def validate_broadcast_cart(payload: Any) -> List[dict]:
    """Check a relayed cart: a list of lines, each with productId and a positive quantity."""
    if not isinstance(payload, list):
        raise InvalidPayloadError("Invalid cart data: cart must be an array")
    lines = []
    for index, raw in enumerate(payload):
        if not isinstance(raw, dict):
            raise InvalidPayloadError(f"Invalid cart data: item {index} is not an object")
        try:
            line = BroadcastCartLine.model_validate(raw)
        except PydanticValidationError as e:
            raise InvalidPayloadError(f"Invalid cart data: item {index} needs productId and a positive quantity") from e
        lines.append(line.model_dump(mode="json", by_alias=True, exclude_unset=True))
    return lines


class CartBroadcastChannel:
    """
    Relays cart changes between the open sessions of one identity.

    Best effort and fire-and-forget: nothing is persisted or retried, and with
    no live sibling the event is dropped. The durable cart is never touched.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def publish(self, connection: Connection, payload: Any) -> BroadcastResult:
        if not connection.is_authenticated:
            raise UnauthenticatedError("Not authenticated")

        lines = validate_broadcast_cart(payload)
        event = CartUpdatedEvent(
            cart=lines,
            identity=connection.identity,
            timestamp=utc_now(),
            source_connection_id=connection.id,
        )
        message = event.to_wire()

        delivered, failed = 0, 0
        for peer in self.registry.peers(connection.identity, exclude=connection.id):
            try:
                await peer.send(message)
                delivered += 1
            except Exception as e:
                logger.error(f"Error sending cart update to connection {peer.id}: {e}")
                failed += 1
                await self.registry.drop(peer, reason="send failed")

        logger.debug(
            f"Cart update from {connection.id} ({connection.identity}) "
            f"delivered to {delivered} connection(s), {failed} failed"
        )
        return BroadcastResult(event=event, delivered=delivered, failed=failed)

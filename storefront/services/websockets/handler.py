# storefront/services/websockets/handler.py
"""
Single dispatch point for client frames on the cart connection.

Each connection moves UNAUTHENTICATED -> AUTHENTICATED -> CLOSED. Errors are
reported to the originating connection only, as ``auth_error`` or ``error``.
"""

import logging
from typing import Any, Optional

from storefront.core.exceptions import (
    InvalidHandshakeError,
    InvalidPayloadError,
    UnauthenticatedError,
)
from storefront.core.security import TokenVerifier
from storefront.schemas.realtime import (
    AuthenticateMessage,
    AuthErrorEvent,
    CartUpdateMessage,
    ErrorEvent,
    PongMessage,
    parse_client_message,
)
from storefront.services.websockets.cart_channel import CartBroadcastChannel
from storefront.services.websockets.registry import Connection, ConnectionRegistry

logger = logging.getLogger(__name__)


class RealtimeHandler:
    def __init__(
        self,
        registry: ConnectionRegistry,
        channel: CartBroadcastChannel,
        verifier: Optional[TokenVerifier] = None,
        require_token: bool = False,
    ):
        self.registry = registry
        self.channel = channel
        self.verifier = verifier
        self.require_token = require_token

    async def handle(self, connection: Connection, raw: Any) -> None:
        try:
            message = parse_client_message(raw)
        except InvalidPayloadError as e:
            await self._reply(connection, ErrorEvent(message=str(e)).to_wire())
            return

        if isinstance(message, AuthenticateMessage):
            await self._on_authenticate(connection, message)
        elif isinstance(message, CartUpdateMessage):
            await self._on_cart_update(connection, message)
        elif isinstance(message, PongMessage):
            self.registry.record_pong(connection)

    async def _on_authenticate(self, connection: Connection, message: AuthenticateMessage) -> None:
        try:
            identity = self._resolve_identity(message)
            await self.registry.authenticate(connection, identity)
        except (InvalidHandshakeError, UnauthenticatedError) as e:
            logger.info(f"Handshake rejected on connection {connection.id}: {e}")
            await self._reply(connection, AuthErrorEvent(message=str(e)).to_wire())

    def _resolve_identity(self, message: AuthenticateMessage) -> Any:
        if message.token is None:
            if self.require_token:
                raise InvalidHandshakeError("Authentication token is required")
            return message.identity

        if self.verifier is None:
            raise InvalidHandshakeError("Token authentication is not available")
        token_identity = self.verifier.verify(message.token)
        if message.identity is not None and str(message.identity).strip() != token_identity:
            raise InvalidHandshakeError("Token does not match the claimed identity")
        return token_identity

    async def _on_cart_update(self, connection: Connection, message: CartUpdateMessage) -> None:
        try:
            await self.channel.publish(connection, message.cart)
        except UnauthenticatedError as e:
            await self._reply(connection, AuthErrorEvent(message=str(e)).to_wire())
        except InvalidPayloadError as e:
            await self._reply(connection, ErrorEvent(message=str(e)).to_wire())

    async def _reply(self, connection: Connection, message: dict) -> None:
        try:
            await connection.send(message)
        except Exception as e:
            logger.error(f"Error replying to connection {connection.id}: {e}")
            await self.registry.drop(connection, reason="reply failed")

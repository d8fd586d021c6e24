# storefront/routes/websockets.py
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from storefront.core.config import get_settings
from storefront.core.enums import ConnectionState
from storefront.core.security import get_token_verifier
from storefront.schemas.realtime import ErrorEvent
from storefront.services.websockets.cart_channel import CartBroadcastChannel
from storefront.services.websockets.handler import RealtimeHandler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    registry = websocket.app.state.connection_registry
    handler = RealtimeHandler(
        registry,
        CartBroadcastChannel(registry),
        verifier=get_token_verifier(),
        require_token=get_settings().REALTIME_REQUIRE_TOKEN,
    )

    await websocket.accept()
    connection = registry.accept(websocket)
    reason = "client disconnected"
    try:
        while True:
            data = await websocket.receive_text()
            if connection.state == ConnectionState.CLOSED:
                # Dropped by the server after a failed send
                reason = "dropped"
                break
            try:
                frame = json.loads(data)
            except json.JSONDecodeError:
                await connection.send(ErrorEvent(message="Frame is not valid JSON").to_wire())
                continue
            await handler.handle(connection, frame)
    except WebSocketDisconnect:
        logger.info(f"WebSocket client {connection.id} disconnected")
    except Exception as e:
        reason = "receive failed"
        logger.error(f"WebSocket connection {connection.id} failed: {e}")
    finally:
        registry.close(connection, reason=reason)

import asyncio
import logging
from fastapi import APIRouter, Depends, WebSocket
from encodenote.api.deps import get_hub
from encodenote.core.config import settings
from encodenote.services import sync
from encodenote.services.presence import PresenceHub, QueuedConnection

logger = logging.getLogger(__name__)

router = APIRouter()

@router.websocket("/")
@router.websocket("/ws")
async def vault_socket(websocket: WebSocket, hub: PresenceHub = Depends(get_hub)):
    await websocket.accept()
    connection = QueuedConnection(maxsize=settings.OUTBOX_SIZE)
    writer = asyncio.create_task(connection.drain(websocket))
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            sync.handle_message(hub, connection, message.get("text") or message.get("bytes"))
    finally:
        vault_hash = sync.disconnect(hub, connection)
        writer.cancel()
        await asyncio.gather(writer, return_exceptions=True)
        logger.debug("Socket closed (vault=%s)", vault_hash)

"""WebSocket endpoint through which a storage system's controller connects.

The first text frame names the storage system. Every later frame is the
reply to the command most recently sent on the connection.
"""

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from storage.exceptions import DuplicateControllerError, UnknownSystemError
from storage.registry import SystemRegistry
from storage.utils.logging import bind_system, clear_context

logger = structlog.get_logger(__name__)

controller_router = APIRouter(tags=["controller"])


@controller_router.websocket("/")
async def controller_endpoint(websocket: WebSocket) -> None:
    registry: SystemRegistry = websocket.app.state.registry
    await websocket.accept()

    try:
        name = await websocket.receive_text()
    except WebSocketDisconnect:
        return

    try:
        channel = registry.bind(name, websocket)
    except (UnknownSystemError, DuplicateControllerError) as exc:
        logger.info("controller_rejected", system=name, reason=exc.close_reason)
        await websocket.close(code=exc.close_code, reason=exc.close_reason)
        return

    bind_system(name)
    try:
        while not channel.closed:
            channel.deliver(await websocket.receive_text())
    except WebSocketDisconnect as exc:
        logger.info("controller_disconnected", system=name, code=exc.code)
    finally:
        registry.unbind(channel)
        clear_context()

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from datetime import datetime, timezone
from typing import Optional
from ws_service.manager import manager
from settings import logger
import json

router = APIRouter(tags=["websockets"])


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    board_id: Optional[int] = None
):
    """
    WebSocket endpoint streaming committed board changes.

    Query parameter:
    - board_id: board whose changes the client wants to receive
    """
    await manager.connect(websocket, board_id)

    try:
        welcome_message = {
            "type": "connection_established",
            "message": "WebSocket connection established successfully",
            "board_id": board_id,
            "active_connections": manager.get_connection_count()
        }
        await manager.send_to_connection(websocket, json.dumps(welcome_message))

        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning("Invalid JSON received from WebSocket client", extra={
                    "data": data[:100] + "..." if len(data) > 100 else data
                })
                continue

            message_type = message.get("type")

            if message_type == "ping":
                pong_response = {
                    "type": "pong",
                    "timestamp": message.get("timestamp"),
                    "server_time": datetime.now(timezone.utc).isoformat()
                }
                await manager.send_to_connection(websocket, json.dumps(pong_response))

            elif message_type == "subscribe":
                boards = [int(board) for board in message.get("boards", [])]
                for board in boards:
                    manager.subscribe(websocket, board)
                ack_response = {
                    "type": "subscription_ack",
                    "subscribed_to": boards
                }
                await manager.send_to_connection(websocket, json.dumps(ack_response))

            else:
                logger.debug("Unknown WebSocket message type", extra={
                    "message_type": message_type
                })

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error("WebSocket connection error", extra={
            "error": str(e)
        })
    finally:
        manager.disconnect(websocket)


@router.get("/ws/stats")
async def get_websocket_stats():
    """Get WebSocket connection statistics."""
    return {
        "active_connections": manager.get_connection_count(),
        "watched_boards": len(manager.subscriptions),
        "status": "running"
    }

from fastapi import WebSocket
from typing import Any, Dict, List, Optional
import json
from settings import logger


class ConnectionManager:
    """WebSocket connection manager forwarding board changes to watching clients."""

    def __init__(self):
        self.active_connections: List[WebSocket] = []
        self.subscriptions: Dict[int, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, board_id: Optional[int] = None):
        """Accept a new WebSocket connection, optionally watching one board."""
        await websocket.accept()
        self.active_connections.append(websocket)
        if board_id is not None:
            self.subscribe(websocket, board_id)
        logger.info("WebSocket connection established", extra={
            "total_connections": len(self.active_connections),
            "board_id": board_id
        })

    def subscribe(self, websocket: WebSocket, board_id: int):
        watchers = self.subscriptions.setdefault(board_id, [])
        if websocket not in watchers:
            watchers.append(websocket)

    def disconnect(self, websocket: WebSocket):
        """Remove a WebSocket connection and its board subscriptions."""
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
            logger.info("WebSocket connection closed", extra={
                "total_connections": len(self.active_connections)
            })
        for board_id in list(self.subscriptions):
            watchers = self.subscriptions[board_id]
            if websocket in watchers:
                watchers.remove(websocket)
            if not watchers:
                del self.subscriptions[board_id]

    async def publish(self, board_id: int, changes: List[Dict[str, Any]]):
        """Send committed changes of a board to every client watching it."""
        watchers = list(self.subscriptions.get(board_id, []))
        if not watchers:
            logger.debug("No WebSocket clients watching board", extra={"board_id": board_id})
            return

        message = json.dumps({"type": "changes", "board_id": board_id, "changes": changes})
        logger.info("Publishing board changes to WebSocket clients", extra={
            "board_id": board_id,
            "change_count": len(changes),
            "connection_count": len(watchers)
        })

        disconnected_connections = []
        for connection in watchers:
            try:
                await connection.send_text(message)
            except Exception as e:
                logger.warning("Failed to send changes to WebSocket client", extra={
                    "error": str(e)
                })
                disconnected_connections.append(connection)

        for connection in disconnected_connections:
            self.disconnect(connection)

    async def send_to_connection(self, websocket: WebSocket, message: str):
        """Send message to a specific connection."""
        try:
            await websocket.send_text(message)
        except Exception as e:
            logger.warning("Failed to send message to specific WebSocket client", extra={
                "error": str(e)
            })
            self.disconnect(websocket)

    def get_connection_count(self) -> int:
        return len(self.active_connections)


manager = ConnectionManager()

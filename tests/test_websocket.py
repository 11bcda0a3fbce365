"""
Feature: WebSocket for live board changes
  As a frontend application
  I want to receive the changes of the board I display
  So that I can update the UI immediately when someone edits it

Scenario: Successfully connect to WebSocket
  When connecting to the WebSocket endpoint for a board
  Then the connection should be established
  And a welcome message should be received

Scenario: Handle ping-pong
  Given a WebSocket connection is established
  When sending a ping message
  Then a pong response should be received

Scenario: Subscribe to more boards
  When sending a subscribe message
  Then an acknowledgment lists the boards
"""

import json
from fastapi.testclient import TestClient
from main import app


class TestWebSocket:
    """Test WebSocket functionality."""

    def test_websocket_stats_endpoint(self):
        """Test WebSocket stats endpoint."""
        with TestClient(app) as client:
            response = client.get("/api/ws/stats")
            assert response.status_code == 200
            data = response.json()
            assert "active_connections" in data
            assert "watched_boards" in data
            assert data["status"] == "running"

    def test_websocket_connection(self):
        """Test basic WebSocket connection."""
        with TestClient(app) as client:
            with client.websocket_connect("/api/ws?board_id=3") as websocket:
                message = json.loads(websocket.receive_text())

                assert message["type"] == "connection_established"
                assert message["board_id"] == 3
                assert message["active_connections"] >= 1

    def test_websocket_ping_pong(self):
        """Test ping-pong functionality."""
        with TestClient(app) as client:
            with client.websocket_connect("/api/ws") as websocket:
                # Receive welcome message first
                websocket.receive_text()

                ping_message = {
                    "type": "ping",
                    "timestamp": "2025-01-01T00:00:00Z"
                }
                websocket.send_text(json.dumps(ping_message))

                pong_message = json.loads(websocket.receive_text())
                assert pong_message["type"] == "pong"
                assert pong_message["timestamp"] == "2025-01-01T00:00:00Z"
                assert "server_time" in pong_message

    def test_websocket_subscription(self):
        """Test subscription acknowledgment."""
        with TestClient(app) as client:
            with client.websocket_connect("/api/ws") as websocket:
                websocket.receive_text()

                websocket.send_text(json.dumps({"type": "subscribe", "boards": [1, 2]}))

                ack_message = json.loads(websocket.receive_text())
                assert ack_message["type"] == "subscription_ack"
                assert ack_message["subscribed_to"] == [1, 2]

    def test_health(self):
        with TestClient(app) as client:
            response = client.get("/api/health")
            assert response.status_code == 200
            assert "is running" in response.json()["message"]

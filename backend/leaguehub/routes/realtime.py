"""
Realtime channel: one WebSocket per client, one channel per tournament.

Clients connect to /ws/tournaments/{tournament_id} and receive
"tournament_updated" and "notification_created" events as JSON:
{"event": ..., "tournament_id": ..., "data": {...}}
"""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from leaguehub.services.realtime import ConnectionHub, EventPublisher

logger = logging.getLogger(__name__)

router = APIRouter()

hub = ConnectionHub()


def get_publisher() -> EventPublisher:
    """Publisher handed to services (overridden in tests)"""
    return hub


@router.websocket("/ws/tournaments/{tournament_id}")
async def tournament_channel(websocket: WebSocket, tournament_id: int):
    await websocket.accept()
    hub.subscribe(tournament_id, websocket)
    try:
        await websocket.send_json(
            {
                "event": "joined",
                "tournament_id": tournament_id,
                "data": {"message": f"Listening for updates on tournament {tournament_id}"},
            }
        )
        # Inbound messages are ignored; the loop only waits for the disconnect
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        hub.unsubscribe(tournament_id, websocket)

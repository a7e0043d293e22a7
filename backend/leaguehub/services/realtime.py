"""
Realtime broadcast of tournament changes.

Services depend only on the EventPublisher protocol (a single publish(event)
call). The production implementation is ConnectionHub, which fans events out
to the WebSocket connections subscribed to a tournament's channel. Tests and
scripts use RecordingPublisher or NullPublisher.

Events:
- tournament_updated: full tournament aggregate
- notification_created: the single notification just posted
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Tuple

from fastapi import WebSocket

from leaguehub.schemas import NotificationRead, TournamentRead

logger = logging.getLogger(__name__)

TOURNAMENT_UPDATED = "tournament_updated"
NOTIFICATION_CREATED = "notification_created"


@dataclass
class RealtimeEvent:
    name: str
    tournament_id: int
    data: Dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> Dict[str, Any]:
        return {"event": self.name, "tournament_id": self.tournament_id, "data": self.data}


def tournament_updated(view: TournamentRead) -> RealtimeEvent:
    return RealtimeEvent(name=TOURNAMENT_UPDATED, tournament_id=view.id, data=view.model_dump(mode="json"))


def notification_created(notification: NotificationRead) -> RealtimeEvent:
    return RealtimeEvent(
        name=NOTIFICATION_CREATED,
        tournament_id=notification.tournament_id,
        data=notification.model_dump(mode="json"),
    )


class EventPublisher(Protocol):
    def publish(self, event: RealtimeEvent) -> None: ...


class NullPublisher:
    """Drops every event."""

    def publish(self, event: RealtimeEvent) -> None:
        return None


class RecordingPublisher:
    """Keeps published events in memory, in order."""

    def __init__(self):
        self.events: List[RealtimeEvent] = []

    def publish(self, event: RealtimeEvent) -> None:
        self.events.append(event)

    def names(self) -> List[str]:
        return [e.name for e in self.events]

    def clear(self) -> None:
        self.events.clear()


class ConnectionHub:
    """
    Per-tournament channels of WebSocket subscribers, keyed by connection id
    (WebSocket objects are not hashable).

    subscribe() must be called from the event loop serving the socket; the
    loop is remembered so publish() can be called from any thread (sync route
    handlers run in a worker pool).
    """

    def __init__(self):
        self._channels: Dict[int, Dict[int, Tuple[WebSocket, asyncio.AbstractEventLoop]]] = {}
        self._lock = threading.Lock()

    def subscribe(self, tournament_id: int, websocket: WebSocket) -> None:
        loop = asyncio.get_running_loop()
        with self._lock:
            self._channels.setdefault(tournament_id, {})[id(websocket)] = (websocket, loop)
        logger.info("Client joined tournament channel %d", tournament_id)

    def unsubscribe(self, tournament_id: int, websocket: WebSocket) -> None:
        with self._lock:
            channel = self._channels.get(tournament_id)
            if not channel or id(websocket) not in channel:
                return
            del channel[id(websocket)]
            if not channel:
                del self._channels[tournament_id]
        logger.info("Client left tournament channel %d", tournament_id)

    def subscriber_count(self, tournament_id: int) -> int:
        with self._lock:
            return len(self._channels.get(tournament_id, {}))

    def publish(self, event: RealtimeEvent) -> None:
        with self._lock:
            targets = list(self._channels.get(event.tournament_id, {}).values())
        if not targets:
            return

        message = event.to_message()
        for websocket, loop in targets:
            try:
                asyncio.run_coroutine_threadsafe(self._send(event.tournament_id, websocket, message), loop)
            except RuntimeError:
                # Loop already closed
                self.unsubscribe(event.tournament_id, websocket)
        logger.debug("Published %s to %d subscriber(s) of tournament %d", event.name, len(targets), event.tournament_id)

    async def _send(self, tournament_id: int, websocket: WebSocket, message: Dict[str, Any]) -> None:
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.warning("Dropping subscriber of tournament %d: %s", tournament_id, e)
            self.unsubscribe(tournament_id, websocket)

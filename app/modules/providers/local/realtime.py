"""In-process realtime channels with presence tracking.

Handlers may be plain functions or coroutine functions. A failing handler is
logged and does not prevent delivery to the other subscribers.
"""

import asyncio
import inspect
import uuid
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

import structlog

from infrastructure.resilience.errors import InvalidArgumentError
from modules.providers.contracts import (
    MessageHandler,
    RealtimeConnection,
    RealtimeProvider,
    Unsubscribe,
)
from modules.providers.models import HealthCheckResult, PresenceInfo, utcnow

logger = structlog.get_logger()


async def _dispatch(handler: Callable[..., Any], *args: Any) -> None:
    try:
        outcome = handler(*args)
        if inspect.isawaitable(outcome):
            await outcome
    except Exception as e:  # pylint: disable=broad-except
        logger.warning("realtime_handler_failed", error=str(e), handler=repr(handler))


class LocalConnection(RealtimeConnection):
    def __init__(self, user_id: str, provider: "LocalRealtimeProvider"):
        self.id = uuid.uuid4().hex
        self.user_id = user_id
        self.connected = True
        self._provider = provider
        self._message_handlers: List[MessageHandler] = []
        self._disconnect_handlers: List[Callable[[], Any]] = []

    async def send(self, message: Any) -> None:
        """Deliver a message to this connection's handlers."""
        if not self.connected:
            raise InvalidArgumentError(f"Connection {self.id} is closed")
        for handler in list(self._message_handlers):
            await _dispatch(handler, message)

    def on_message(self, handler: MessageHandler) -> None:
        self._message_handlers.append(handler)

    def on_disconnect(self, handler: Callable[[], Any]) -> None:
        self._disconnect_handlers.append(handler)

    async def disconnect(self) -> None:
        if not self.connected:
            return
        self.connected = False
        self._provider._connections.pop(  # pylint: disable=protected-access
            self.id, None
        )
        for handler in list(self._disconnect_handlers):
            await _dispatch(handler)


class LocalRealtimeProvider(RealtimeProvider):
    def __init__(self):
        self._connections: Dict[str, LocalConnection] = {}
        self._subscribers: Dict[str, Dict[str, MessageHandler]] = defaultdict(dict)
        self._presence: Dict[str, Dict[str, PresenceInfo]] = defaultdict(dict)

    async def connect(self, user_id: str) -> RealtimeConnection:
        connection = LocalConnection(user_id, self)
        self._connections[connection.id] = connection
        return connection

    async def subscribe(self, channel: str, handler: MessageHandler) -> Unsubscribe:
        subscription_id = uuid.uuid4().hex
        self._subscribers[channel][subscription_id] = handler

        async def unsubscribe() -> None:
            self._subscribers.get(channel, {}).pop(subscription_id, None)

        return unsubscribe

    async def publish(self, channel: str, message: Any) -> None:
        handlers = list(self._subscribers.get(channel, {}).values())
        await asyncio.gather(*(_dispatch(h, message) for h in handlers))

    async def track_presence(
        self, channel: str, user_id: str, metadata: Optional[Dict[str, Any]] = None
    ) -> Unsubscribe:
        self._presence[channel][user_id] = PresenceInfo(
            user_id=user_id, connected_at=utcnow(), metadata=dict(metadata or {})
        )

        async def untrack() -> None:
            self._presence.get(channel, {}).pop(user_id, None)

        return untrack

    async def get_presence(self, channel: str) -> List[PresenceInfo]:
        return list(self._presence.get(channel, {}).values())

    async def shutdown(self) -> None:
        for connection in list(self._connections.values()):
            await connection.disconnect()
        self._subscribers.clear()
        self._presence.clear()

    async def health_check(self) -> HealthCheckResult:
        return HealthCheckResult(
            healthy=True,
            status="healthy",
            details={
                "connections": len(self._connections),
                "channels": sum(1 for subs in self._subscribers.values() if subs),
            },
        )

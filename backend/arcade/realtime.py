"""Connection registry and best-effort fan-out to live Socket.IO clients.

Clients are tracked as ``(sid, namespace)`` handles. Every connected client
is in the broadcast channel; authenticated clients are also subscribed to
their private ``user:<id>`` and ``wallet:<address>`` channels.

Delivery is at-most-once with no replay: a client that connects after an
event was published never sees it and is expected to refetch over HTTP.
"""
import threading
from collections import defaultdict
from typing import Callable, Dict, Iterable, Optional, Set, Tuple

from flask import current_app, has_app_context

from arcade.errors import FanOutFailure

BROADCAST = 'broadcast'

# Event names pushed to clients
USER_UPDATED = 'user-updated'
SCORES_REFRESH_HINT = 'scores-refresh-hint'
SCORE_CREATED = 'score-created'
LEADERBOARD_UPDATED = 'leaderboard-updated'
GLOBAL_GAME_STATS_UPDATED = 'global-game-stats-updated'

ClientHandle = Tuple[str, str]
Transport = Callable[[str, dict, ClientHandle], None]


def user_channel(user_id) -> str:
    return f"user:{user_id}"


def wallet_channel(wallet_address) -> str:
    return f"wallet:{wallet_address}"


def _log_warning(message, exc_info=False):
    if has_app_context():
        current_app.logger.warning(message, exc_info=exc_info)


class ConnectionRegistry:
    """Subscriber sets keyed by channel id.

    Mutations happen under ``_lock``. ``publish`` copies the subscriber set
    under the lock and sends outside it, so connects and disconnects during
    a publish never change the set being iterated. ``publish_many`` keeps the
    events of one submission together: another batch cannot interleave.
    """

    def __init__(self, transport: Optional[Transport] = None):
        self.transport = transport
        self._lock = threading.Lock()
        self._publish_lock = threading.RLock()
        self._channels: Dict[str, Set[ClientHandle]] = defaultdict(set)
        self._client_channels: Dict[ClientHandle, Set[str]] = defaultdict(set)

    def subscribe_client(self, channel: str, client: ClientHandle) -> None:
        with self._lock:
            self._channels[channel].add(client)
            self._client_channels[client].add(channel)

    def unsubscribe_client(self, channel: str, client: ClientHandle) -> None:
        with self._lock:
            self._discard(channel, client)
            channels = self._client_channels.get(client)
            if channels is not None:
                channels.discard(channel)
                if not channels:
                    del self._client_channels[client]

    def remove_client(self, client: ClientHandle) -> None:
        """Drop a client from every channel it was in."""
        with self._lock:
            for channel in self._client_channels.pop(client, set()):
                self._discard(channel, client)

    def _discard(self, channel, client):
        members = self._channels.get(channel)
        if members is None:
            return
        members.discard(client)
        if not members:
            del self._channels[channel]

    def subscribers(self, channel: str) -> Set[ClientHandle]:
        with self._lock:
            return set(self._channels.get(channel, ()))

    def channels_for(self, client: ClientHandle) -> Set[str]:
        with self._lock:
            return set(self._client_channels.get(client, ()))

    def clear(self) -> None:
        with self._lock:
            self._channels.clear()
            self._client_channels.clear()

    def publish(self, channel: str, event: str, payload: dict) -> int:
        """Send ``event`` to every current subscriber of ``channel``.

        Returns the number of clients the transport accepted. Never raises:
        a missing transport, an empty channel or a failing client all
        degrade to fewer deliveries.
        """
        return self.publish_to_any((channel,), event, payload)

    def publish_to_any(self, channels: Iterable[str], event: str, payload: dict) -> int:
        """Send once to every client subscribed to at least one of ``channels``."""
        transport = self.transport
        if transport is None:
            return 0
        channels = tuple(channels)
        with self._lock:
            targets = set()
            for channel in channels:
                targets |= self._channels.get(channel, set())
        if not targets:
            return 0
        delivered = 0
        with self._publish_lock:
            for client in targets:
                try:
                    transport(event, payload, client)
                    delivered += 1
                except Exception as exc:
                    failure = FanOutFailure(f"publish {event} to {client[0]} failed: {exc!r}")
                    _log_warning(f"[fanout-fail] channels={','.join(channels)} event={event} error={failure.message}")
        return delivered

    def publish_many(self, messages: Iterable[Tuple[Iterable[str], str, dict]]) -> int:
        """Publish ``(channels, event, payload)`` triples as one uninterrupted batch."""
        delivered = 0
        with self._publish_lock:
            for channels, event, payload in messages:
                delivered += self.publish_to_any(channels, event, payload)
        return delivered


def socketio_transport(socketio) -> Transport:
    def _send(event, payload, client):
        sid, namespace = client
        socketio.emit(event, payload, to=sid, namespace=namespace)
    return _send


def private_channels(user_id, wallet_address):
    return (user_channel(user_id), wallet_channel(wallet_address))


registry = ConnectionRegistry()

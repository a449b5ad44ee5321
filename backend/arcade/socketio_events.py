from flask import current_app, request
from flask_login import current_user
from flask_socketio import emit

from arcade import socketio
from arcade.auth import user_from_token
from arcade.models import User
from arcade.realtime import (
    BROADCAST,
    registry,
    socketio_transport,
    user_channel,
    wallet_channel,
)

NAMESPACE = '/ws'


def _client():
    # type: ignore: request.sid and request.namespace exist in Socket.IO context
    return (request.sid, request.namespace)  # type: ignore


def _resolve_user(auth):
    if getattr(current_user, 'is_authenticated', False):
        return current_user._get_current_object()
    token = (auth or {}).get('token') if isinstance(auth, dict) else None
    return user_from_token(token)


def handle_connect(auth=None):
    client = _client()
    registry.subscribe_client(BROADCAST, client)
    user = _resolve_user(auth)
    if user is not None:
        registry.subscribe_client(user_channel(user.id), client)
        registry.subscribe_client(wallet_channel(user.wallet_address), client)
    current_app.logger.debug(f"[ws-connect] sid={client[0]} user={user.id if user else None}")
    emit('connected', {
        'userId': user.id if user else None,
        'channels': sorted(registry.channels_for(client)),
    })


def handle_disconnect(reason=None):
    client = _client()
    registry.remove_client(client)
    current_app.logger.debug(f"[ws-disconnect] sid={client[0]} reason={reason}")


def handle_subscribe(data=None):
    """Attach the caller to its private channels after connecting.

    Accepts the session cookie or ``{"token": ...}``. A ``walletAddress``,
    when given, must be the caller's own.
    """
    user = _resolve_user(data)
    if user is None:
        emit('error', {'message': 'Authentication required'})
        return
    address = (data or {}).get('walletAddress')
    if address and address != user.wallet_address:
        emit('error', {'message': 'Not allowed to subscribe to this wallet'})
        return
    client = _client()
    registry.subscribe_client(user_channel(user.id), client)
    registry.subscribe_client(wallet_channel(user.wallet_address), client)
    emit('subscribed', {'userId': user.id, 'channels': sorted(registry.channels_for(client))})


def handle_unsubscribe(data=None):
    """Leave both private channels tied to ``walletAddress``."""
    address = (data or {}).get('walletAddress')
    if not address:
        emit('error', {'message': 'walletAddress is required'})
        return
    client = _client()
    channels = [wallet_channel(address)]
    owner = User.query.filter_by(wallet_address=address).first()
    if owner is not None:
        channels.append(user_channel(owner.id))
    for channel in channels:
        registry.unsubscribe_client(channel, client)
    emit('unsubscribed', {'channels': channels})


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws' and point the
    fan-out registry at this Socket.IO server."""
    registry.transport = socketio_transport(socketio)
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('subscribe', handle_subscribe, namespace=NAMESPACE)
    socketio.on_event('unsubscribe', handle_unsubscribe, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)

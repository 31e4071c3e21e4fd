"""
WebSocket Manager for the live activity feed
Tracks feed subscribers and broadcasts generated transactions to the feed room
"""

from flask_socketio import emit, join_room, leave_room
from flask import request
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

FEED_ROOM = 'feed'


class WebSocketManager:
    def __init__(self, app=None, socketio=None):
        self.socketio = socketio
        self.connected_clients = {}  # socket_id -> {rooms, connected_at}

        if app and socketio:
            self.init_app(app)

    def init_app(self, app):
        """Initialize WebSocket handlers"""
        self.socketio.on_event('connect', self.handle_connect)
        self.socketio.on_event('disconnect', self.handle_disconnect)
        self.socketio.on_event('join_feed', self.handle_join_feed)
        self.socketio.on_event('leave_feed', self.handle_leave_feed)

    def handle_connect(self, auth=None, namespace=None):
        """Handle WebSocket connection. The feed is public, clients join the feed room on connect."""
        socket_id = request.sid
        self.connected_clients[socket_id] = {
            'rooms': set(),
            'connected_at': datetime.now(timezone.utc)
        }
        join_room(FEED_ROOM)
        self.connected_clients[socket_id]['rooms'].add(FEED_ROOM)

        logger.info(f"Feed client connected (socket: {socket_id})")
        emit('connection_status', {'status': 'connected', 'room': FEED_ROOM})
        return True

    def handle_disconnect(self, *args, **kwargs):
        """Handle WebSocket disconnection"""
        socket_id = request.sid
        if self.connected_clients.pop(socket_id, None) is not None:
            logger.info(f"Feed client disconnected (socket: {socket_id})")

    def handle_join_feed(self, data=None):
        socket_id = request.sid
        join_room(FEED_ROOM)
        client = self.connected_clients.setdefault(
            socket_id, {'rooms': set(), 'connected_at': datetime.now(timezone.utc)})
        client['rooms'].add(FEED_ROOM)
        emit('room_joined', {'room': FEED_ROOM, 'success': True})

    def handle_leave_feed(self, data=None):
        socket_id = request.sid
        leave_room(FEED_ROOM)
        if socket_id in self.connected_clients:
            self.connected_clients[socket_id]['rooms'].discard(FEED_ROOM)
        emit('room_left', {'room': FEED_ROOM})

    # Event Broadcasting Methods
    def broadcast_transaction(self, transaction):
        """Broadcast a generated transaction to every feed subscriber"""
        if not self.socketio:
            return

        self.socketio.emit(
            'transaction',
            {
                'type': 'transaction',
                'transaction': transaction,
                'timestamp': datetime.now(timezone.utc).isoformat()
            },
            room=FEED_ROOM
        )
        logger.debug(f"Broadcasted transaction to {self.get_room_clients_count()} feed clients")

    def get_connected_clients_count(self):
        """Get total number of connected clients"""
        return len(self.connected_clients)

    def get_room_clients_count(self, room=FEED_ROOM):
        """Get number of clients in a room"""
        return sum(1 for data in self.connected_clients.values() if room in data['rooms'])


# Global instance
websocket_manager = WebSocketManager()

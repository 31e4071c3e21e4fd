import unittest

from feed_be.services.websocket_manager import websocket_manager, FEED_ROOM
from feed_be.tests.test_api import BaseTestCase


class WebSocketManagerTests(BaseTestCase):

    def setUp(self):
        super().setUp()
        self.socket_client = self.app.socketio.test_client(self.app)

    def tearDown(self):
        if self.socket_client.is_connected():
            self.socket_client.disconnect()
        super().tearDown()

    def test_connect_joins_feed_room(self):
        received = self.socket_client.get_received()
        status = [msg for msg in received if msg['name'] == 'connection_status']
        self.assertEqual(status[0]['args'][0], {'status': 'connected', 'room': FEED_ROOM})
        self.assertGreaterEqual(websocket_manager.get_room_clients_count(), 1)

    def test_broadcast_transaction_reaches_clients(self):
        self.socket_client.get_received()
        tx = {'username': 'NeonFox', 'amount': '50.00', 'currency': '₺', 'type': 'LOSS', 'game': 'Starburst'}
        websocket_manager.broadcast_transaction(tx)

        events = [msg for msg in self.socket_client.get_received() if msg['name'] == 'transaction']
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0]['args'][0]['transaction'], tx)
        self.assertIn('timestamp', events[0]['args'][0])

    def test_leave_feed_stops_delivery(self):
        self.socket_client.emit('leave_feed')
        self.socket_client.get_received()
        websocket_manager.broadcast_transaction({'username': 'X'})
        events = [msg for msg in self.socket_client.get_received() if msg['name'] == 'transaction']
        self.assertEqual(events, [])

    def test_disconnect_forgets_client(self):
        before = websocket_manager.get_connected_clients_count()
        self.socket_client.disconnect()
        self.assertEqual(websocket_manager.get_connected_clients_count(), before - 1)


if __name__ == '__main__':
    unittest.main()

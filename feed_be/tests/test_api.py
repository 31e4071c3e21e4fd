import os
import unittest
from decimal import Decimal

from feed_be.app import create_app
from feed_be.config import TestingConfig
from feed_be.error_codes import ErrorCodes
from feed_be.models import db, Transaction


class BaseTestCase(unittest.TestCase):
    """
    Base test case to set up a fresh app and database for each test method,
    ensuring maximum test isolation.
    """

    SERVICE_HEADERS = {'X-Service-Token': TestingConfig.SERVICE_API_TOKEN}

    def setUp(self):
        self.app, _ = create_app(TestingConfig)
        self.test_db_file = self.app.config.get('DATABASE_FILE_PATH', 'test_feed_be_isolated.db')

        self.app_context = self.app.app_context()
        self.app_context.push()

        db.drop_all()
        db.create_all()

        self.client = self.app.test_client()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.app_context.pop()

        if os.path.exists(self.test_db_file):
            try:
                os.remove(self.test_db_file)
            except OSError as e:
                print(f"Error removing test database file {self.test_db_file}: {e}")

    def _create_transaction(self, username="LuckyKing7", amount="100.00", type="LOSS", game="Sweet Bonanza",
                            multiplier=None, is_simulation=True):
        transaction = Transaction(
            username=username,
            amount=Decimal(amount),
            currency='₺',
            type=type,
            game=game,
            multiplier=multiplier,
            is_simulation=is_simulation,
        )
        db.session.add(transaction)
        db.session.commit()
        return transaction


class TransactionApiTests(BaseTestCase):

    def test_list_transactions_empty(self):
        response = self.client.get('/api/transactions')
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertTrue(data['status'])
        self.assertEqual(data['transactions'], [])
        self.assertIsNone(data['next_cursor'])

    def test_list_transactions_newest_first_with_cursor(self):
        created = [self._create_transaction(username=f"Player{i}") for i in range(5)]

        response = self.client.get('/api/transactions?limit=2')
        data = response.get_json()
        self.assertEqual([t['username'] for t in data['transactions']], ['Player4', 'Player3'])
        self.assertEqual(data['next_cursor'], created[3].id)

        response = self.client.get(f"/api/transactions?limit=2&cursor={data['next_cursor']}")
        data = response.get_json()
        self.assertEqual([t['username'] for t in data['transactions']], ['Player2', 'Player1'])

    def test_list_transactions_filters(self):
        self._create_transaction(username="GoldenWolf", type="WIN", multiplier="2.5x")
        self._create_transaction(username="NeonFox", type="LOSS")
        self._create_transaction(username="GoldenHawk", type="LOSS")

        wins = self.client.get('/api/transactions?type=WIN').get_json()['transactions']
        self.assertEqual([t['username'] for t in wins], ['GoldenWolf'])

        golden = self.client.get('/api/transactions?search=golden').get_json()['transactions']
        self.assertEqual({t['username'] for t in golden}, {'GoldenWolf', 'GoldenHawk'})

    def test_list_transactions_rejects_bad_limit(self):
        response = self.client.get('/api/transactions?limit=0')
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.get_json()['error_code'], ErrorCodes.VALIDATION_ERROR)

    def test_transaction_amount_serialized_with_two_decimals(self):
        self._create_transaction(amount="25")
        transaction = self.client.get('/api/transactions').get_json()['transactions'][0]
        self.assertEqual(transaction['amount'], '25.00')
        self.assertEqual(transaction['currency'], '₺')

    def test_create_transaction(self):
        response = self.client.post('/api/transactions', json={
            'username': 'SpinMaster', 'amount': 250, 'type': 'win', 'game': 'Starburst', 'multiplier': '3.2x'
        })
        self.assertEqual(response.status_code, 201)
        data = response.get_json()['transaction']
        self.assertEqual(data['type'], 'WIN')
        self.assertEqual(data['amount'], '250.00')
        self.assertFalse(data['is_simulation'])
        self.assertEqual(db.session.query(Transaction).count(), 1)

    def test_create_loss_with_multiplier_rejected(self):
        response = self.client.post('/api/transactions', json={
            'username': 'SpinMaster', 'amount': 250, 'type': 'LOSS', 'game': 'Starburst', 'multiplier': '3.2x'
        })
        self.assertEqual(response.status_code, 422)
        self.assertIn('multiplier', response.get_json()['details']['errors'])

    def test_create_transaction_missing_fields(self):
        response = self.client.post('/api/transactions', json={'username': 'SpinMaster'})
        self.assertEqual(response.status_code, 422)
        errors = response.get_json()['details']['errors']
        for field in ('amount', 'type', 'game'):
            self.assertIn(field, errors)

    def test_stats(self):
        self._create_transaction(amount="100.00", type="LOSS")
        self._create_transaction(amount="40.00", type="WIN", multiplier="1.4x")

        response = self.client.get('/api/stats')
        self.assertEqual(response.status_code, 200)
        stats = response.get_json()['stats']
        self.assertEqual(stats['transaction_count'], 2)
        self.assertAlmostEqual(stats['total_profit'], 60.0)
        self.assertAlmostEqual(stats['last_24h_profit'], 60.0)

    def test_unknown_route_returns_json_404(self):
        response = self.client.get('/api/does-not-exist')
        self.assertEqual(response.status_code, 404)
        data = response.get_json()
        self.assertFalse(data['status'])
        self.assertEqual(data['error_code'], ErrorCodes.NOT_FOUND)


if __name__ == '__main__':
    unittest.main()

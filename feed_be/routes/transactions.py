from flask import Blueprint, request, jsonify, current_app

from feed_be import storage
from feed_be.models import db
from feed_be.schemas import TransactionSchema, TransactionCreateSchema, TransactionQuerySchema, StatsSchema
from feed_be.services.websocket_manager import websocket_manager

transactions_bp = Blueprint('transactions', __name__, url_prefix='/api')


@transactions_bp.route('/transactions', methods=['GET'])
def list_transactions():
    """Newest first. Query: limit (1..200), cursor (id, exclusive), type (WIN/LOSS), search (username)."""
    params = TransactionQuerySchema().load(request.args.to_dict())
    transactions = storage.get_transactions(
        limit=params['limit'],
        cursor=params['cursor'],
        tx_type=params['type'],
        search=params['search'],
    )
    next_cursor = transactions[-1].id if len(transactions) == params['limit'] else None
    return jsonify({
        'status': True,
        'transactions': TransactionSchema(many=True).dump(transactions),
        'next_cursor': next_cursor,
    }), 200


@transactions_bp.route('/transactions', methods=['POST'])
def create_transaction():
    data = TransactionCreateSchema().load(request.get_json(silent=True) or {})
    try:
        transaction = storage.create_transaction(data)
    except Exception:
        db.session.rollback()
        raise

    payload = TransactionSchema().dump(transaction)
    current_app.logger.info(f"Manual transaction {transaction.id} recorded for {transaction.username}")
    websocket_manager.broadcast_transaction(payload)
    return jsonify({'status': True, 'transaction': payload}), 201


@transactions_bp.route('/stats', methods=['GET'])
def get_stats():
    return jsonify({'status': True, 'stats': StatsSchema().dump(storage.get_stats())}), 200

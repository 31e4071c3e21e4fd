"""
Persistence helpers for transactions, game catalog, feed settings and audit logs.

All functions operate on the Flask-SQLAlchemy session of the active app context.
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import select, func, case

from feed_be.models import db, GameConfig, FeedSetting, Transaction, AuditLog

logger = logging.getLogger(__name__)


# --- Transactions ---

def get_transactions(limit: int = 50, cursor: Optional[int] = None, tx_type: Optional[str] = None,
                     search: Optional[str] = None) -> List[Transaction]:
    """Newest first, paginated by id cursor (exclusive)."""
    stmt = select(Transaction)
    if cursor:
        stmt = stmt.filter(Transaction.id < cursor)
    if tx_type:
        stmt = stmt.filter(Transaction.type == tx_type)
    if search:
        stmt = stmt.filter(Transaction.username.ilike(f"%{search}%"))
    stmt = stmt.order_by(Transaction.id.desc()).limit(limit)
    return list(db.session.scalars(stmt).all())


def create_transaction(data: dict) -> Transaction:
    transaction = Transaction(
        username=data['username'],
        amount=Decimal(str(data['amount'])),
        currency=data.get('currency') or '₺',
        type=data['type'],
        game=data['game'],
        multiplier=data.get('multiplier'),
        is_simulation=bool(data.get('is_simulation', False)),
    )
    db.session.add(transaction)
    db.session.commit()
    return transaction


def get_stats(now: Optional[datetime] = None) -> Dict[str, float]:
    """Platform profit/loss: LOSS rows are revenue, WIN rows are payouts."""
    now = now or datetime.now(timezone.utc)
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    last_24h = now - timedelta(hours=24)

    signed = case((Transaction.type == 'LOSS', Transaction.amount), else_=-Transaction.amount)

    def _window(since):
        return func.coalesce(func.sum(case((Transaction.timestamp > since, signed), else_=0)), 0)

    row = db.session.execute(
        select(
            func.coalesce(func.sum(signed), 0),
            func.count(Transaction.id),
            _window(last_24h),
            _window(day_start),
        )
    ).one()

    return {
        'total_profit': float(row[0]),
        'transaction_count': int(row[1]),
        'last_24h_profit': float(row[2]),
        'today_profit': float(row[3]),
    }


# --- Game catalog ---

def get_all_game_configs() -> List[GameConfig]:
    return list(db.session.scalars(select(GameConfig).order_by(GameConfig.id)).all())


def get_game_config(game_id: str) -> Optional[GameConfig]:
    return db.session.scalar(select(GameConfig).filter_by(game_id=game_id))


def upsert_game_config(data: dict) -> GameConfig:
    game = get_game_config(data['game_id'])
    if game is None:
        game = GameConfig(game_id=data['game_id'])
        db.session.add(game)
    for field in ('name', 'provider', 'image_path', 'is_active', 'ladder_type', 'custom_ladder'):
        if field in data:
            setattr(game, field, data[field])
    db.session.commit()
    return game


def update_game_config(game_id: str, updates: dict, actor: str = 'service') -> Optional[GameConfig]:
    """Apply admin updates and record one audit entry per changed field."""
    game = get_game_config(game_id)
    if game is None:
        return None

    for field, new_value in updates.items():
        old_value = getattr(game, field)
        if old_value == new_value:
            continue
        setattr(game, field, new_value)
        _stage_audit(actor, 'game', game_id, field, old_value, new_value)

    db.session.commit()
    return game


# --- Feed settings ---

def get_all_feed_settings() -> Dict[str, str]:
    return {s.key: s.value for s in db.session.scalars(select(FeedSetting)).all()}


def set_feed_setting(key: str, value: str, actor: Optional[str] = None) -> FeedSetting:
    setting = db.session.get(FeedSetting, key)
    old_value = setting.value if setting else None
    if setting is None:
        setting = FeedSetting(key=key, value=value)
        db.session.add(setting)
    else:
        setting.value = value
    if actor and old_value != value:
        _stage_audit(actor, 'setting', key, key, old_value, value)
    db.session.commit()
    return setting


# --- Audit log ---

def _stage_audit(actor, entity, entity_id, field, old_value, new_value):
    db.session.add(AuditLog(
        actor=actor,
        entity=entity,
        entity_id=entity_id,
        field=field,
        old_value=None if old_value is None else str(old_value),
        new_value=None if new_value is None else str(new_value),
    ))


def add_audit_log(actor: str, entity: str, entity_id: Optional[str], field: str,
                  old_value=None, new_value=None) -> None:
    _stage_audit(actor, entity, entity_id, field, old_value, new_value)
    db.session.commit()


def get_audit_logs(limit: int = 200) -> List[AuditLog]:
    return list(db.session.scalars(
        select(AuditLog).order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit)
    ).all())

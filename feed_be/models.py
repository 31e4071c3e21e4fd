from flask_sqlalchemy import SQLAlchemy
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import Numeric

db = SQLAlchemy()

PROVIDERS = ('pragmatic', 'playngo', 'netent', 'other')
LADDER_TYPES = ('default', 'pragmatic', 'playngo', 'netent', 'hacksaw', 'custom')
TRANSACTION_TYPES = ('WIN', 'LOSS')


class GameConfig(db.Model):
    __tablename__ = 'game_config'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.String(100), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    provider = db.Column(db.String(50), nullable=False, default='other', index=True)
    image_path = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    ladder_type = db.Column(db.String(50), default='default', nullable=False)
    # Comma separated ascending amounts, e.g. "5,10,25,50,100"
    custom_ladder = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f"<GameConfig {self.game_id} ({self.provider}, active={self.is_active})>"


class FeedSetting(db.Model):
    __tablename__ = 'feed_setting'
    key = db.Column(db.String(100), primary_key=True)
    value = db.Column(db.String(255), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f"<FeedSetting {self.key}={self.value}>"


class Transaction(db.Model):
    __tablename__ = 'transaction'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), nullable=False, index=True)
    amount = db.Column(Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(8), default='₺', nullable=False)
    type = db.Column(db.String(4), nullable=False, index=True)
    game = db.Column(db.String(100), nullable=False)
    multiplier = db.Column(db.String(16), nullable=True)
    timestamp = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                          nullable=False, index=True)
    is_simulation = db.Column(db.Boolean, default=False, nullable=False)

    @property
    def signed_house_amount(self) -> Decimal:
        """Platform perspective: a LOSS is revenue, a WIN is payout."""
        amount = Decimal(self.amount)
        return amount if self.type == 'LOSS' else -amount

    def __repr__(self):
        return f"<Transaction {self.id} ({self.username}, {self.type}, {self.amount})>"


class AuditLog(db.Model):
    __tablename__ = 'audit_log'
    id = db.Column(db.Integer, primary_key=True)
    actor = db.Column(db.String(100), nullable=False, default='service')
    entity = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.String(100), nullable=True)
    field = db.Column(db.String(100), nullable=False)
    old_value = db.Column(db.Text, nullable=True)
    new_value = db.Column(db.Text, nullable=True)
    timestamp = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                          nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog {self.id} {self.entity}.{self.field}>"

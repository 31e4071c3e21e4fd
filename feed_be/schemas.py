import math

from marshmallow import Schema, fields, ValidationError, validates, validates_schema, pre_load
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema
from marshmallow.validate import OneOf, Range, Length, Regexp

from feed_be.models import db, GameConfig, Transaction, AuditLog, PROVIDERS, LADDER_TYPES, TRANSACTION_TYPES
from feed_be.utils.bet_sizing_helper import MIN_BET

MIN_CUSTOM_LADDER_RUNGS = 5
MULTIPLIER_PATTERN = r'^\d+(\.\d)?x$'


def parse_ladder_text(raw):
    """Strict parse for admin input: every entry must be a positive number."""
    values = []
    for part in str(raw).split(','):
        part = part.strip()
        if not part:
            continue
        try:
            value = float(part)
        except ValueError:
            raise ValidationError(f"'{part}' is not a number.")
        if not math.isfinite(value) or value <= 0:
            raise ValidationError('Ladder amounts must be positive numbers.')
        values.append(value)
    return values


def validate_custom_ladder(raw):
    if raw is None or str(raw).strip() == '':
        return
    values = parse_ladder_text(raw)
    if len(values) < MIN_CUSTOM_LADDER_RUNGS:
        raise ValidationError(f'Custom ladder needs at least {MIN_CUSTOM_LADDER_RUNGS} amounts.')
    if any(b <= a for a, b in zip(values, values[1:])):
        raise ValidationError('Custom ladder amounts must be strictly ascending.')
    if values[-1] < MIN_BET:
        raise ValidationError(f'Custom ladder needs at least one amount of {MIN_BET} or more.')


# --- Transaction Schemas ---
class TransactionSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = Transaction
        load_instance = True
        sqla_session = db.session

    amount = fields.Decimal(places=2, as_string=True)


class TransactionCreateSchema(Schema):
    username = fields.Str(required=True, validate=Length(min=1, max=50))
    amount = fields.Decimal(required=True, places=2, validate=Range(min=0, min_inclusive=False))
    currency = fields.Str(load_default='₺', validate=Length(min=1, max=8))
    type = fields.Str(required=True, validate=OneOf(TRANSACTION_TYPES))
    game = fields.Str(required=True, validate=Length(min=1, max=100))
    multiplier = fields.Str(load_default=None, allow_none=True, validate=Regexp(MULTIPLIER_PATTERN))
    is_simulation = fields.Bool(load_default=False)

    @pre_load
    def normalize_type(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get('type'), str):
            data = dict(data)
            data['type'] = data['type'].upper()
        return data

    @validates_schema
    def validate_multiplier(self, data, **kwargs):
        if data.get('type') == 'LOSS' and data.get('multiplier'):
            raise ValidationError('LOSS transactions carry no multiplier.', 'multiplier')


class TransactionQuerySchema(Schema):
    limit = fields.Int(load_default=50, validate=Range(min=1, max=200))
    cursor = fields.Int(load_default=None, allow_none=True, validate=Range(min=1))
    type = fields.Str(load_default=None, allow_none=True, validate=OneOf(TRANSACTION_TYPES))
    search = fields.Str(load_default=None, allow_none=True, validate=Length(max=50))


class StatsSchema(Schema):
    total_profit = fields.Float()
    transaction_count = fields.Int()
    last_24h_profit = fields.Float()
    today_profit = fields.Float()


# --- Game catalog Schemas ---
class GameConfigSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = GameConfig
        load_instance = True
        sqla_session = db.session


class GameConfigUpdateSchema(Schema):
    name = fields.Str(validate=Length(min=1, max=100))
    provider = fields.Str(validate=OneOf(PROVIDERS))
    image_path = fields.Str(allow_none=True, validate=Length(max=255))
    is_active = fields.Bool()
    ladder_type = fields.Str(validate=OneOf(LADDER_TYPES))
    custom_ladder = fields.Str(allow_none=True)

    @validates('custom_ladder')
    def check_custom_ladder(self, value, **kwargs):
        validate_custom_ladder(value)

    @validates_schema
    def validate_not_empty(self, data, **kwargs):
        if not data:
            raise ValidationError('No updatable fields provided.')


# --- Feed settings Schemas ---
class FeedSettingsUpdateSchema(Schema):
    provider_weights = fields.Dict(
        keys=fields.Str(validate=OneOf(PROVIDERS)),
        values=fields.Int(validate=Range(min=0, max=100)),
        required=True,
    )


class AuditLogSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = AuditLog
        load_instance = True
        sqla_session = db.session

import hashlib
import os

from flask import Blueprint, request, jsonify, current_app
from werkzeug.utils import secure_filename

from feed_be import storage
from feed_be.exceptions import NotFoundException, ValidationException
from feed_be.models import db, PROVIDERS
from feed_be.schemas import (
    GameConfigSchema, GameConfigUpdateSchema, FeedSettingsUpdateSchema, AuditLogSchema, parse_ladder_text
)
from feed_be.routes.images import GAME_IMAGE_URL_PREFIX, detect_image_type, game_image_dir
from feed_be.services.feed_generator import get_feed_generator
from feed_be.services.feed_loop import get_feed_loop
from feed_be.services.websocket_manager import websocket_manager
from feed_be.utils.decorators import service_token_required
from feed_be.utils.game_config_cache import get_game_config_cache

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def _actor():
    return request.headers.get('X-Actor') or 'service'


def _refresh_cache():
    snapshot = get_game_config_cache().refresh()
    return len(snapshot.games)


def _format_ladder(raw):
    if raw is None or str(raw).strip() == '':
        return None
    values = parse_ladder_text(raw)
    return ','.join(f"{int(v)}" if float(v).is_integer() else f"{v:g}" for v in values)


@admin_bp.route('/games', methods=['GET'])
@service_token_required
def admin_get_games():
    games = storage.get_all_game_configs()
    return jsonify({'status': True, 'games': GameConfigSchema(many=True).dump(games)}), 200


@admin_bp.route('/games/<string:game_id>', methods=['PUT'])
@service_token_required
def admin_update_game(game_id):
    updates = GameConfigUpdateSchema().load(request.get_json(silent=True) or {})
    if 'custom_ladder' in updates:
        updates['custom_ladder'] = _format_ladder(updates['custom_ladder'])

    if storage.get_game_config(game_id) is None:
        raise NotFoundException(f"Game '{game_id}' not found.")

    try:
        game = storage.update_game_config(game_id, updates, actor=_actor())
    except Exception:
        db.session.rollback()
        raise

    active_count = _refresh_cache()
    current_app.logger.info(
        f"Game {game_id} updated by {_actor()}: {sorted(updates)}; {active_count} active games cached"
    )
    return jsonify({'status': True, 'game': GameConfigSchema().dump(game)}), 200


@admin_bp.route('/games/<string:game_id>/image', methods=['POST'])
@service_token_required
def admin_upload_game_image(game_id):
    """Raw image bytes in the body (application/octet-stream); PNG, JPEG or WEBP."""
    if storage.get_game_config(game_id) is None:
        raise NotFoundException(f"Game '{game_id}' not found.")

    max_bytes = current_app.config['GAME_IMAGE_MAX_BYTES']
    if request.content_length is not None and request.content_length > max_bytes:
        raise ValidationException("Image is too large.", details={'max_bytes': max_bytes})
    data = request.get_data(cache=False)
    if not data:
        raise ValidationException("Image body is empty.")
    if len(data) > max_bytes:
        raise ValidationException("Image is too large.", details={'max_bytes': max_bytes})

    extension = detect_image_type(data)
    if extension is None:
        raise ValidationException("Only PNG, JPEG and WEBP images are accepted.")

    image_dir = game_image_dir()
    os.makedirs(image_dir, exist_ok=True)
    # Content hash in the name so a new image never reuses a cached URL
    digest = hashlib.sha256(data).hexdigest()[:12]
    filename = secure_filename(f"{game_id}-{digest}.{extension}")
    with open(os.path.join(image_dir, filename), 'wb') as image_file:
        image_file.write(data)

    try:
        game = storage.update_game_config(
            game_id, {'image_path': f"{GAME_IMAGE_URL_PREFIX}/{filename}"}, actor=_actor())
    except Exception:
        db.session.rollback()
        raise

    _refresh_cache()
    current_app.logger.info(f"Image for {game_id} uploaded by {_actor()} ({len(data)} bytes, {extension})")
    return jsonify({'status': True, 'game': GameConfigSchema().dump(game)}), 200


@admin_bp.route('/settings', methods=['GET'])
@service_token_required
def admin_get_settings():
    settings = storage.get_all_feed_settings()
    provider_weights = {}
    for provider in PROVIDERS:
        raw = settings.get(f"provider_weight_{provider}")
        if raw is not None:
            provider_weights[provider] = int(float(raw))
    return jsonify({'status': True, 'settings': settings, 'provider_weights': provider_weights}), 200


@admin_bp.route('/settings', methods=['PUT'])
@service_token_required
def admin_update_settings():
    data = FeedSettingsUpdateSchema().load(request.get_json(silent=True) or {})
    weights = data['provider_weights']
    if not weights:
        raise ValidationException("No provider weights provided.")

    try:
        for provider, weight in weights.items():
            storage.set_feed_setting(f"provider_weight_{provider}", str(weight), actor=_actor())
    except Exception:
        db.session.rollback()
        raise

    _refresh_cache()
    current_app.logger.info(f"Provider weights updated by {_actor()}: {weights}")
    return jsonify({'status': True, 'settings': storage.get_all_feed_settings()}), 200


@admin_bp.route('/audit-logs', methods=['GET'])
@service_token_required
def admin_get_audit_logs():
    limit = request.args.get('limit', 200, type=int)
    limit = max(1, min(limit, 1000))
    logs = storage.get_audit_logs(limit=limit)
    return jsonify({'status': True, 'audit_logs': AuditLogSchema(many=True).dump(logs)}), 200


@admin_bp.route('/feed/status', methods=['GET'])
@service_token_required
def admin_feed_status():
    cache = get_game_config_cache()
    cache_status = {'initialized': cache.is_initialized()}
    if cache.is_initialized():
        config = cache.get_config()
        cache_status.update({
            'active_games': len(config.games),
            'provider_weights': dict(config.provider_weights),
            'last_refresh': config.last_refresh,
        })
    return jsonify({
        'status': True,
        'feed': {
            'loop': get_feed_loop().status(),
            'generator': get_feed_generator().status(),
            'cache': cache_status,
            'connected_clients': websocket_manager.get_connected_clients_count(),
        },
    }), 200

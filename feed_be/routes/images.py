import os
from typing import Optional

from flask import Blueprint, current_app, send_from_directory

GAME_IMAGE_URL_PREFIX = '/images/games'

# Magic bytes of the accepted upload formats
PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'
JPEG_SIGNATURE = b'\xff\xd8\xff'

images_bp = Blueprint('images', __name__, url_prefix=GAME_IMAGE_URL_PREFIX)


def detect_image_type(data: bytes) -> Optional[str]:
    """File extension for PNG, JPEG or WEBP content, None for anything else."""
    if data.startswith(PNG_SIGNATURE):
        return 'png'
    if data.startswith(JPEG_SIGNATURE):
        return 'jpg'
    if len(data) >= 12 and data[:4] == b'RIFF' and data[8:12] == b'WEBP':
        return 'webp'
    return None


def game_image_dir() -> str:
    # Relative paths resolve against the package, like send_from_directory does
    return os.path.join(current_app.root_path, current_app.config['GAME_IMAGE_DIR'])


@images_bp.route('/<path:filename>', methods=['GET'])
def get_game_image(filename):
    return send_from_directory(game_image_dir(), filename, max_age=3600)

"""
Game Configuration Cache
Holds the active game catalog, provider weights and bet ladders used by the feed generator.

The cache is rebuilt explicitly (after seeding and after every admin change); it never polls.
Reads before the first refresh raise ConfigNotInitializedException.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from feed_be.exceptions import ConfigNotInitializedException
from feed_be.models import PROVIDERS

logger = logging.getLogger(__name__)

DEFAULT_PRAGMATIC_LADDER = (
    1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 12, 14, 16, 18, 20, 30, 40, 50, 60, 70, 80, 90, 100,
    120, 140, 160, 200, 240, 280, 300, 320, 360, 400, 500, 600, 700, 800, 900, 1000,
    1200, 1400, 1600, 1800, 2000,
)
DEFAULT_PLAYNGO_LADDER = (1, 2, 3, 5, 7, 10, 15, 20, 25, 30, 40, 50, 75, 100, 150, 200, 300, 400, 500)
DEFAULT_NETENT_LADDER = (1, 2, 5, 10, 20, 25, 50, 75, 100, 125, 150, 200, 250, 500, 750, 1000)
DEFAULT_HACKSAW_LADDER = (1, 2, 3, 5, 10, 15, 20, 30, 50, 75, 100, 150, 200, 300, 500, 1000, 1500, 2000)

DEFAULT_LADDERS = {
    'pragmatic': DEFAULT_PRAGMATIC_LADDER,
    'playngo': DEFAULT_PLAYNGO_LADDER,
    'netent': DEFAULT_NETENT_LADDER,
    'hacksaw': DEFAULT_HACKSAW_LADDER,
}

DEFAULT_PROVIDER_WEIGHTS = {
    'pragmatic': 70,
    'playngo': 15,
    'netent': 8,
    'other': 7,
}

DEFAULT_GAMES = [
    ('gates-of-olympus', 'Gates of Olympus', 'pragmatic'),
    ('sweet-bonanza', 'Sweet Bonanza', 'pragmatic'),
    ('big-bass-bonanza', 'Big Bass Bonanza', 'pragmatic'),
    ('sugar-rush', 'Sugar Rush', 'pragmatic'),
    ('starlight-princess', 'Starlight Princess', 'pragmatic'),
    ('the-dog-house', 'The Dog House', 'pragmatic'),
    ('fruit-party', 'Fruit Party', 'pragmatic'),
    ('gates-of-gatotkaca', 'Gates of Gatotkaca', 'pragmatic'),
    ('buffalo-king-megaways', 'Buffalo King Megaways', 'pragmatic'),
    ('madame-destiny-megaways', 'Madame Destiny Megaways', 'pragmatic'),
    ('floating-dragon', 'Floating Dragon', 'pragmatic'),
    ('aztec-gems', 'Aztec Gems', 'pragmatic'),
    ('wolf-gold', 'Wolf Gold', 'pragmatic'),
    ('wanted-dead-or-a-wild', 'Wanted Dead or a Wild', 'pragmatic'),
    ('extra-chilli-megaways', 'Extra Chilli Megaways', 'pragmatic'),
    ('jokers-jewels', "Joker's Jewels", 'pragmatic'),
    ('book-of-dead', 'Book of Dead', 'playngo'),
    ('fire-joker', 'Fire Joker', 'playngo'),
    ('legacy-of-dead', 'Legacy of Dead', 'playngo'),
    ('reactoonz', 'Reactoonz', 'playngo'),
    ('rise-of-olympus', 'Rise of Olympus', 'playngo'),
    ('mental', 'Mental', 'playngo'),
    ('jammin-jars', "Jammin' Jars", 'playngo'),
    ('starburst', 'Starburst', 'netent'),
    ('gonzos-quest', "Gonzo's Quest", 'netent'),
    ('dead-or-alive-2', 'Dead or Alive 2', 'netent'),
    ('bonanza-megaways', 'Bonanza Megaways', 'other'),
    ('razor-shark', 'Razor Shark', 'other'),
    ('money-train-2', 'Money Train 2', 'other'),
    ('eye-of-horus', 'Eye of Horus', 'other'),
]

# Seeded with the pragmatic ladder, every other default game uses natural sizing
PRAGMATIC_LADDER_GAMES = {
    'Gates of Olympus', 'Sweet Bonanza', 'Big Bass Bonanza',
    'Sugar Rush', 'Starlight Princess', 'The Dog House',
    'Fruit Party', 'Gates of Gatotkaca', 'Buffalo King Megaways',
}


@dataclass(frozen=True)
class GameDefinition:
    game_id: str
    name: str
    provider: str
    ladder_type: str = 'default'
    custom_ladder: Optional[Tuple[float, ...]] = None
    image_path: Optional[str] = None


@dataclass(frozen=True)
class CachedConfig:
    games: Tuple[GameDefinition, ...]
    games_by_provider: Dict[str, Tuple[GameDefinition, ...]]
    provider_weights: Tuple[Tuple[str, int], ...]
    ladders: Dict[str, Tuple[float, ...]]
    feed_params: Dict[str, str]
    last_refresh: float = field(default=0.0, compare=False)


def _to_number(value: float):
    return int(value) if float(value).is_integer() else value


def parse_custom_ladder(raw) -> Optional[Tuple[float, ...]]:
    """Parse "5, 10, 25" style text. Invalid and non-positive entries are dropped."""
    if raw is None:
        return None
    if isinstance(raw, str):
        if raw.strip() == '':
            return None
        parts = raw.split(',')
    else:
        parts = list(raw)

    values = []
    for part in parts:
        try:
            number = float(str(part).strip())
        except ValueError:
            continue
        if math.isfinite(number) and number > 0:
            values.append(_to_number(number))
    return tuple(sorted(values)) if values else None


def _parse_weight(settings: Dict[str, str], provider: str) -> int:
    key = f"provider_weight_{provider}"
    raw = settings.get(key)
    if raw is None or str(raw).strip() == '':
        return DEFAULT_PROVIDER_WEIGHTS[provider]
    try:
        weight = int(float(raw))
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid {key}={raw!r}, using default {DEFAULT_PROVIDER_WEIGHTS[provider]}")
        return DEFAULT_PROVIDER_WEIGHTS[provider]
    return max(0, min(100, weight))


def build_snapshot(game_rows: Iterable, settings: Dict[str, str]) -> CachedConfig:
    """
    Build an immutable snapshot from persisted rows.

    game_rows: objects (or dicts) exposing game_id, name, provider, is_active,
               ladder_type, custom_ladder and optionally image_path.
    settings: feed setting key/value pairs.
    """
    def _get(row, attr, default=None):
        if isinstance(row, dict):
            return row.get(attr, default)
        return getattr(row, attr, default)

    active_games: List[GameDefinition] = []
    for row in game_rows:
        if not _get(row, 'is_active', True):
            continue
        provider = _get(row, 'provider')
        active_games.append(GameDefinition(
            game_id=_get(row, 'game_id'),
            name=_get(row, 'name'),
            provider=provider if provider in PROVIDERS else 'other',
            ladder_type=_get(row, 'ladder_type') or 'default',
            custom_ladder=parse_custom_ladder(_get(row, 'custom_ladder')),
            image_path=_get(row, 'image_path'),
        ))

    grouped: Dict[str, List[GameDefinition]] = {provider: [] for provider in PROVIDERS}
    for game in active_games:
        grouped[game.provider].append(game)

    provider_weights = tuple(
        (provider, _parse_weight(settings, provider))
        for provider in PROVIDERS
        if grouped[provider]
    )

    return CachedConfig(
        games=tuple(active_games),
        games_by_provider={provider: tuple(games) for provider, games in grouped.items()},
        provider_weights=provider_weights,
        ladders=dict(DEFAULT_LADDERS),
        feed_params=dict(settings),
        last_refresh=time.time(),
    )


def _load_from_storage():
    from feed_be import storage
    return storage.get_all_game_configs(), storage.get_all_feed_settings()


class GameConfigCache:
    """Process-wide snapshot of the feed configuration"""

    def __init__(self, loader: Optional[Callable] = None):
        self._loader = loader or _load_from_storage
        self._config: Optional[CachedConfig] = None
        # Shared with the feed generator so a refresh never interleaves with a tick
        self.lock = threading.RLock()

    def refresh(self) -> CachedConfig:
        """Reload from storage. Callers serialize overlapping refreshes; the last one wins."""
        game_rows, settings = self._loader()
        snapshot = build_snapshot(game_rows, settings)
        with self.lock:
            self._config = snapshot
        logger.info(
            f"Game config cache refreshed: {len(snapshot.games)} active games, "
            f"providers={[p for p, _ in snapshot.provider_weights]}"
        )
        return snapshot

    def invalidate(self):
        with self.lock:
            self._config = None

    def is_initialized(self) -> bool:
        return self._config is not None

    def get_config(self) -> CachedConfig:
        config = self._config
        if config is None:
            raise ConfigNotInitializedException()
        return config

    def get_active_games(self) -> Dict[str, Tuple[GameDefinition, ...]]:
        return self.get_config().games_by_provider

    def get_provider_weights(self) -> Tuple[Tuple[str, int], ...]:
        return self.get_config().provider_weights

    def get_ladder(self, game: GameDefinition) -> Tuple[float, ...]:
        """
        Custom ladder when set, otherwise the ladder named by the game's ladder type.
        Unknown types (including 'custom' without values) use the provider's ladder,
        and providers without one use the pragmatic ladder.
        """
        if game.custom_ladder:
            return game.custom_ladder
        ladders = self.get_config().ladders
        return ladders.get(game.ladder_type) or ladders.get(game.provider) or ladders['pragmatic']

    @staticmethod
    def is_ladder_game(game: GameDefinition) -> bool:
        return game.ladder_type != 'default' or bool(game.custom_ladder)


def initialize_game_configs() -> bool:
    """Seed the default catalog and provider weights into empty storage. Returns True when seeded."""
    from feed_be import storage

    if storage.get_all_game_configs():
        return False

    for game_id, name, provider in DEFAULT_GAMES:
        storage.upsert_game_config({
            'game_id': game_id,
            'name': name,
            'provider': provider,
            'image_path': f"/images/games/{game_id}.png",
            'is_active': True,
            'ladder_type': 'pragmatic' if name in PRAGMATIC_LADDER_GAMES else 'default',
            'custom_ladder': None,
        })
    for provider, weight in DEFAULT_PROVIDER_WEIGHTS.items():
        storage.set_feed_setting(f"provider_weight_{provider}", str(weight))

    logger.info(f"Seeded {len(DEFAULT_GAMES)} default games")
    return True


# Global instance
game_config_cache = GameConfigCache()


def get_game_config_cache():
    """Get the global config cache instance"""
    return game_config_cache

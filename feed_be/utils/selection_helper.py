"""
Provider, game and player selection for the synthetic feed.

Randomness comes from an injected random.Random so every draw is reproducible
under a fixed seed. The day-seeded jitter is a sine hash:
stable within a calendar day, different across days, not cryptographic.
"""

import math
from datetime import date
from typing import List, Optional, Sequence

from feed_be.utils.game_config_cache import CachedConfig, GameDefinition
from feed_be.utils.generator_state import GeneratorState

PROVIDER_STREAK_LIMIT = 4
RECENT_GAME_PENALTY = 0.7
JITTER_MIN = 0.8
JITTER_SPAN = 0.4

RETURNING_PLAYER_CHANCE = 0.3
RETURNING_PLAYER_WINDOW = 6
USERNAME_POOL_SIZE = 400

USERNAME_PREFIXES = (
    'Lucky', 'Casino', 'Golden', 'Royal', 'Mega', 'Spin', 'Jackpot', 'Ace', 'Diamond', 'Neon',
    'Turbo', 'Star', 'Bet', 'Slot', 'High', 'Big', 'Gold', 'Wild', 'Crypto', 'Night',
    'Silver', 'Red', 'Black', 'Iron', 'Dark', 'Storm', 'Fire', 'Ice', 'Magic', 'Zeus',
)
USERNAME_SUFFIXES = (
    'King', 'Master', 'Hunter', 'Rider', 'Roller', 'Wolf', 'Queen', 'Hawk', 'Fox', 'Ace',
    'Player', 'Gambler', 'Shark', 'Tiger', 'Winner', 'Hands', 'Boss', 'Lion', 'Ninja', 'Pro',
)


def day_hash(day: date) -> int:
    """31-multiplier string hash of the ISO date, folded to a non-negative 32-bit int."""
    h = 0
    for ch in day.isoformat():
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def seeded_random(seed: float) -> float:
    """Sine-based pseudo random number in [0, 1)."""
    x = math.sin(seed) * 10000
    r = x - math.floor(x)
    return r if r < 1.0 else 0.0


def day_jitter(day_seed: int, name_length: int, event_counter: int) -> float:
    return JITTER_MIN + JITTER_SPAN * seeded_random(day_seed + name_length * 97 + event_counter * 13)


def weighted_pick(candidates: Sequence, weights: Sequence[float], rng, exclude=None):
    """
    Weighted random choice.

    Candidates in `exclude` are dropped unless that would leave nothing, in which
    case the unfiltered set is used. A zero total weight falls back to a uniform
    choice. Ties resolve to the first candidate whose cumulative weight exceeds the roll.
    """
    if not candidates:
        return None

    pairs = list(zip(candidates, weights))
    if exclude:
        filtered = [(c, w) for c, w in pairs if c not in exclude]
        if filtered:
            pairs = filtered

    total = sum(max(0.0, float(w)) for _, w in pairs)
    if total <= 0:
        return rng.choice([c for c, _ in pairs])

    roll = rng.random() * total
    cumulative = 0.0
    last_positive = None
    for candidate, weight in pairs:
        weight = max(0.0, float(weight))
        if weight <= 0:
            continue
        cumulative += weight
        last_positive = candidate
        if roll < cumulative:
            return candidate
    # Float rounding can leave roll == total
    return last_positive


def provider_streak(state: GeneratorState) -> Optional[str]:
    """The provider picked for each of the last PROVIDER_STREAK_LIMIT picks, if any."""
    recent = list(state.recent_providers)
    if len(recent) < PROVIDER_STREAK_LIMIT:
        return None
    tail = recent[-PROVIDER_STREAK_LIMIT:]
    return tail[0] if len(set(tail)) == 1 else None


def pick_provider(state: GeneratorState, config: CachedConfig, rng) -> Optional[str]:
    if not config.provider_weights:
        return None
    providers = [provider for provider, _ in config.provider_weights]
    weights = [weight for _, weight in config.provider_weights]
    streak = provider_streak(state)
    return weighted_pick(providers, weights, rng, exclude={streak} if streak else None)


def game_weights(state: GeneratorState, pool: Sequence[GameDefinition], day_seed: int) -> List[float]:
    recent_window = set(state.recent_games_window)
    recent = list(state.recent_games)
    repeated_twice = recent[-1] if len(recent) >= 2 and recent[-1] == recent[-2] else None

    weights = []
    for game in pool:
        weight = 1.0
        if game.game_id in recent_window:
            weight *= RECENT_GAME_PENALTY
        weight *= day_jitter(day_seed, len(game.name), state.event_counter)
        if repeated_twice is not None and game.game_id == repeated_twice:
            weight = 0.0
        weights.append(weight)
    return weights


def record_pick(state: GeneratorState, game: GameDefinition):
    state.recent_games.append(game.game_id)
    state.recent_providers.append(game.provider)
    state.recent_games_window.append(game.game_id)
    state.event_counter += 1


def pick_game(state: GeneratorState, config: CachedConfig, rng, day_seed: int) -> Optional[GameDefinition]:
    """Pick a provider, then a game inside it, and record the pick."""
    if not config.games:
        return None

    provider = pick_provider(state, config, rng)
    pool = config.games_by_provider.get(provider) or ()
    if not pool:
        game = config.games[0]
    else:
        weights = game_weights(state, pool, day_seed)
        if sum(weights) <= 0 and len(config.provider_weights) > 1:
            # Single-game provider already shown twice in a row: move to another provider
            providers = [p for p, _ in config.provider_weights]
            other = weighted_pick(providers, [w for _, w in config.provider_weights], rng, exclude={provider})
            pool = config.games_by_provider.get(other) or pool
            weights = game_weights(state, pool, day_seed)
        if sum(weights) <= 0:
            weights = [1.0] * len(pool)
        game = weighted_pick(list(pool), weights, rng)

    record_pick(state, game)
    return game


def build_username_pool(rng, size: int = USERNAME_POOL_SIZE) -> List[str]:
    pool: List[str] = []
    seen = set()
    attempts = 0
    while len(pool) < size and attempts < size * 20:
        attempts += 1
        name = rng.choice(USERNAME_PREFIXES) + rng.choice(USERNAME_SUFFIXES)
        style = rng.random()
        if style < 0.45:
            name += str(rng.randint(1, 999))
        elif style < 0.6:
            name += str(rng.choice((7, 77, 777, 99, 2024, 88)))
        if name not in seen:
            seen.add(name)
            pool.append(name)
    return pool


def pick_username(state: GeneratorState, pool: Sequence[str], rng) -> str:
    """
    Returning players (from the last few picks, never the previous one) keep
    sessions visible; everyone else comes from outside the recent window.
    """
    recent = list(state.recent_users)
    if recent:
        returning = [u for u in recent[-RETURNING_PLAYER_WINDOW:] if u != recent[-1]]
        if returning and rng.random() < RETURNING_PLAYER_CHANCE:
            return rng.choice(returning)

    recent_set = set(recent)
    fresh = [u for u in pool if u not in recent_set]
    return rng.choice(fresh or list(pool))

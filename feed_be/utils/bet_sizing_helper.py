"""
Bet sizing for the synthetic feed.

Natural sizing draws from percentile tiers and rounds the way people pick
stakes; ladder sizing picks a rung of the game's discrete bet ladder. Both keep
per-player continuity so a returning player's stake drifts instead of jumping.
"""

from collections import namedtuple
from typing import Sequence

from feed_be.utils.generator_state import GeneratorState

MIN_BET = 5

BetTier = namedtuple('BetTier', ['name', 'ceiling', 'low', 'high', 'step'])

# ceiling: cumulative percentile upper bound of the tier
NATURAL_TIERS = (
    BetTier('micro', 70.0, 5, 250, 25),
    BetTier('small', 90.0, 250, 1500, 50),
    BetTier('mid', 97.0, 1500, 7500, 250),
    BetTier('high', 99.5, 7500, 25000, 1000),
    BetTier('whale', 100.0, 25000, 120000, 1000),
)
TIERS_BY_NAME = {tier.name: tier for tier in NATURAL_TIERS}

NICE_NUMBERS = (20, 25, 30, 40, 50, 60, 75, 80, 90, 100)
ROUNDING_JITTER_CHANCE = 0.15
WHALE_COOLDOWN_RANGE = (20, 40)

NATURAL_BLEND_LAST = 0.4
NATURAL_DRIFT_RANGE = (0.7, 1.3)

# (cumulative percentile, lowest rung value, exclusive upper rung value)
LADDER_BANDS = (
    (70.0, 5, 200),
    (90.0, 200, 1000),
    (100.0, 1000, float('inf')),
)
LADDER_RECENT_WINDOW = 6
HIGH_RUNG_VALUE = 1000


def draw_natural_tier(state: GeneratorState, rng) -> BetTier:
    """Percentile tier draw. The whale tier is gated by the whale cooldown and falls back to mid."""
    roll = rng.random() * 100
    tier = NATURAL_TIERS[-1]
    for candidate in NATURAL_TIERS:
        if roll < candidate.ceiling:
            tier = candidate
            break

    if tier.name == 'whale':
        if state.whale_cooldown > 0:
            return TIERS_BY_NAME['mid']
        state.whale_cooldown = rng.randint(*WHALE_COOLDOWN_RANGE)
    return tier


def round_natural(value: float, step: int, rng) -> int:
    if value < 20:
        return int(round(value))
    if value <= 100:
        return min(NICE_NUMBERS, key=lambda n: abs(n - value))
    amount = max(step, int(round(value / step)) * step)
    if rng.random() < ROUNDING_JITTER_CHANCE:
        amount += rng.choice((-1, 1)) * (step // 5)
    return amount


def size_natural_bet(state: GeneratorState, username: str, rng) -> int:
    tier = draw_natural_tier(state, rng)
    fresh = round_natural(rng.uniform(tier.low, tier.high), tier.step, rng)

    last_bet = state.user_last_bet.get(username)
    if last_bet is not None:
        drifted = last_bet * rng.uniform(*NATURAL_DRIFT_RANGE)
        amount = int(round(NATURAL_BLEND_LAST * drifted + (1 - NATURAL_BLEND_LAST) * fresh))
    else:
        amount = fresh

    amount = max(MIN_BET, amount)
    state.remember_bet(username, amount)
    return amount


def playable_floor_index(ladder: Sequence[float]) -> int:
    """First rung at or above MIN_BET (last rung when none qualifies)."""
    for index, value in enumerate(ladder):
        if value >= MIN_BET:
            return index
    return len(ladder) - 1


def draw_ladder_index(ladder: Sequence[float], rng) -> int:
    floor_index = playable_floor_index(ladder)
    roll = rng.random() * 100
    low, high = LADDER_BANDS[-1][1:]
    for ceiling, band_low, band_high in LADDER_BANDS:
        if roll < ceiling:
            low, high = band_low, band_high
            break

    band = [i for i, value in enumerate(ladder) if low <= value < high]
    if not band:
        band = list(range(floor_index, len(ladder)))
    return rng.choice(band)


def draw_ladder_step(rng, at_high_rung: bool) -> int:
    """0 half the time, +-1 30%, otherwise +-2/+-3 (+-1 on rungs of 1000 and up)."""
    roll = rng.random()
    if roll < 0.5:
        return 0
    if roll < 0.8 or at_high_rung:
        return rng.choice((-1, 1))
    return rng.choice((-3, -2, 2, 3))


def size_ladder_bet(state: GeneratorState, username: str, ladder: Sequence[float], rng):
    floor_index = playable_floor_index(ladder)
    top_index = len(ladder) - 1

    last_index = state.user_last_ladder_index.get(username)
    if last_index is not None and state.appeared_recently(username, LADDER_RECENT_WINDOW):
        current = min(max(last_index, floor_index), top_index)
        step = draw_ladder_step(rng, ladder[current] >= HIGH_RUNG_VALUE)
        index = min(max(current + step, floor_index), top_index)
    else:
        index = draw_ladder_index(ladder, rng)

    amount = max(MIN_BET, ladder[index])
    state.remember_bet(username, amount, ladder_index=index)
    return amount

"""
Win/loss outcomes, visible-win pacing and duplicate suppression for the synthetic feed.
"""

import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

from feed_be.utils.generator_state import GeneratorState
from feed_be.utils.selection_helper import seeded_random

LOSS_CHANCE = 0.5
# Cumulative roll bounds for the win tiers, the remainder up to 1.0 is mega
SMALL_WIN_BOUND = 0.85
MEDIUM_WIN_BOUND = 0.97
LARGE_WIN_BOUND = 0.995

SMALL_RANGE = (1.2, 4.0)
MEDIUM_RANGE = (4.0, 20.0)
LARGE_RANGE = (20.0, 100.0)
LARGE_RANGE_BIG_BET = (20.0, 50.0)
MEGA_RANGE = (100.0, 1000.0)
MEGA_RANGE_BIG_BET = (100.0, 200.0)
BIG_BET_THRESHOLD = 2500
MEGA_WIN_COOLDOWN = 80

FORCED_WIN_RANGE = (5.0, 20.0)
VISIBLE_WIN_MULTIPLIER = 5.0
VISIBLE_WIN_THRESHOLD_RANGE = (15, 25)

DUPLICATE_HARD_WINDOW = 60
DUPLICATE_SOFT_RETRY_CHANCE = 0.4
MAX_OUTCOME_ATTEMPTS = 3


@dataclass(frozen=True)
class Outcome:
    type: str
    multiplier: Optional[float] = None
    tier: Optional[str] = None

    @property
    def multiplier_label(self) -> Optional[str]:
        if self.multiplier is None:
            return None
        return f"{self.multiplier:.1f}x"

    @property
    def is_visible_win(self) -> bool:
        return self.type == 'WIN' and self.multiplier is not None and self.multiplier >= VISIBLE_WIN_MULTIPLIER


def format_amount(amount) -> str:
    return str(Decimal(str(amount)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))


def visible_win_threshold(day_seed: int, cycle: int) -> int:
    """Ticks without a visible win before one is forced; stable per (day, cycle)."""
    low, high = VISIBLE_WIN_THRESHOLD_RANGE
    return low + int(seeded_random(day_seed + cycle * 7919) * (high - low + 1))


def _draw(rng, bounds: Tuple[float, float]) -> float:
    return round(rng.uniform(*bounds), 1)


def generate_outcome(bet_amount, force_visible_win: bool, state: GeneratorState, rng) -> Outcome:
    """
    Draw WIN/LOSS and a multiplier. Reads the mega-win cooldown but does not
    change it; the caller commits the cooldown for the accepted outcome.
    """
    if force_visible_win:
        low, high = FORCED_WIN_RANGE
        # Truncate so the label never reaches the upper bound
        multiplier = math.floor(rng.uniform(low, high) * 10) / 10
        return Outcome('WIN', max(low, multiplier), 'forced')

    roll = rng.random()
    if roll < LOSS_CHANCE:
        return Outcome('LOSS')

    big_bet = float(bet_amount) >= BIG_BET_THRESHOLD
    if roll < SMALL_WIN_BOUND:
        return Outcome('WIN', _draw(rng, SMALL_RANGE), 'small')
    if roll < MEDIUM_WIN_BOUND:
        return Outcome('WIN', _draw(rng, MEDIUM_RANGE), 'medium')
    if roll < LARGE_WIN_BOUND or state.mega_win_cooldown > 0:
        return Outcome('WIN', _draw(rng, LARGE_RANGE_BIG_BET if big_bet else LARGE_RANGE), 'large')
    return Outcome('WIN', _draw(rng, MEGA_RANGE_BIG_BET if big_bet else MEGA_RANGE), 'mega')


def combo_key(game_id: str, bet_amount, outcome: Outcome) -> Tuple[str, str, Optional[str]]:
    return game_id, format_amount(bet_amount), outcome.multiplier_label


def should_redraw(key, state: GeneratorState, rng) -> bool:
    combos = list(state.recent_combos)
    if key in combos[-DUPLICATE_HARD_WINDOW:]:
        return True
    if key in combos:
        return rng.random() < DUPLICATE_SOFT_RETRY_CHANCE
    return False


def resolve_outcome(game_id: str, bet_amount, force_visible_win: bool, state: GeneratorState, rng):
    """
    Draw an outcome, redrawing WINs that repeat a recent (game, bet, multiplier)
    combination. Gives up after MAX_OUTCOME_ATTEMPTS and keeps the last draw.

    Returns (outcome, attempts).
    """
    outcome = generate_outcome(bet_amount, force_visible_win, state, rng)
    attempts = 1
    while (outcome.type == 'WIN' and attempts < MAX_OUTCOME_ATTEMPTS
           and should_redraw(combo_key(game_id, bet_amount, outcome), state, rng)):
        # Forced wins stay forced so pacing still delivers a visible win
        outcome = generate_outcome(bet_amount, force_visible_win, state, rng)
        attempts += 1
    return outcome, attempts

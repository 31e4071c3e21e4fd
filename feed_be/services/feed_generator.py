"""
Synthetic Feed Generator
Produces one realistic-looking casino transaction per tick.

A tick picks a player and a game, sizes the bet and draws the outcome,
then commits the pacing state and counts down the cooldowns. The whole
tick runs under the config cache lock so a refresh never lands half way
through.
"""

import logging
import random
from datetime import date
from typing import Any, Dict, Optional

from feed_be.config_validator import DEFAULT_FEED_CURRENCY
from feed_be.utils.game_config_cache import GameConfigCache, get_game_config_cache
from feed_be.utils.generator_state import GeneratorState
from feed_be.utils import bet_sizing_helper, outcome_helper, selection_helper

logger = logging.getLogger(__name__)


class FeedGenerator:
    """Stateful transaction generator fed by the game config cache"""

    def __init__(self, config_cache: Optional[GameConfigCache] = None, rng: Optional[random.Random] = None,
                 currency: str = DEFAULT_FEED_CURRENCY, today=None):
        self.config_cache = config_cache or get_game_config_cache()
        self.rng = rng or random.Random()
        self.currency = currency
        # Injectable clock for the day seed
        self._today = today or date.today
        self.state = GeneratorState()
        self.username_pool = selection_helper.build_username_pool(self.rng)
        self.lock = self.config_cache.lock
        self._day_seed_for = None
        self._day_seed = 0

    def day_seed(self) -> int:
        today = self._today()
        if today != self._day_seed_for:
            self._day_seed_for = today
            self._day_seed = selection_helper.day_hash(today)
            logger.debug(f"Feed day seed for {today.isoformat()}: {self._day_seed}")
        return self._day_seed

    def reset(self):
        """Forget all pacing and history state."""
        with self.lock:
            self.state = GeneratorState()

    def _decay(self, whale_running: bool, mega_running: bool, visible_win: bool = False):
        """
        Close out a tick. Only cooldowns that were already running when the
        tick started count down, so a cooldown of N blocks the next N ticks.
        """
        state = self.state
        if whale_running and state.whale_cooldown > 0:
            state.whale_cooldown -= 1
        if mega_running and state.mega_win_cooldown > 0:
            state.mega_win_cooldown -= 1
        if visible_win:
            state.events_since_visible_win = 0
        else:
            state.events_since_visible_win += 1

    def _ensure_threshold(self, day_seed: int):
        if self.state.visible_win_threshold <= 0:
            self.state.visible_win_threshold = outcome_helper.visible_win_threshold(
                day_seed, self.state.visible_win_cycle)

    def _size_bet(self, username: str, game):
        if self.config_cache.is_ladder_game(game):
            ladder = self.config_cache.get_ladder(game)
            return bet_sizing_helper.size_ladder_bet(self.state, username, ladder, self.rng)
        return bet_sizing_helper.size_natural_bet(self.state, username, self.rng)

    def _commit(self, username: str, game, amount, outcome, day_seed: int):
        state = self.state
        if outcome.tier == 'mega':
            state.mega_win_cooldown = outcome_helper.MEGA_WIN_COOLDOWN
        if outcome.is_visible_win:
            state.visible_win_cycle += 1
            state.visible_win_threshold = outcome_helper.visible_win_threshold(day_seed, state.visible_win_cycle)
        state.recent_combos.append(outcome_helper.combo_key(game.game_id, amount, outcome))
        state.recent_users.append(username)

    def tick(self) -> Optional[Dict[str, Any]]:
        """
        Generate one transaction.

        Returns the payload dict, or None when no game is active.
        Raises ConfigNotInitializedException before the first cache refresh.
        """
        with self.lock:
            whale_running = self.state.whale_cooldown > 0
            mega_running = self.state.mega_win_cooldown > 0
            visible_win = False
            try:
                config = self.config_cache.get_config()
                if not config.games:
                    logger.debug("No active games, skipping feed tick")
                    return None

                day_seed = self.day_seed()
                self._ensure_threshold(day_seed)
                # Counter holds completed ticks without a visible win
                force_visible_win = self.state.events_since_visible_win >= self.state.visible_win_threshold

                username = selection_helper.pick_username(self.state, self.username_pool, self.rng)
                game = selection_helper.pick_game(self.state, config, self.rng, day_seed)
                amount = self._size_bet(username, game)
                outcome, attempts = outcome_helper.resolve_outcome(
                    game.game_id, amount, force_visible_win, self.state, self.rng)
                if attempts > 1:
                    logger.debug(f"Outcome redrawn {attempts - 1} time(s) for {game.game_id}")
                self._commit(username, game, amount, outcome, day_seed)
                visible_win = outcome.is_visible_win

                payload = {
                    'username': username,
                    'amount': outcome_helper.format_amount(amount),
                    'currency': self.currency,
                    'type': outcome.type,
                    'game': game.name,
                }
                if outcome.multiplier_label is not None:
                    payload['multiplier'] = outcome.multiplier_label
                return payload
            finally:
                self._decay(whale_running, mega_running, visible_win)

    def status(self) -> Dict[str, Any]:
        with self.lock:
            state = self.state
            return {
                'events_generated': state.event_counter,
                'whale_cooldown': state.whale_cooldown,
                'mega_win_cooldown': state.mega_win_cooldown,
                'events_since_visible_win': state.events_since_visible_win,
                'visible_win_threshold': state.visible_win_threshold,
                'config_initialized': self.config_cache.is_initialized(),
            }


# Global instance
feed_generator = FeedGenerator()


def get_feed_generator():
    """Get the global feed generator instance"""
    return feed_generator

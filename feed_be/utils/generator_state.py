from collections import OrderedDict, deque
from dataclasses import dataclass, field
from typing import Deque, Optional, Tuple

RECENT_USERS_WINDOW = 10
RECENT_PICKS_WINDOW = 5
RECENT_GAMES_WINDOW = 20
RECENT_COMBOS_WINDOW = 100
# Per-user bet memory is bounded; least recently seen players are forgotten first
USER_HISTORY_LIMIT = 1000


@dataclass
class GeneratorState:
    """
    Pacing and history state of the feed generator.

    Ephemeral: rebuilt empty on restart and mutated only from FeedGenerator.tick().
    Cooldowns hold the number of ticks left before the gated band reopens.
    """
    whale_cooldown: int = 0
    mega_win_cooldown: int = 0
    events_since_visible_win: int = 0
    visible_win_threshold: int = 0
    visible_win_cycle: int = 0
    event_counter: int = 0
    recent_users: Deque[str] = field(default_factory=lambda: deque(maxlen=RECENT_USERS_WINDOW))
    recent_games: Deque[str] = field(default_factory=lambda: deque(maxlen=RECENT_PICKS_WINDOW))
    recent_providers: Deque[str] = field(default_factory=lambda: deque(maxlen=RECENT_PICKS_WINDOW))
    recent_games_window: Deque[str] = field(default_factory=lambda: deque(maxlen=RECENT_GAMES_WINDOW))
    recent_combos: Deque[Tuple[str, str, Optional[str]]] = field(
        default_factory=lambda: deque(maxlen=RECENT_COMBOS_WINDOW))
    user_last_bet: "OrderedDict[str, float]" = field(default_factory=OrderedDict)
    user_last_ladder_index: "OrderedDict[str, int]" = field(default_factory=OrderedDict)

    def remember_bet(self, username: str, amount, ladder_index: Optional[int] = None):
        self.user_last_bet[username] = amount
        self.user_last_bet.move_to_end(username)
        if ladder_index is not None:
            self.user_last_ladder_index[username] = ladder_index
            self.user_last_ladder_index.move_to_end(username)
        while len(self.user_last_bet) > USER_HISTORY_LIMIT:
            self.user_last_bet.popitem(last=False)
        while len(self.user_last_ladder_index) > USER_HISTORY_LIMIT:
            self.user_last_ladder_index.popitem(last=False)

    def appeared_recently(self, username: str, window: int) -> bool:
        if window <= 0:
            return False
        return username in list(self.recent_users)[-window:]

import random
import unittest

from feed_be.utils.bet_sizing_helper import (
    MIN_BET, draw_ladder_step, draw_natural_tier, playable_floor_index, round_natural,
    size_ladder_bet, size_natural_bet,
)
from feed_be.utils.game_config_cache import DEFAULT_PRAGMATIC_LADDER
from feed_be.utils.generator_state import GeneratorState
from feed_be.utils.outcome_helper import format_amount

TEST_LADDER = (5, 10, 25, 50, 100, 250, 500, 1000)


class FixedRandom(random.Random):

    def __init__(self, value):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


class TestNaturalSizing(unittest.TestCase):

    def test_round_natural(self):
        rng = FixedRandom(0.5)
        self.assertEqual(round_natural(17.4, 25, rng), 17)
        self.assertEqual(round_natural(47, 25, rng), 50)
        self.assertEqual(round_natural(72, 25, rng), 75)
        self.assertEqual(round_natural(1234, 50, rng), 1250)

    def test_round_natural_nudge(self):
        # 0.1 is below the jitter chance so the amount moves by a fifth of the step
        self.assertIn(round_natural(1234, 50, FixedRandom(0.1)), (1240, 1260))

    def test_amounts_are_at_least_min_bet(self):
        state = GeneratorState()
        rng = random.Random(41)
        for i in range(2000):
            username = f"player{i % 50}"
            amount = size_natural_bet(state, username, rng)
            self.assertGreaterEqual(amount, MIN_BET)
            self.assertRegex(format_amount(amount), r'^\d+\.\d{2}$')
            state.recent_users.append(username)

    def test_whale_gated_by_cooldown(self):
        state = GeneratorState()
        rng = FixedRandom(0.999)
        tier = draw_natural_tier(state, rng)
        self.assertEqual(tier.name, 'whale')
        self.assertGreaterEqual(state.whale_cooldown, 20)
        self.assertLessEqual(state.whale_cooldown, 40)

        self.assertEqual(draw_natural_tier(state, rng).name, 'mid')

    def test_whale_band_reopens_after_cooldown(self):
        state = GeneratorState(whale_cooldown=0)
        self.assertEqual(draw_natural_tier(state, FixedRandom(0.999)).name, 'whale')

    def test_returning_player_drifts(self):
        state = GeneratorState()
        state.remember_bet('regular', 1000)
        rng = random.Random(43)
        amounts = [size_natural_bet(GeneratorState(user_last_bet=state.user_last_bet.copy()), 'regular', rng)
                   for _ in range(200)]
        # 40% of the blend comes from the previous stake
        self.assertTrue(all(amount >= 0.4 * 0.7 * 1000 - 1 for amount in amounts))


class TestLadderSizing(unittest.TestCase):

    def test_floor_index_skips_sub_minimum_rungs(self):
        self.assertEqual(playable_floor_index(TEST_LADDER), 0)
        self.assertEqual(DEFAULT_PRAGMATIC_LADDER[playable_floor_index(DEFAULT_PRAGMATIC_LADDER)], 5)

    def test_amounts_are_ladder_rungs(self):
        state = GeneratorState()
        rng = random.Random(47)
        users = [f"user{i}" for i in range(8)]
        for i in range(1000):
            username = rng.choice(users)
            amount = size_ladder_bet(state, username, TEST_LADDER, rng)
            self.assertIn(amount, TEST_LADDER)
            state.recent_users.append(username)

    def test_pragmatic_ladder_never_below_min_bet(self):
        state = GeneratorState()
        rng = random.Random(53)
        for i in range(1000):
            username = f"user{i % 5}"
            amount = size_ladder_bet(state, username, DEFAULT_PRAGMATIC_LADDER, rng)
            self.assertIn(amount, DEFAULT_PRAGMATIC_LADDER)
            self.assertGreaterEqual(amount, MIN_BET)
            state.recent_users.append(username)

    def test_recent_player_steps_at_most_three_rungs(self):
        rng = random.Random(59)
        for _ in range(300):
            state = GeneratorState()
            state.remember_bet('regular', 100, ladder_index=4)
            state.recent_users.append('regular')
            amount = size_ladder_bet(state, 'regular', TEST_LADDER, rng)
            self.assertLessEqual(abs(TEST_LADDER.index(amount) - 4), 3)

    def test_high_rungs_step_by_one(self):
        rng = random.Random(61)
        for _ in range(300):
            self.assertIn(draw_ladder_step(rng, at_high_rung=True), (-1, 0, 1))

    def test_stale_player_redraws(self):
        state = GeneratorState()
        state.remember_bet('ghost', 1000, ladder_index=7)
        state.recent_users.extend(['ghost'] + [f"u{i}" for i in range(8)])
        # 'ghost' is outside the last six players, so the band draw applies: 0.1 -> [5, 200)
        amount = size_ladder_bet(state, 'ghost', TEST_LADDER, FixedRandom(0.1))
        self.assertLess(amount, 200)


if __name__ == '__main__':
    unittest.main()

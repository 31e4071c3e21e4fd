import random
import unittest
from datetime import date

from feed_be.utils.game_config_cache import build_snapshot
from feed_be.utils.generator_state import GeneratorState
from feed_be.utils.selection_helper import (
    build_username_pool, day_hash, day_jitter, pick_game, pick_provider, pick_username,
    provider_streak, seeded_random, weighted_pick,
)


class FixedRandom(random.Random):
    """random() always returns the same value."""

    def __init__(self, value):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


def _rows(entries):
    return [{'game_id': game_id, 'name': game_id.title(), 'provider': provider, 'is_active': True,
             'ladder_type': 'default', 'custom_ladder': None} for game_id, provider in entries]


class TestWeightedPick(unittest.TestCase):

    def test_first_cumulative_bucket_wins(self):
        candidates, weights = ['a', 'b', 'c'], [1, 1, 2]
        self.assertEqual(weighted_pick(candidates, weights, FixedRandom(0.0)), 'a')
        self.assertEqual(weighted_pick(candidates, weights, FixedRandom(0.49)), 'b')
        # roll 2.0 sits on the a+b boundary and belongs to c
        self.assertEqual(weighted_pick(candidates, weights, FixedRandom(0.5)), 'c')

    def test_zero_weight_never_picked(self):
        rng = random.Random(3)
        picks = {weighted_pick(['a', 'b'], [0, 5], rng) for _ in range(200)}
        self.assertEqual(picks, {'b'})

    def test_all_zero_weights_fall_back_to_uniform(self):
        rng = random.Random(5)
        picks = {weighted_pick(['a', 'b', 'c'], [0, 0, 0], rng) for _ in range(200)}
        self.assertEqual(picks, {'a', 'b', 'c'})

    def test_exclude(self):
        rng = random.Random(7)
        picks = {weighted_pick(['a', 'b'], [100, 1], rng, exclude={'a'}) for _ in range(50)}
        self.assertEqual(picks, {'b'})

    def test_exclude_everything_uses_full_set(self):
        self.assertEqual(weighted_pick(['a'], [1], FixedRandom(0.3), exclude={'a'}), 'a')

    def test_empty(self):
        self.assertIsNone(weighted_pick([], [], random.Random()))


class TestDaySeed(unittest.TestCase):

    def test_day_hash_is_stable(self):
        self.assertEqual(day_hash(date(2024, 3, 1)), day_hash(date(2024, 3, 1)))
        self.assertNotEqual(day_hash(date(2024, 3, 1)), day_hash(date(2024, 3, 2)))
        self.assertGreaterEqual(day_hash(date(2024, 3, 1)), 0)

    def test_seeded_random_range(self):
        for seed in range(500):
            value = seeded_random(seed * 7.3)
            self.assertGreaterEqual(value, 0.0)
            self.assertLess(value, 1.0)

    def test_day_jitter_range(self):
        seed = day_hash(date(2024, 3, 1))
        for counter in range(200):
            jitter = day_jitter(seed, 12, counter)
            self.assertGreaterEqual(jitter, 0.8)
            self.assertLess(jitter, 1.2)


class TestProviderSelection(unittest.TestCase):

    def setUp(self):
        self.config = build_snapshot(_rows([
            ('gates', 'pragmatic'), ('bonanza', 'pragmatic'), ('sugar', 'pragmatic'),
            ('book', 'playngo'), ('starburst', 'netent'),
        ]), {'provider_weight_pragmatic': '95', 'provider_weight_playngo': '3', 'provider_weight_netent': '2'})

    def test_streak_detection(self):
        state = GeneratorState()
        state.recent_providers.extend(['pragmatic'] * 3)
        self.assertIsNone(provider_streak(state))
        state.recent_providers.append('pragmatic')
        self.assertEqual(provider_streak(state), 'pragmatic')

    def test_streak_provider_excluded(self):
        state = GeneratorState()
        state.recent_providers.extend(['pragmatic'] * 4)
        rng = random.Random(11)
        for _ in range(200):
            self.assertNotEqual(pick_provider(state, self.config, rng), 'pragmatic')

    def test_never_five_in_a_row_from_one_provider(self):
        state = GeneratorState()
        rng = random.Random(13)
        seed = day_hash(date(2024, 5, 5))
        providers = [pick_game(state, self.config, rng, seed).provider for _ in range(1000)]
        for i in range(len(providers) - 4):
            self.assertGreater(len(set(providers[i:i + 5])), 1)


class TestGameSelection(unittest.TestCase):

    def test_no_triple_repeat_single_provider(self):
        config = build_snapshot(_rows([('gates', 'pragmatic'), ('bonanza', 'pragmatic'), ('sugar', 'pragmatic')]), {})
        state = GeneratorState()
        rng = random.Random(17)
        seed = day_hash(date(2024, 1, 1))
        picks = [pick_game(state, config, rng, seed).game_id for _ in range(500)]
        for i in range(len(picks) - 2):
            self.assertFalse(picks[i] == picks[i + 1] == picks[i + 2], f"triple at {i}")

    def test_single_game_provider_hands_over_after_two(self):
        config = build_snapshot(_rows([('book', 'playngo'), ('gates', 'pragmatic'), ('bonanza', 'pragmatic')]), {
            'provider_weight_playngo': '100', 'provider_weight_pragmatic': '1',
        })
        state = GeneratorState()
        rng = random.Random(19)
        seed = day_hash(date(2024, 1, 2))
        picks = [pick_game(state, config, rng, seed).game_id for _ in range(300)]
        for i in range(len(picks) - 2):
            self.assertFalse(picks[i] == picks[i + 1] == picks[i + 2], f"triple at {i}")

    def test_only_weighted_provider_with_games_always_wins(self):
        config = build_snapshot(_rows([('gates', 'pragmatic'), ('bonanza', 'pragmatic'), ('sugar', 'pragmatic')]), {
            'provider_weight_pragmatic': '100', 'provider_weight_playngo': '0',
            'provider_weight_netent': '0', 'provider_weight_other': '0',
        })
        state = GeneratorState()
        rng = random.Random(41)
        seed = day_hash(date(2024, 2, 2))
        providers = [pick_game(state, config, rng, seed).provider for _ in range(500)]
        self.assertEqual(set(providers), {'pragmatic'})
        # The streak rule kicked in and fell back to the full provider set
        self.assertEqual(provider_streak(state), 'pragmatic')

    def test_pick_records_history(self):
        config = build_snapshot(_rows([('gates', 'pragmatic')]), {})
        state = GeneratorState()
        game = pick_game(state, config, random.Random(1), 0)
        self.assertEqual(game.game_id, 'gates')
        self.assertEqual(list(state.recent_games), ['gates'])
        self.assertEqual(list(state.recent_providers), ['pragmatic'])
        self.assertEqual(state.event_counter, 1)

    def test_no_games(self):
        config = build_snapshot([], {})
        self.assertIsNone(pick_game(GeneratorState(), config, random.Random(1), 0))


class TestUsernames(unittest.TestCase):

    def test_pool_is_unique(self):
        pool = build_username_pool(random.Random(23), size=200)
        self.assertEqual(len(pool), len(set(pool)))
        self.assertGreater(len(pool), 100)

    def test_never_repeats_previous_player(self):
        pool = build_username_pool(random.Random(29), size=300)
        state = GeneratorState()
        rng = random.Random(31)
        previous = None
        for _ in range(1000):
            username = pick_username(state, pool, rng)
            self.assertNotEqual(username, previous)
            state.recent_users.append(username)
            previous = username

    def test_returning_players_come_from_recent_window(self):
        pool = build_username_pool(random.Random(37), size=300)
        state = GeneratorState()
        state.recent_users.extend(pool[:10])
        # 0.0 always takes the returning branch
        username = pick_username(state, pool, FixedRandom(0.0))
        self.assertIn(username, pool[4:9])


if __name__ == '__main__':
    unittest.main()

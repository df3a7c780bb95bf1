import unittest

from game import ScoreKeeper, new_session


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestScoreKeeper(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.session = new_session(2, 2, seed=1)
        self.scores = ScoreKeeper(clock=self.clock, difficulty="easy").attach(self.session)

    def test_given_no_interaction_when_querying_then_timer_not_running(self):
        self.assertEqual(self.scores.elapsed_seconds(), 0)
        self.assertIsNone(self.scores.start_time)

    def test_given_perfect_fast_game_when_scoring_then_all_bonuses(self):
        for pid in range(4):
            self.clock.now += 5
            self.session.place(pid, pid)
        self.clock.now += 100  # timer stopped at completion
        self.assertEqual(self.scores.elapsed_seconds(), 15)
        stats = self.scores.stats()
        self.assertEqual(stats["moves"], 4)
        self.assertEqual(stats["correctPlacements"], 4)
        self.assertEqual(stats["incorrectPlacements"], 0)
        self.assertEqual(stats["accuracy"], 1.0)
        # easy: base 1000, expected time 60 + 4*5 = 80, expected moves 6
        # 1000 + (80 - 15) * 2 + (6 - 4) + 1500
        self.assertEqual(self.scores.calculate_score(4), 1000 + 130 + 2 + 1500)
        self.assertEqual(self.scores.performance_rating(4), 100)

    def test_given_wrong_moves_and_hints_when_scoring_then_penalised(self):
        s = self.session
        s.place(0, 1)
        s.return_to_staging(0)
        s.place(1, 0)
        s.swap(0, 1)  # 0 staged <-> 1 placed: piece 0 goes home
        for _ in range(3):
            self.scores.record_hint()
        stats = self.scores.stats()
        self.assertEqual(stats["moves"], 4)
        self.assertEqual(stats["incorrectPlacements"], 2)
        self.assertEqual(stats["hints"], 3)
        perfect = ScoreKeeper(clock=self.clock, difficulty="easy")
        self.assertLess(self.scores.calculate_score(4), perfect.calculate_score(4) + 1500)
        self.assertLess(self.scores.performance_rating(4), 100)

    def test_given_reset_when_observed_then_stats_cleared(self):
        self.session.place(0, 1)
        self.session.reset()
        self.assertEqual(self.scores.moves, 0)
        self.assertIsNone(self.scores.start_time)

    def test_given_detached_keeper_when_playing_then_nothing_recorded(self):
        self.scores.detach()
        self.session.place(0, 0)
        self.assertEqual(self.scores.moves, 0)

    def test_given_game_finished_by_swap_when_scoring_then_swap_locks_count_as_correct(self):
        s = self.session
        s.place(0, 1)
        s.place(1, 0)
        self.assertTrue(s.swap(0, 1))
        s.place(2, 2)
        s.place(3, 3)
        self.assertTrue(s.is_complete)
        stats = self.scores.stats()
        self.assertEqual(stats["correctPlacements"], 4)
        self.assertEqual(stats["incorrectPlacements"], 2)
        self.assertEqual(stats["moves"], 5)

    def test_given_resumed_running_session_when_attached_then_clock_continues_from_saved_elapsed(self):
        s = new_session(2, 2, seed=1)
        s.restore({0: 0, 1: None, 2: None, 3: None}, has_started=True, move_count=1)
        keeper = ScoreKeeper(clock=self.clock, difficulty="easy")
        keeper.load_stats({"elapsedTime": 40, "moves": 1, "correctPlacements": 1}).attach(s)
        self.clock.now += 15000
        for pid in (1, 2, 3):
            s.place(pid, pid)
        self.clock.now += 50  # timer stopped at completion
        self.assertEqual(keeper.elapsed_seconds(), 15040)
        self.assertEqual(keeper.moves, 4)
        # far past the expected 80 s: no time bonus, only moves and perfect bonus
        self.assertEqual(keeper.calculate_score(4), 1000 + 2 + 1500)

    def test_given_resumed_session_without_saved_stats_when_attached_then_timer_starts(self):
        s = new_session(2, 2, seed=1)
        s.restore({0: 1, 1: None, 2: None, 3: None}, has_started=True, move_count=1)
        keeper = ScoreKeeper(clock=self.clock).attach(s)
        self.assertIsNotNone(keeper.start_time)
        self.clock.now += 25
        self.assertEqual(keeper.elapsed_seconds(), 25)

    def test_given_unknown_difficulty_when_scoring_then_medium_used(self):
        keeper = ScoreKeeper(clock=self.clock, difficulty="nightmare")
        medium = ScoreKeeper(clock=self.clock, difficulty="medium")
        self.assertEqual(keeper.calculate_score(4), medium.calculate_score(4))


if __name__ == "__main__":
    unittest.main(verbosity=2)

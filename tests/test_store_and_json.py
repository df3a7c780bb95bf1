import os
import sqlite3
import tempfile
import unittest

from game import (
    GridShape,
    ScoreKeeper,
    SessionPhase,
    db_delete_progress,
    db_load_progress,
    db_save_progress,
    new_session,
    resume_session,
    save_session,
    session_from_json,
    session_to_json,
)


class TestSessionJson(unittest.TestCase):
    def test_given_session_when_roundtrip_json_then_placements_and_pool_equal(self):
        s = new_session(3, 2, seed=11, edge_seed=4)
        s.place(0, 0)
        s.place(2, 5)
        sj = session_to_json(s)
        self.assertEqual(sj["grid"], {"rows": 3, "columns": 2})
        self.assertEqual(sj["locked"], [0])
        self.assertTrue(sj["hasStarted"])
        self.assertEqual(sj["moves"], 2)

        back = session_from_json(sj)
        self.assertEqual(back.board.snapshot(), s.board.snapshot())
        self.assertEqual(back.board.staging_order(), s.board.staging_order())
        self.assertEqual(back.edge_seed, 4)
        self.assertEqual(back.phase, SessionPhase.RUNNING)
        self.assertEqual(back.get_edges(3), s.get_edges(3))

    def test_given_tampered_lock_bits_when_decoding_then_locks_rederived(self):
        s = new_session(2, 2)
        sj = session_to_json(s)
        sj["pieces"] = [[0, 1], [1, 0], [2, 2], [3, None]]
        sj["locked"] = [0, 1, 2, 3]
        sj["complete"] = True
        sj["staging"] = [3]
        back = session_from_json(sj)
        self.assertEqual([p.locked for p in back.get_pieces()], [False, False, True, False])
        self.assertFalse(back.is_complete)


class TestProgressStore(unittest.TestCase):
    def test_given_progress_when_saved_then_loaded_without_lock_bits(self):
        with tempfile.TemporaryDirectory() as td:
            db_path = os.path.join(td, "jigsaw.db")
            grid = GridShape(2, 2)
            db_save_progress(db_path, "p1", grid, {0: 0, 1: 2, 2: None, 3: None}, [3, 2],
                             has_started=True, moves=3, seed=8, edge_seed=1)
            saved = db_load_progress(db_path, "p1")
            self.assertIsNotNone(saved)
            assert saved is not None
            self.assertEqual(saved.grid, grid)
            self.assertEqual(saved.placements, {0: 0, 1: 2, 2: None, 3: None})
            self.assertEqual(saved.staging, [3, 2])
            self.assertTrue(saved.has_started)
            self.assertEqual(saved.moves, 3)
            self.assertEqual(saved.seed, 8)
            self.assertIsNone(db_load_progress(db_path, "missing"))

    def test_given_session_when_saved_and_resumed_then_state_and_phase_restored(self):
        with tempfile.TemporaryDirectory() as td:
            db_path = os.path.join(td, "deep", "nest", "jigsaw.db")
            s = new_session(3, 3, seed=2)
            s.place(4, 4)
            s.place(0, 8)
            save_session(db_path, "game", s)

            r = resume_session(db_path, "game")
            self.assertIsNotNone(r)
            assert r is not None
            self.assertEqual(r.board.snapshot(), s.board.snapshot())
            self.assertEqual(r.board.staging_order(), s.board.staging_order())
            self.assertEqual(r.board.move_count, 2)
            self.assertEqual(r.phase, SessionPhase.RUNNING)
            self.assertTrue(r.get_pieces()[4].locked)

            self.assertTrue(db_delete_progress(db_path, "game"))
            self.assertIsNone(resume_session(db_path, "game"))
            self.assertFalse(db_delete_progress(db_path, "game"))

    def test_given_scored_session_when_saved_and_resumed_then_timer_and_stats_carry_over(self):
        now = [100.0]

        def clock():
            return now[0]

        with tempfile.TemporaryDirectory() as td:
            db_path = os.path.join(td, "jigsaw.db")
            s = new_session(2, 2, seed=3)
            scores = ScoreKeeper(clock=clock).attach(s)
            s.place(0, 0)
            now[0] = 130.0
            s.place(1, 2)
            save_session(db_path, "timed", s, scores)

            saved = db_load_progress(db_path, "timed")
            assert saved is not None
            self.assertEqual(saved.elapsed, 30)
            self.assertEqual(saved.stats["incorrectPlacements"], 1)

            now[0] = 5000.0
            resumed_scores = ScoreKeeper(clock=clock)
            r = resume_session(db_path, "timed", scores=resumed_scores)
            assert r is not None
            now[0] = 5010.0
            self.assertEqual(resumed_scores.elapsed_seconds(), 40)
            self.assertEqual(resumed_scores.correct_placements, 1)
            r.place(1, 1)
            self.assertEqual(resumed_scores.moves, 3)
            self.assertEqual(resumed_scores.correct_placements, 2)

    def test_given_save_written_before_timing_columns_when_loaded_then_defaults_used(self):
        with tempfile.TemporaryDirectory() as td:
            db_path = os.path.join(td, "old.db")
            conn = sqlite3.connect(db_path)
            conn.execute(
                "CREATE TABLE progress (puzzle_id TEXT PRIMARY KEY, rows INTEGER NOT NULL, "
                "columns INTEGER NOT NULL, placements TEXT NOT NULL, staging TEXT NOT NULL, "
                "has_started INTEGER NOT NULL, moves INTEGER NOT NULL, seed INTEGER, "
                "edge_seed INTEGER NOT NULL, saved_at TEXT NOT NULL)"
            )
            conn.execute(
                "INSERT INTO progress VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                ("old", 2, 2, '{"0": 0, "1": null, "2": null, "3": null}', "[1, 2, 3]", 1, 1, None, 0,
                 "2024-01-01T00:00:00+00:00"),
            )
            conn.commit()
            conn.close()

            saved = db_load_progress(db_path, "old")
            assert saved is not None
            self.assertEqual(saved.elapsed, 0)
            self.assertEqual(saved.stats, {})
            keeper = ScoreKeeper(clock=lambda: 50.0)
            r = resume_session(db_path, "old", scores=keeper)
            assert r is not None
            self.assertEqual(keeper.moves, 1)
            self.assertEqual(keeper.start_time, 50.0)


if __name__ == "__main__":
    unittest.main(verbosity=2)

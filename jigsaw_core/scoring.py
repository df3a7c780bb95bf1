from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Mapping, Optional

from .placement import COMPLETED, PIECE_LOCKED, PIECE_PLACED, PIECE_RETURNED, PIECES_SWAPPED, PuzzleEvent
from .session import RESET, STARTED, SessionController, SessionEvent, SessionPhase

BASE_SCORE = 1000
TIME_BONUS_MULTIPLIER = 2
MOVES_PENALTY = 1
HINT_PENALTY = 50
PERFECT_BONUS = 1.5
EXPECTED_MOVES_PER_PIECE = 1.5
SECONDS_PER_PIECE = 5

DIFFICULTY_MULTIPLIERS = {"easy": 1.0, "medium": 1.5, "hard": 2.0, "expert": 3.0}
BASE_TIMES = {"easy": 60, "medium": 180, "hard": 300, "expert": 600}


def difficulty_multiplier(difficulty: str) -> float:
    return DIFFICULTY_MULTIPLIERS.get(difficulty, DIFFICULTY_MULTIPLIERS["medium"])


def expected_time(total_pieces: int, difficulty: str) -> int:
    """Seconds a typical player needs: a per-difficulty base plus 5 s per piece."""
    return BASE_TIMES.get(difficulty, BASE_TIMES["medium"]) + total_pieces * SECONDS_PER_PIECE


class ScoreKeeper:
    """Timer and move statistics for one session, fed only by engine events.

    Attach it with `attach(session)`; it never mutates puzzle state.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, difficulty: str = "medium"):
        self.clock = clock
        self.difficulty = difficulty
        self._unsubscribers: List[Callable[[], None]] = []
        self.reset()

    def attach(self, session: SessionController) -> 'ScoreKeeper':
        self._unsubscribers.append(session.subscribe(self.on_session_event))
        self._unsubscribers.append(session.board.subscribe(self.on_board_event))
        if session.has_started and self.start_time is None:
            # A resumed session is already running; no `started` event will arrive.
            self.start_time = self.clock() - self._carried
            if session.phase is SessionPhase.COMPLETED:
                self.end_time = self.start_time + self._carried
        return self

    def detach(self) -> None:
        for unsub in self._unsubscribers:
            unsub()
        self._unsubscribers = []

    def reset(self) -> None:
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.moves = 0
        self.hints = 0
        self.correct_placements = 0
        self.incorrect_placements = 0
        self._carried = 0

    def load_stats(self, stats: Mapping[str, Any]) -> 'ScoreKeeper':
        """Carries over the figures of a saved game, as returned by `stats()`."""
        self.moves = int(stats.get("moves", 0))
        self.hints = int(stats.get("hints", 0))
        self.correct_placements = int(stats.get("correctPlacements", 0))
        self.incorrect_placements = int(stats.get("incorrectPlacements", 0))
        self._carried = int(stats.get("elapsedTime", 0))
        if self.start_time is not None:
            stopped = self.end_time is not None
            self.start_time = self.clock() - self._carried
            self.end_time = self.start_time + self._carried if stopped else None
        return self

    # ---------- event handlers ----------

    def on_session_event(self, ev: SessionEvent) -> None:
        if ev.kind == STARTED:
            self.start_time = self.clock()
            self.end_time = None
        elif ev.kind == COMPLETED:
            self.stop_timer()
        elif ev.kind == RESET:
            self.reset()

    def on_board_event(self, ev: PuzzleEvent) -> None:
        if ev.kind == PIECE_PLACED:
            if ev.piece_id != ev.slot:
                self.incorrect_placements += 1
            self.moves += 1
        elif ev.kind == PIECE_LOCKED:
            # Locks from both placements and swaps count as correct.
            self.correct_placements += 1
        elif ev.kind in (PIECE_RETURNED, PIECES_SWAPPED):
            self.moves += 1

    def record_hint(self) -> None:
        self.hints += 1

    def stop_timer(self) -> None:
        if self.start_time is not None and self.end_time is None:
            self.end_time = self.clock()

    # ---------- results ----------

    def elapsed_seconds(self) -> int:
        if self.start_time is None:
            return 0
        end = self.end_time if self.end_time is not None else self.clock()
        return int(end - self.start_time)

    def calculate_score(self, total_pieces: int) -> int:
        mult = difficulty_multiplier(self.difficulty)
        elapsed = self.elapsed_seconds()
        score = BASE_SCORE * mult

        exp_time = expected_time(total_pieces, self.difficulty)
        if elapsed < exp_time:
            score += int((exp_time - elapsed) * TIME_BONUS_MULTIPLIER * mult)

        exp_moves = total_pieces * EXPECTED_MOVES_PER_PIECE
        if self.moves < exp_moves:
            score += int((exp_moves - self.moves) * MOVES_PENALTY)

        if self.correct_placements == total_pieces and self.incorrect_placements == 0:
            score += int(BASE_SCORE * PERFECT_BONUS)

        score -= self.hints * HINT_PENALTY
        score -= max(0.0, self.moves - exp_moves) * MOVES_PENALTY
        return max(0, int(score))

    def performance_rating(self, total_pieces: int) -> int:
        """0-100 rating: time (40), move efficiency (30), accuracy (20), no hints (10)."""
        exp_time = expected_time(total_pieces, self.difficulty)
        exp_moves = total_pieces * EXPECTED_MOVES_PER_PIECE
        elapsed = self.elapsed_seconds()
        rating = 0.0

        if elapsed <= exp_time * 0.5:
            rating += 40
        elif elapsed <= exp_time:
            rating += 20 + (20 * (exp_time - elapsed) / (exp_time * 0.5))

        if self.moves <= exp_moves * 0.8:
            rating += 30
        elif self.moves <= exp_moves:
            rating += 15 + (15 * (exp_moves - self.moves) / (exp_moves * 0.2))

        rating += self.accuracy() * 20
        if self.hints == 0:
            rating += 10
        return min(100, max(0, int(rating)))

    def accuracy(self) -> float:
        return self.correct_placements / max(1, self.moves)

    def stats(self) -> Dict[str, Any]:
        return {
            "elapsedTime": self.elapsed_seconds(),
            "moves": self.moves,
            "hints": self.hints,
            "correctPlacements": self.correct_placements,
            "incorrectPlacements": self.incorrect_placements,
            "accuracy": self.accuracy(),
        }

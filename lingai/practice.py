"""
Flashcard practice over a recency window of the vocabulary.

The session never ends: advancing past the last card reshuffles and starts
again from the first card. A session started from a recency window re-reads
that window first, so deleted words drop out and new ones join.
"""

import random
from typing import List, Optional, Tuple

from .logger import logger
from .models import WordEntry
from .vocabulary import VocabularyStore


class PracticeSession:
    def __init__(self, vocabulary: VocabularyStore, rng: Optional[random.Random] = None):
        self._vocabulary = vocabulary
        self._rng = rng or random.Random()
        self._source: List[WordEntry] = []
        self.pool: List[WordEntry] = []
        self.cursor = 0
        self.correct_count = 0
        self.total_answered = 0
        self.answer_revealed = False
        self.window_days: Optional[int] = None

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def start(self, pool: List[WordEntry]) -> None:
        """Begin a fresh session over a shuffled copy of `pool`."""
        self._source = list(pool)
        self.window_days = None
        self._reshuffle()
        self.correct_count = 0
        self.total_answered = 0
        logger.info(f"Practice session started with {len(self.pool)} cards")

    def start_window(self, days: int) -> None:
        """Start over the entries added in the last `days` days."""
        self.start(self._vocabulary.entries_since(days))
        self.window_days = days

    def _reshuffle(self) -> None:
        self.pool = list(self._source)
        self._rng.shuffle(self.pool)
        self.cursor = 0
        self.answer_revealed = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_empty(self) -> bool:
        return not self.pool

    @property
    def current(self) -> Optional[WordEntry]:
        if self.is_empty:
            return None
        return self.pool[self.cursor]

    @property
    def progress(self) -> Tuple[int, int]:
        """(1-based card number, pool size); (0, 0) when empty."""
        if self.is_empty:
            return (0, 0)
        return (self.cursor + 1, len(self.pool))

    @property
    def score_label(self) -> str:
        return f"{self.correct_count}/{self.total_answered}"

    # ------------------------------------------------------------------
    # Card actions
    # ------------------------------------------------------------------

    def reveal(self) -> None:
        if self.is_empty:
            return
        self.answer_revealed = True

    def grade(self, correct: bool) -> None:
        """Score the card under the cursor; a correct answer marks it learned."""
        entry = self.current
        if entry is None:
            return
        self.total_answered += 1
        if correct:
            self.correct_count += 1
            self._vocabulary.mark_learned(entry.id)

    def advance(self) -> None:
        if self.is_empty:
            return
        if self.cursor < len(self.pool) - 1:
            self.cursor += 1
            self.answer_revealed = False
        else:
            logger.info("End of practice pool, reshuffling")
            if self.window_days is not None:
                self._source = self._vocabulary.entries_since(self.window_days)
            self._reshuffle()

    def retreat(self) -> None:
        if self.cursor > 0:
            self.cursor -= 1
            self.answer_revealed = False

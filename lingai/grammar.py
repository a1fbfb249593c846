"""
Grammar practice: a linear walk over generated exercises.

GrammarSession is the in-memory state machine (InProgress -> Completed via
next() on the last exercise, back via restart()). GrammarManager owns the
current session and talks to the LLM to create or regenerate exercises.
"""

from datetime import datetime
from typing import Callable, List, Optional

from .errors import LingaiError, EmptyInputFailure, ParseFailure
from .logger import logger
from .models import GrammarExercise, ExerciseType, WordEntry, utcnow

POINTS_PER_CORRECT = 100
DEFAULT_EXERCISE_COUNT = 5


def _normalize(answer: str) -> str:
    return answer.strip().lower()


class GrammarSession:
    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self.exercises: List[GrammarExercise] = []
        self.cursor = 0
        self.score = 0
        self.correct_count = 0
        self.started_at: datetime = clock()
        self.completed = False

    def start(self, exercises: List[GrammarExercise]) -> None:
        if not exercises:
            raise EmptyInputFailure("A grammar session needs at least one exercise")
        self.exercises = list(exercises)
        self.restart()

    def restart(self) -> None:
        """Back to the first exercise with zeroed counters; same exercises."""
        self.cursor = 0
        self.score = 0
        self.correct_count = 0
        self.started_at = self._clock()
        self.completed = False

    @property
    def current_exercise(self) -> Optional[GrammarExercise]:
        if self.cursor < len(self.exercises):
            return self.exercises[self.cursor]
        return None

    @property
    def progress(self) -> float:
        if not self.exercises:
            return 0.0
        return self.cursor / len(self.exercises)

    @property
    def has_next(self) -> bool:
        return self.cursor < len(self.exercises) - 1

    @property
    def has_previous(self) -> bool:
        return self.cursor > 0

    def submit_answer(self, answer: str) -> bool:
        """Grade against the current exercise, ignoring case and outer whitespace."""
        exercise = self.current_exercise
        if exercise is None:
            return False
        is_correct = _normalize(answer) == _normalize(exercise.correct_answer)
        if is_correct:
            self.score += POINTS_PER_CORRECT
            self.correct_count += 1
        return is_correct

    def next(self) -> bool:
        if self.has_next:
            self.cursor += 1
            return True
        self.completed = True
        return False

    def previous(self) -> bool:
        if self.has_previous:
            self.cursor -= 1
            return True
        return False

    def replace_current(self, exercise: GrammarExercise) -> None:
        if self.current_exercise is None:
            return
        self.exercises[self.cursor] = exercise


def format_words(words: List[WordEntry]) -> List[str]:
    """Render entries the way the exercise prompt expects: 'Hund (dog)'."""
    return [f"{w.headword} ({w.translation})" for w in words]


class GrammarManager:
    """Creates grammar sessions from the learner's vocabulary."""

    def __init__(self, generator, clock: Callable[[], datetime] = utcnow):
        self._generator = generator
        self._clock = clock
        self.current_session: Optional[GrammarSession] = None
        self.last_error: Optional[str] = None
        self._in_flight = 0

    @property
    def is_generating(self) -> bool:
        return self._in_flight > 0

    def _fail(self, message: str) -> None:
        logger.error(message)
        self.last_error = message

    def generate_session(
        self,
        words: List[WordEntry],
        kind: ExerciseType,
        count: int = DEFAULT_EXERCISE_COUNT,
    ) -> Optional[GrammarSession]:
        self.last_error = None
        if not words:
            self._fail(EmptyInputFailure().describe())
            return None

        self._in_flight += 1
        try:
            exercises = self._generator.generate_grammar_exercises(
                format_words(words), kind.value, count
            )
        except LingaiError as e:
            self._fail(f"Failed to generate exercises: {e}")
            return None
        finally:
            self._in_flight -= 1

        if not exercises:
            self._fail("Failed to generate valid exercises. Please try again.")
            return None

        session = GrammarSession(clock=self._clock)
        session.start(exercises)
        self.current_session = session
        logger.success(f"Grammar session started: {len(exercises)}x {kind.display_name}")
        return session

    def regenerate_current(self, words: List[WordEntry]) -> bool:
        """Swap the current exercise for a freshly generated one of the same kind."""
        session = self.current_session
        current = session.current_exercise if session else None
        if current is None:
            return False

        self.last_error = None
        self._in_flight += 1
        try:
            generated = self._generator.generate_grammar_exercises(
                format_words(words), current.kind.value, 1
            )
            if not generated:
                raise ParseFailure("no usable exercise in response")
        except LingaiError as e:
            self._fail(f"Failed to regenerate exercise: {e}")
            return False
        finally:
            self._in_flight -= 1

        session.replace_current(generated[0])
        return True

    def submit_answer(self, answer: str) -> bool:
        if self.current_session is None:
            return False
        return self.current_session.submit_answer(answer)

    def next(self) -> bool:
        if self.current_session is None:
            return False
        return self.current_session.next()

    def previous(self) -> bool:
        if self.current_session is None:
            return False
        return self.current_session.previous()

    def restart(self) -> None:
        if self.current_session is not None:
            self.current_session.restart()

    def end_session(self) -> None:
        self.current_session = None
        self.last_error = None

    def dismiss_error(self) -> None:
        self.last_error = None

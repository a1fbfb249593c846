"""
Reading and listening practice.

ReadingManager owns the generated passages, the completed quiz records and
the single audio player. Passage creation is synchronous; speech synthesis
for a new passage runs on a background thread (a SpeechTask) and attaches
the audio file to the passage, looked up by id, when it finishes.
"""

import os
import threading
import time
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .audio import AudioController, PlaybackState
from .errors import LingaiError, EmptyInputFailure, PersistenceFailure
from .logger import logger
from .models import ReadingPassage, ReadingSession, WordEntry, utcnow
from .storage import (
    KeyValueStore, PASSAGES_KEY, SESSIONS_KEY, save_collection, load_collection,
)


def quiz_score(chosen_answers: List[int], passage: ReadingPassage) -> int:
    """Percentage of questions answered correctly, rounded half up."""
    total = len(passage.questions)
    if total == 0:
        return 0
    correct = sum(
        1
        for question, answer in zip(passage.questions, chosen_answers)
        if answer == question.correct_option_index
    )
    return (200 * correct + total) // (2 * total)


class SpeechTask:
    """Handle on one background speech synthesis, cancellable by id."""

    def __init__(self, passage_id: str, target: Callable[["SpeechTask"], None]):
        self.passage_id = passage_id
        self._cancelled = threading.Event()
        self._thread = threading.Thread(
            target=target, args=(self,), name=f"speech-{passage_id[:8]}", daemon=True
        )

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def done(self) -> bool:
        return not self._thread.is_alive()

    def join(self, timeout: Optional[float] = None) -> bool:
        self._thread.join(timeout)
        return self.done()


class ReadingManager:
    def __init__(
        self,
        store: KeyValueStore,
        generator,
        player: AudioController,
        audio_dir: str,
        speech=None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._generator = generator
        self._speech = speech or generator
        self._player = player
        self._audio_dir = audio_dir
        os.makedirs(audio_dir, exist_ok=True)
        self._clock = clock
        self._lock = threading.RLock()
        self._speech_tasks: Dict[str, SpeechTask] = {}
        self._in_flight = 0
        self._passages: List[ReadingPassage] = []
        self._sessions: List[ReadingSession] = []
        self.last_error: Optional[str] = None
        self.load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        try:
            self._passages = load_collection(self._store, PASSAGES_KEY, ReadingPassage.from_dict)
        except PersistenceFailure as e:
            logger.error(f"Could not load passages, starting empty: {e}")
            self._passages = []
        try:
            self._sessions = load_collection(self._store, SESSIONS_KEY, ReadingSession.from_dict)
        except PersistenceFailure as e:
            logger.error(f"Could not load reading sessions, starting empty: {e}")
            self._sessions = []
        logger.store(f"Loaded {len(self._passages)} passages, {len(self._sessions)} sessions")

    def _save_passages(self) -> None:
        try:
            save_collection(self._store, PASSAGES_KEY, self._passages)
        except PersistenceFailure as e:
            logger.error(f"Could not save passages (kept in memory): {e}")

    def _save_sessions(self) -> None:
        try:
            save_collection(self._store, SESSIONS_KEY, self._sessions)
        except PersistenceFailure as e:
            logger.error(f"Could not save reading sessions (kept in memory): {e}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def passages(self) -> List[ReadingPassage]:
        with self._lock:
            return list(self._passages)

    @property
    def sessions(self) -> List[ReadingSession]:
        with self._lock:
            return list(self._sessions)

    @property
    def is_generating(self) -> bool:
        return self._in_flight > 0

    def get_passage(self, passage_id: str) -> Optional[ReadingPassage]:
        with self._lock:
            for passage in self._passages:
                if passage.id == passage_id:
                    return passage
        return None

    def sessions_for(self, passage_id: str) -> List[ReadingSession]:
        with self._lock:
            return [s for s in self._sessions if s.passage_id == passage_id]

    def best_score(self, passage_id: str) -> Optional[int]:
        scores = [s.score for s in self.sessions_for(passage_id)]
        return max(scores) if scores else None

    def speech_task(self, passage_id: str) -> Optional[SpeechTask]:
        return self._speech_tasks.get(passage_id)

    def wait_for_audio(self, passage_id: str, timeout: Optional[float] = None) -> bool:
        """Block until the passage's speech task has finished. True if done."""
        task = self._speech_tasks.get(passage_id)
        if task is None:
            return True
        return task.join(timeout)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_passage(
        self,
        vocabulary: List[str],
        custom_instructions: str = "",
    ) -> Optional[ReadingPassage]:
        """
        Generate, store and return a passage built from `vocabulary`.

        Returns None (and sets last_error) on failure; nothing is stored.
        Audio is synthesized in the background afterwards.
        """
        self.last_error = None
        if not vocabulary:
            failure = EmptyInputFailure()
            logger.warning(f"generate_passage: {failure.describe()}")
            self.last_error = failure.describe()
            return None

        self._in_flight += 1
        try:
            passage = self._generator.generate_reading_passage(vocabulary, custom_instructions)
        except LingaiError as e:
            logger.api_error(f"Passage generation failed: {e}")
            self.last_error = f"Failed to generate reading passage: {e}"
            return None
        finally:
            self._in_flight -= 1

        passage.created_at = self._clock()
        with self._lock:
            self._passages.append(passage)
            self._save_passages()
        logger.success(f"Passage stored: '{passage.title}'")

        self._start_speech(passage)
        return passage

    def generate_passage_from_entries(
        self,
        entries: List[WordEntry],
        custom_instructions: str = "",
    ) -> Optional[ReadingPassage]:
        return self.generate_passage([e.headword for e in entries if e.headword], custom_instructions)

    def _audio_path(self, passage_id: str) -> str:
        return os.path.join(self._audio_dir, f"passage_{passage_id}.mp3")

    def _start_speech(self, passage: ReadingPassage) -> None:
        task_name = f"speech for '{passage.title}'"
        path = self._audio_path(passage.id)
        text = passage.body

        def _run(task: SpeechTask) -> None:
            start_time = time.perf_counter()
            try:
                self._speech.synthesize_speech(text, path)
                duration_ms = (time.perf_counter() - start_time) * 1000
                self._attach_audio(task, path)
                logger.task_complete(task_name, duration_ms=duration_ms)
            except LingaiError as e:
                logger.task_error(task_name, str(e))
            finally:
                self._forget_task(task)

        task = SpeechTask(passage.id, _run)
        with self._lock:
            self._speech_tasks[passage.id] = task
        logger.task_start(task_name)
        task.start()

    def _forget_task(self, task: SpeechTask) -> None:
        with self._lock:
            if self._speech_tasks.get(task.passage_id) is task:
                del self._speech_tasks[task.passage_id]

    def _attach_audio(self, task: SpeechTask, path: str) -> None:
        with self._lock:
            passage = None if task.cancelled else self.get_passage(task.passage_id)
            if passage is None:
                logger.task(f"Passage {task.passage_id} is gone, discarding {path}")
                _remove_file(path)
                return
            passage.audio_asset_ref = path
            self._save_passages()

    # ------------------------------------------------------------------
    # Passage lifecycle
    # ------------------------------------------------------------------

    def delete_passage(self, passage_id: str) -> None:
        with self._lock:
            task = self._speech_tasks.pop(passage_id, None)
        if task is not None:
            task.cancel()
        if self._player.loaded_passage_id == passage_id:
            self._player.stop()

        with self._lock:
            passage = self.get_passage(passage_id)
            if passage is None:
                return
            self._passages.remove(passage)
            self._save_passages()
        if passage.audio_asset_ref:
            _remove_file(passage.audio_asset_ref)
        logger.info(f"Deleted passage '{passage.title}'")

    def complete_session(
        self,
        passage_id: str,
        chosen_answers: List[int],
    ) -> Optional[ReadingSession]:
        passage = self.get_passage(passage_id)
        if passage is None or not passage.questions:
            return None

        session = ReadingSession(
            passage_id=passage_id,
            chosen_answers=list(chosen_answers),
            score=quiz_score(chosen_answers, passage),
            completed_at=self._clock(),
        )
        with self._lock:
            self._sessions.append(session)
            self._save_sessions()
        logger.success(f"Quiz completed for '{passage.title}': {session.score}%")
        return session

    # ------------------------------------------------------------------
    # Audio
    # ------------------------------------------------------------------

    @property
    def playback_state(self) -> PlaybackState:
        return self._player.state

    @property
    def has_started(self) -> bool:
        return self._player.has_started

    @property
    def position(self) -> float:
        return self._player.position

    def play(self, passage: ReadingPassage) -> None:
        self._player.play(passage)

    def pause(self) -> None:
        self._player.pause()

    def stop(self) -> None:
        self._player.stop()

    def restart(self, passage: ReadingPassage) -> None:
        self._player.restart(passage)

    def dismiss_error(self) -> None:
        self.last_error = None


def _remove_file(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove {path}: {e}")

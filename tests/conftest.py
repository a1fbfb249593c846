"""Shared fixtures: in-memory store, fixed clock, fake LLM and fake audio backend."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from lingai.audio import AudioBackend, AudioController
from lingai.errors import NetworkFailure
from lingai.logger import logger
from lingai.models import (
    ComprehensionQuestion, Difficulty, ExerciseType, GrammarExercise,
    ReadingPassage, Translation, WordEntry,
)
from lingai.storage import MemoryStore


logger.enabled = False

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class FakeLanguageModel:
    """Stands in for LanguageModelService; records every call."""

    def __init__(self):
        self.calls = []
        self.translation = Translation("apple", "From Old High German 'apful'", "Obst, Frucht")
        self.exercises = [make_exercise(f"Frage {i}", "den") for i in range(3)]
        self.passage_error = None
        self.grammar_error = None
        self.speech_error = None
        self.speech_gate = threading.Event()
        self.speech_gate.set()

    def is_available(self):
        return True

    def translate(self, phrase, is_german=True):
        self.calls.append(("translate", phrase, is_german))
        if isinstance(self.translation, Exception):
            raise self.translation
        return self.translation

    def generate_grammar_exercises(self, words, exercise_type, count=5):
        self.calls.append(("grammar", list(words), exercise_type, count))
        if self.grammar_error:
            raise self.grammar_error
        return list(self.exercises[:count])

    def generate_reading_passage(self, vocabulary, custom_instructions=""):
        self.calls.append(("reading", list(vocabulary), custom_instructions))
        if self.passage_error:
            raise self.passage_error
        return make_passage(source_vocabulary=list(vocabulary))

    def synthesize_speech(self, text, path, voice=None, instructions=None):
        self.calls.append(("speech", text, path))
        self.speech_gate.wait(5)
        if self.speech_error:
            raise self.speech_error
        with open(path, "wb") as f:
            f.write(b"ID3fake-mp3")
        return path

    def calls_of(self, kind):
        return [c for c in self.calls if c[0] == kind]


class FakeAudioBackend(AudioBackend):
    def __init__(self):
        self.loaded = None
        self.playing = False
        self.paused = False
        self.pos = 0.0
        self.log = []

    def load(self, path):
        self.log.append(("load", path))
        self.loaded = path
        self.pos = 0.0

    def play(self, start=0.0):
        self.log.append(("play", start))
        self.playing = True
        self.paused = False
        self.pos = start

    def pause(self):
        self.log.append(("pause",))
        self.paused = True

    def unpause(self):
        self.log.append(("unpause",))
        self.paused = False

    def stop(self):
        self.log.append(("stop",))
        self.playing = False
        self.paused = False

    def unload(self):
        self.log.append(("unload",))
        self.loaded = None
        self.pos = 0.0

    def is_busy(self):
        return self.playing and not self.paused

    def position(self):
        return self.pos


def make_entry(headword="der Hund", translation="dog", days_ago=0, now=NOW, **kwargs):
    return WordEntry(
        headword=headword,
        translation=translation,
        created_at=now - timedelta(days=days_ago),
        **kwargs,
    )


def make_exercise(prompt="Ich gehe in ___ Park", answer="den", kind=ExerciseType.FILL_BLANK):
    return GrammarExercise(
        kind=kind,
        prompt=prompt,
        correct_answer=answer,
        options=["der", "die", "das", "den"],
        explanation="'in' + movement takes the accusative.",
        difficulty=Difficulty.BEGINNER,
        used_words=["Park"],
    )


def make_passage(title="Im Park", correct=(0, 1, 2, 3), audio=None, **kwargs):
    questions = [
        ComprehensionQuestion(f"Question {i}?", ["a", "b", "c", "d"], index)
        for i, index in enumerate(correct)
    ]
    return ReadingPassage(
        title=title,
        body="Der Hund läuft in den Park.",
        questions=questions,
        audio_asset_ref=audio,
        **kwargs,
    )


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def fake_llm():
    return FakeLanguageModel()


@pytest.fixture
def backend():
    return FakeAudioBackend()


@pytest.fixture
def controller(backend):
    return AudioController(backend)


@pytest.fixture
def network_failure():
    return NetworkFailure("503 Service Unavailable")

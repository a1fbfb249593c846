"""
Audio playback for reading passages.

There is exactly one player. Its state is one of Idle, Playing(passage) or
Paused(passage); `transition` computes the next state from the current one
and an event, and refuses to jump straight from one passage to another, so
switching passages always goes through Idle.

AudioController applies those transitions to a backend. The default backend
drives pygame.mixer.music.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import pygame

from .errors import ResourceMissing
from .logger import logger
from .models import ReadingPassage


class PlaybackStatus(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(frozen=True)
class PlaybackState:
    status: PlaybackStatus = PlaybackStatus.IDLE
    passage_id: Optional[str] = None

    def __str__(self) -> str:
        if self.status is PlaybackStatus.IDLE:
            return "Idle"
        return f"{self.status.value.capitalize()}({self.passage_id})"


IDLE = PlaybackState()


def playing(passage_id: str) -> PlaybackState:
    return PlaybackState(PlaybackStatus.PLAYING, passage_id)


def paused(passage_id: str) -> PlaybackState:
    return PlaybackState(PlaybackStatus.PAUSED, passage_id)


class EventKind(str, Enum):
    PLAY = "play"
    PAUSE = "pause"
    STOP = "stop"
    RESTART = "restart"
    FINISHED = "finished"


@dataclass(frozen=True)
class AudioEvent:
    kind: EventKind
    passage_id: Optional[str] = None


class InvalidTransition(ValueError):
    pass


def transition(state: PlaybackState, event: AudioEvent) -> PlaybackState:
    """Next playback state. Raises InvalidTransition for a direct passage switch."""
    if event.kind is EventKind.STOP:
        return IDLE

    if event.kind is EventKind.PAUSE:
        if state.status is PlaybackStatus.PLAYING:
            return paused(state.passage_id)
        return state

    if event.kind is EventKind.FINISHED:
        if state.status is PlaybackStatus.PLAYING:
            return IDLE
        return state

    # PLAY and RESTART need a target passage
    if event.passage_id is None:
        raise InvalidTransition(f"{event.kind.value} needs a passage id")
    if state.status is not PlaybackStatus.IDLE and state.passage_id != event.passage_id:
        raise InvalidTransition(
            f"{state} → {event.kind.value}({event.passage_id}) must stop first"
        )
    return playing(event.passage_id)


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

class AudioBackend:
    """The system audio facility: one loaded file at a time."""

    def load(self, path: str) -> None:
        raise NotImplementedError

    def play(self, start: float = 0.0) -> None:
        raise NotImplementedError

    def pause(self) -> None:
        raise NotImplementedError

    def unpause(self) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError

    def unload(self) -> None:
        raise NotImplementedError

    def is_busy(self) -> bool:
        raise NotImplementedError

    def position(self) -> float:
        """Seconds from the start of the loaded file."""
        raise NotImplementedError


class PygameBackend(AudioBackend):
    """pygame.mixer.music; initialises the mixer on construction."""

    def __init__(self):
        if not pygame.mixer.get_init():
            pygame.mixer.init()
        self._offset = 0.0

    def load(self, path: str) -> None:
        try:
            pygame.mixer.music.load(path)
        except pygame.error as e:
            raise ResourceMissing(f"unreadable audio file {path}: {e}") from e
        self._offset = 0.0

    def play(self, start: float = 0.0) -> None:
        pygame.mixer.music.play(start=start)
        # play() after pause() leaves the channel paused on some platforms
        pygame.mixer.music.unpause()
        self._offset = start

    def pause(self) -> None:
        pygame.mixer.music.pause()

    def unpause(self) -> None:
        pygame.mixer.music.unpause()

    def stop(self) -> None:
        pygame.mixer.music.stop()

    def unload(self) -> None:
        pygame.mixer.music.unload()
        self._offset = 0.0

    def is_busy(self) -> bool:
        return bool(pygame.mixer.music.get_busy())

    def position(self) -> float:
        elapsed_ms = pygame.mixer.music.get_pos()
        if elapsed_ms < 0:
            return 0.0
        return self._offset + elapsed_ms / 1000.0


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class AudioController:
    """Owns the single playback handle and applies state transitions to it."""

    def __init__(self, backend: AudioBackend):
        self._backend = backend
        self.state: PlaybackState = IDLE
        self.loaded_passage_id: Optional[str] = None
        self.has_started = False

    def _apply(self, event: AudioEvent) -> None:
        new_state = transition(self.state, event)
        if new_state != self.state:
            logger.audio_transition(str(self.state), str(new_state))
        self.state = new_state

    @property
    def position(self) -> float:
        if self.loaded_passage_id is None:
            return 0.0
        return self._backend.position()

    def _asset_path(self, passage: ReadingPassage) -> str:
        path = passage.audio_asset_ref
        if not path:
            raise ResourceMissing(f"no audio yet for passage {passage.id}")
        if not os.path.exists(path):
            raise ResourceMissing(f"audio file not found: {path}")
        return path

    def _release(self) -> None:
        """Stop and unload whatever is loaded; back to Idle."""
        if self.loaded_passage_id is not None:
            self._backend.stop()
            self._backend.unload()
            logger.audio(f"Released audio for passage {self.loaded_passage_id}")
        self.loaded_passage_id = None
        self.has_started = False
        self._apply(AudioEvent(EventKind.STOP))

    def _load(self, passage: ReadingPassage) -> bool:
        """Make `passage` the loaded asset, tearing down any other one first."""
        if self.loaded_passage_id == passage.id:
            return True
        if self.loaded_passage_id is not None:
            self._release()
        try:
            path = self._asset_path(passage)
            self._backend.load(path)
        except ResourceMissing as e:
            logger.warning(f"Cannot play '{passage.title}': {e}")
            return False
        self.loaded_passage_id = passage.id
        self.has_started = False
        logger.audio(f"Audio loaded: {path}")
        return True

    def play(self, passage: ReadingPassage) -> None:
        self.refresh()
        if self.state == playing(passage.id):
            return
        if self.state == paused(passage.id):
            self._backend.unpause()
            self._apply(AudioEvent(EventKind.PLAY, passage.id))
            return
        if not self._load(passage):
            return
        self._backend.play(start=0.0)
        self.has_started = True
        self._apply(AudioEvent(EventKind.PLAY, passage.id))

    def pause(self) -> None:
        self.refresh()
        if self.state.status is PlaybackStatus.PLAYING:
            self._backend.pause()
        self._apply(AudioEvent(EventKind.PAUSE))

    def stop(self) -> None:
        self._release()

    def restart(self, passage: ReadingPassage) -> None:
        """Play `passage` from position zero, whatever was happening before."""
        self.refresh()
        if not self._load(passage):
            return
        self._backend.play(start=0.0)
        self.has_started = True
        self._apply(AudioEvent(EventKind.RESTART, passage.id))

    def refresh(self) -> None:
        """Poll the backend; playback that ran to the end returns to Idle."""
        if self.state.status is PlaybackStatus.PLAYING and not self._backend.is_busy():
            logger.audio("Playback finished")
            self._apply(AudioEvent(EventKind.FINISHED))
            self._backend.unload()
            self.loaded_passage_id = None
            self.has_started = False

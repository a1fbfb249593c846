"""
Tests for audio playback

Tests cover:
- Pure state transitions
- Single-active-asset enforcement in the controller
- Pause/resume, restart from zero, stop/release
- Missing assets
- pygame backend wiring (mocked mixer)
"""

from unittest.mock import patch

import pytest

from conftest import make_passage
from lingai.audio import (
    IDLE, AudioEvent, EventKind, InvalidTransition, PlaybackStatus,
    PygameBackend, paused, playing, transition,
)
from lingai.errors import ResourceMissing


class TestTransition:
    """transition(state, event) is a pure function."""

    def test_play_from_idle(self):
        assert transition(IDLE, AudioEvent(EventKind.PLAY, "a")) == playing("a")

    def test_pause_and_resume(self):
        state = transition(playing("a"), AudioEvent(EventKind.PAUSE))
        assert state == paused("a")
        assert transition(state, AudioEvent(EventKind.PLAY, "a")) == playing("a")

    def test_pause_when_idle_is_noop(self):
        assert transition(IDLE, AudioEvent(EventKind.PAUSE)) == IDLE

    @pytest.mark.parametrize("state", [IDLE, playing("a"), paused("a")])
    def test_stop_always_idle(self, state):
        assert transition(state, AudioEvent(EventKind.STOP)) == IDLE

    @pytest.mark.parametrize("kind", [EventKind.PLAY, EventKind.RESTART])
    def test_direct_switch_is_rejected(self, kind):
        with pytest.raises(InvalidTransition):
            transition(playing("a"), AudioEvent(kind, "b"))
        with pytest.raises(InvalidTransition):
            transition(paused("a"), AudioEvent(kind, "b"))

    def test_finished_returns_to_idle(self):
        assert transition(playing("a"), AudioEvent(EventKind.FINISHED)) == IDLE
        assert transition(paused("a"), AudioEvent(EventKind.FINISHED)) == paused("a")

    def test_play_requires_passage(self):
        with pytest.raises(InvalidTransition):
            transition(IDLE, AudioEvent(EventKind.PLAY))


@pytest.fixture
def passage_a(tmp_path):
    path = tmp_path / "a.mp3"
    path.write_bytes(b"a")
    return make_passage("A", audio=str(path))


@pytest.fixture
def passage_b(tmp_path):
    path = tmp_path / "b.mp3"
    path.write_bytes(b"b")
    return make_passage("B", audio=str(path))


class TestController:
    """AudioController over a fake backend."""

    def test_play_loads_and_starts(self, controller, backend, passage_a):
        assert controller.has_started is False
        controller.play(passage_a)
        assert controller.state == playing(passage_a.id)
        assert backend.loaded == passage_a.audio_asset_ref
        assert controller.has_started is True

    def test_switching_passages_releases_previous(self, controller, backend, passage_a, passage_b):
        controller.play(passage_a)
        controller.play(passage_b)

        assert controller.state == playing(passage_b.id)
        assert controller.loaded_passage_id == passage_b.id
        assert backend.loaded == passage_b.audio_asset_ref
        assert backend.log[2:5] == [("stop",), ("unload",), ("load", passage_b.audio_asset_ref)]

    def test_pause_then_play_resumes(self, controller, backend, passage_a):
        controller.play(passage_a)
        backend.pos = 4.2
        controller.pause()
        assert controller.state == paused(passage_a.id)
        assert controller.has_started is True

        controller.play(passage_a)

        assert controller.state == playing(passage_a.id)
        assert backend.log[-1] == ("unpause",)
        assert controller.position == 4.2

    def test_restart_seeks_to_zero(self, controller, backend, passage_a):
        controller.play(passage_a)
        backend.pos = 12.5
        controller.pause()

        controller.restart(passage_a)

        assert controller.position == 0.0
        assert controller.state == playing(passage_a.id)

    def test_restart_other_passage(self, controller, backend, passage_a, passage_b):
        controller.play(passage_a)
        controller.restart(passage_b)
        assert controller.state == playing(passage_b.id)
        assert backend.loaded == passage_b.audio_asset_ref

    def test_stop_releases(self, controller, backend, passage_a):
        controller.play(passage_a)
        controller.stop()
        assert controller.state == IDLE
        assert backend.loaded is None
        assert controller.loaded_passage_id is None
        assert controller.has_started is False

    def test_play_same_passage_twice_is_noop(self, controller, backend, passage_a):
        controller.play(passage_a)
        controller.play(passage_a)
        assert [entry for entry in backend.log if entry[0] == "play"] == [("play", 0.0)]

    def test_missing_audio_ref_is_noop(self, controller, backend):
        controller.play(make_passage("no audio"))
        assert controller.state == IDLE
        assert backend.log == []

    def test_missing_file_is_noop(self, controller, backend, tmp_path):
        passage = make_passage("gone", audio=str(tmp_path / "missing.mp3"))
        controller.restart(passage)
        assert controller.state == IDLE
        assert backend.loaded is None

    def test_missing_asset_after_other_leaves_idle(self, controller, backend, passage_a):
        controller.play(passage_a)
        controller.play(make_passage("no audio"))
        assert controller.state == IDLE
        assert backend.loaded is None

    def test_refresh_after_finish(self, controller, backend, passage_a):
        controller.play(passage_a)
        backend.playing = False
        controller.refresh()
        assert controller.state.status is PlaybackStatus.IDLE
        assert controller.loaded_passage_id is None

    def test_play_again_after_track_ended(self, controller, backend, passage_a):
        controller.play(passage_a)
        backend.playing = False

        controller.play(passage_a)

        assert [entry for entry in backend.log if entry[0] == "play"] == [("play", 0.0), ("play", 0.0)]
        assert controller.state == playing(passage_a.id)
        assert backend.loaded == passage_a.audio_asset_ref

    def test_pause_after_track_ended_stays_idle(self, controller, backend, passage_a):
        controller.play(passage_a)
        backend.playing = False

        controller.pause()

        assert controller.state == IDLE
        assert ("pause",) not in backend.log
        controller.play(passage_a)
        assert ("unpause",) not in backend.log
        assert controller.state == playing(passage_a.id)

    def test_unreadable_file_is_noop(self, controller, backend, passage_a):
        def broken_load(path):
            raise ResourceMissing(f"unreadable audio file {path}")

        backend.load = broken_load
        controller.play(passage_a)

        assert controller.state == IDLE
        assert controller.loaded_passage_id is None
        assert backend.log == []


class TestPygameBackend:
    """Calls land on pygame.mixer.music."""

    def test_backend_drives_mixer(self):
        with patch("lingai.audio.pygame") as pygame:
            pygame.mixer.get_init.return_value = None
            pygame.mixer.music.get_pos.return_value = 1500
            backend = PygameBackend()
            pygame.mixer.init.assert_called_once()

            backend.load("/tmp/x.mp3")
            backend.play(start=2.0)
            pygame.mixer.music.load.assert_called_once_with("/tmp/x.mp3")
            pygame.mixer.music.play.assert_called_once_with(start=2.0)
            assert backend.position() == pytest.approx(3.5)

            backend.stop()
            backend.unload()
            pygame.mixer.music.stop.assert_called_once()
            pygame.mixer.music.unload.assert_called_once()

    def test_position_before_play(self):
        with patch("lingai.audio.pygame") as pygame:
            pygame.mixer.get_init.return_value = (44100, -16, 2)
            pygame.mixer.music.get_pos.return_value = -1
            backend = PygameBackend()
            pygame.mixer.init.assert_not_called()
            assert backend.position() == 0.0

    def test_corrupt_file_raises_resource_missing(self):
        with patch("lingai.audio.pygame") as pygame:
            pygame.error = RuntimeError
            pygame.mixer.music.load.side_effect = RuntimeError("Unrecognized audio format")
            backend = PygameBackend()
            with pytest.raises(ResourceMissing):
                backend.load("/tmp/broken.mp3")

"""
Tests for the vocabulary store

Tests cover:
- Append / delete / toggle semantics
- Recency window filtering
- Whole-collection persistence and failure tolerance
- Phrase translation with fallback
"""

import json
from unittest.mock import MagicMock

import pytest

from conftest import make_entry, NOW
from lingai.errors import NetworkFailure, ParseFailure, PersistenceFailure
from lingai.storage import MemoryStore, WORDS_KEY
from lingai.vocabulary import VocabularyStore, PERIOD_OPTIONS


class TestMutations:
    """Add, delete and toggle."""

    def test_add_allows_duplicates(self, store, clock):
        vocab = VocabularyStore(store, clock=clock)
        vocab.add(make_entry("der Hund"))
        vocab.add(make_entry("der Hund"))
        assert [e.headword for e in vocab.entries] == ["der Hund", "der Hund"]

    def test_delete_removes_only_matching_id(self, store, clock):
        vocab = VocabularyStore(store, clock=clock)
        first = vocab.add(make_entry("der Hund"))
        second = vocab.add(make_entry("die Katze"))
        vocab.delete(first.id)
        assert [e.id for e in vocab.entries] == [second.id]

    def test_delete_unknown_id_is_noop(self, store, clock):
        vocab = VocabularyStore(store, clock=clock)
        vocab.add(make_entry())
        vocab.delete("missing")
        assert len(vocab) == 1

    def test_toggle_learned_flips(self, store, clock):
        vocab = VocabularyStore(store, clock=clock)
        entry = vocab.add(make_entry())
        vocab.toggle_learned(entry.id)
        assert vocab.get(entry.id).is_learned is True
        vocab.toggle_learned(entry.id)
        assert vocab.get(entry.id).is_learned is False

    def test_toggle_unknown_id_is_noop(self, store, clock):
        vocab = VocabularyStore(store, clock=clock)
        vocab.toggle_learned("missing")
        assert len(vocab) == 0

    def test_mark_learned_is_idempotent(self, store, clock):
        vocab = VocabularyStore(store, clock=clock)
        entry = vocab.add(make_entry())
        vocab.mark_learned(entry.id)
        vocab.mark_learned(entry.id)
        assert vocab.get(entry.id).is_learned is True

    def test_recent_is_newest_first(self, store, clock):
        vocab = VocabularyStore(store, clock=clock)
        for word in ["eins", "zwei", "drei"]:
            vocab.add(make_entry(word))
        assert [e.headword for e in vocab.recent(2)] == ["drei", "zwei"]


class TestEntriesSince:
    """Recency window selection."""

    @pytest.fixture
    def vocab(self, store, clock):
        vocab = VocabularyStore(store, clock=clock)
        vocab.add(make_entry("alt", days_ago=10))
        vocab.add(make_entry("neu", days_ago=0))
        vocab.add(make_entry("gestern", days_ago=1))
        vocab.add(make_entry("letzte Woche", days_ago=7))
        return vocab

    def test_window_keeps_insertion_order(self, vocab):
        assert [e.headword for e in vocab.entries_since(7)] == ["neu", "gestern", "letzte Woche"]

    def test_boundary_is_inclusive(self, vocab):
        assert "gestern" in [e.headword for e in vocab.entries_since(1)]

    def test_zero_days_only_now_or_later(self, vocab, clock):
        assert [e.headword for e in vocab.entries_since(0)] == ["neu"]
        clock.advance(seconds=1)
        assert vocab.entries_since(0) == []

    def test_large_window_returns_everything(self, vocab):
        assert len(vocab.entries_since(365)) == 4

    def test_negative_days_rejected(self, vocab):
        with pytest.raises(ValueError):
            vocab.entries_since(-1)

    def test_period_options(self):
        assert PERIOD_OPTIONS == (1, 3, 7, 14, 30)


class TestPersistence:
    """Whole collection is written on every mutation."""

    def test_every_mutation_persists(self, store, clock):
        vocab = VocabularyStore(store, clock=clock)
        entry = vocab.add(make_entry())
        assert json.loads(store.get(WORDS_KEY))[0]["id"] == entry.id

        vocab.toggle_learned(entry.id)
        assert json.loads(store.get(WORDS_KEY))[0]["is_learned"] is True

        vocab.delete(entry.id)
        assert json.loads(store.get(WORDS_KEY)) == []

    def test_reload_round_trip(self, store, clock):
        vocab = VocabularyStore(store, clock=clock)
        entry = vocab.add(make_entry(etymology="ahd. hunt", synonyms="Köter"))
        reloaded = VocabularyStore(store, clock=clock)
        assert reloaded.get(entry.id) == entry
        assert reloaded.get(entry.id).created_at == NOW

    def test_write_failure_keeps_memory_state(self, clock):
        failing = MagicMock()
        failing.get.return_value = None
        failing.set.side_effect = PersistenceFailure("disk full")
        vocab = VocabularyStore(failing, clock=clock)

        entry = vocab.add(make_entry())

        assert vocab.get(entry.id) is entry
        failing.set.assert_called_once()

    def test_corrupt_collection_starts_empty(self, clock):
        vocab = VocabularyStore(MemoryStore({WORDS_KEY: b"{not json"}), clock=clock)
        assert len(vocab) == 0


class TestAddPhrase:
    """Translation through the LLM, with untranslated fallback."""

    def test_german_input_is_headword(self, store, clock, fake_llm):
        vocab = VocabularyStore(store, translator=fake_llm, clock=clock)
        entry = vocab.add_phrase("  der Apfel ", is_german=True)
        assert entry.headword == "der Apfel"
        assert entry.translation == "apple"
        assert entry.etymology.startswith("From Old High German")
        assert entry.synonyms == "Obst, Frucht"
        assert fake_llm.calls == [("translate", "der Apfel", True)]

    def test_english_input_becomes_translation(self, store, clock, fake_llm):
        fake_llm.translation.translation = "der Apfel"
        vocab = VocabularyStore(store, translator=fake_llm, clock=clock)
        entry = vocab.add_phrase("apple", is_german=False)
        assert entry.headword == "der Apfel"
        assert entry.translation == "apple"

    @pytest.mark.parametrize("error", [NetworkFailure("timeout"), ParseFailure("no JSON")])
    def test_failure_stores_fallback(self, store, clock, fake_llm, error):
        fake_llm.translation = error
        vocab = VocabularyStore(store, translator=fake_llm, clock=clock)

        entry = vocab.add_phrase("der Apfel")

        assert entry.headword == "der Apfel"
        assert entry.translation == ""
        assert entry.etymology == ""
        assert len(vocab) == 1
        assert vocab.last_error is not None

    def test_empty_phrase_is_rejected(self, store, clock, fake_llm):
        vocab = VocabularyStore(store, translator=fake_llm, clock=clock)
        assert vocab.add_phrase("   ") is None
        assert fake_llm.calls == []
        assert "No vocabulary" in vocab.last_error
        vocab.dismiss_error()
        assert vocab.last_error is None

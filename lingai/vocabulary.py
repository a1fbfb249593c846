"""
Vocabulary store: the learner's word list.

The whole list is re-serialized on every mutation. Persistence failures are
logged and swallowed; the in-memory list stays authoritative for the rest of
the process.
"""

from datetime import datetime, timedelta
from typing import Callable, List, Optional

from .errors import LingaiError, EmptyInputFailure, NetworkFailure, PersistenceFailure
from .logger import logger
from .models import WordEntry, utcnow
from .storage import KeyValueStore, WORDS_KEY, save_collection, load_collection

# Recency windows offered to the learner, in days
PERIOD_OPTIONS = (1, 3, 7, 14, 30)


class VocabularyStore:
    def __init__(
        self,
        store: KeyValueStore,
        translator=None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._translator = translator
        self._clock = clock
        self._entries: List[WordEntry] = []
        self.last_error: Optional[str] = None
        self.load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        try:
            self._entries = load_collection(self._store, WORDS_KEY, WordEntry.from_dict)
            logger.store(f"Loaded {len(self._entries)} words")
        except PersistenceFailure as e:
            logger.error(f"Could not load words, starting empty: {e}")
            self._entries = []

    def _save(self) -> None:
        try:
            save_collection(self._store, WORDS_KEY, self._entries)
            logger.store(f"Saved {len(self._entries)} words")
        except PersistenceFailure as e:
            logger.error(f"Could not save words (kept in memory): {e}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def entries(self) -> List[WordEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, entry_id: str) -> Optional[WordEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def entries_since(self, days: int) -> List[WordEntry]:
        """Entries created within the last `days` days, in insertion order."""
        if days < 0:
            raise ValueError(f"days must be non-negative, got {days}")
        cutoff = self._clock() - timedelta(days=days)
        return [entry for entry in self._entries if entry.created_at >= cutoff]

    def recent(self, limit: int = 10) -> List[WordEntry]:
        """The newest entries first."""
        return list(reversed(self._entries[-limit:])) if limit > 0 else []

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, entry: WordEntry) -> WordEntry:
        # duplicates are allowed: repeating a word is meaningful for review
        self._entries.append(entry)
        self._save()
        return entry

    def delete(self, entry_id: str) -> None:
        for index, entry in enumerate(self._entries):
            if entry.id == entry_id:
                del self._entries[index]
                break
        self._save()

    def toggle_learned(self, entry_id: str) -> None:
        entry = self.get(entry_id)
        if entry is None:
            return
        entry.is_learned = not entry.is_learned
        self._save()

    def mark_learned(self, entry_id: str) -> None:
        entry = self.get(entry_id)
        if entry is None or entry.is_learned:
            return
        entry.is_learned = True
        self._save()

    def add_phrase(self, phrase: str, is_german: bool = True) -> Optional[WordEntry]:
        """
        Translate a phrase and store it.

        German is always the headword. If translation fails the phrase is
        still stored, with the other side left empty.
        """
        text = phrase.strip()
        if not text:
            self.last_error = EmptyInputFailure("Enter a word or phrase first").describe()
            return None

        try:
            if self._translator is None:
                raise NetworkFailure("No translator configured")
            result = self._translator.translate(text, is_german)
            entry = WordEntry(
                headword=text if is_german else result.translation,
                translation=result.translation if is_german else text,
                etymology=result.etymology,
                synonyms=result.synonyms,
                created_at=self._clock(),
            )
        except LingaiError as e:
            logger.api_error(f"Translation failed for '{text}', storing untranslated: {e}")
            self.last_error = e.describe()
            entry = WordEntry(
                headword=text if is_german else "",
                translation="" if is_german else text,
                created_at=self._clock(),
            )
        return self.add(entry)

    def dismiss_error(self) -> None:
        self.last_error = None

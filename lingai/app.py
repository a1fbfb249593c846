"""
Composition root: builds every LingAI service with explicit dependencies.

    from lingai.app import create_app

    services = create_app()
    services.vocabulary.add_phrase("der Apfel")
    services.practice.start_window(7)
"""

from dataclasses import dataclass
from typing import Optional

from .api import LanguageModelService
from .audio import AudioBackend, AudioController, PygameBackend
from .config import Settings
from .firestore import FirestoreStore
from .grammar import GrammarManager
from .logger import logger
from .practice import PracticeSession
from .reading import ReadingManager
from .storage import KeyValueStore, JSONFileStore
from .vocabulary import VocabularyStore


@dataclass
class Services:
    settings: Settings
    language_model: LanguageModelService
    vocabulary: VocabularyStore
    practice: PracticeSession
    grammar: GrammarManager
    reading: ReadingManager


def default_store(settings: Settings) -> KeyValueStore:
    """Firestore when credentials are configured, else JSON files in the data dir."""
    if settings.firebase_credentials_path:
        return FirestoreStore(credentials_path=settings.firebase_credentials_path)
    return JSONFileStore(settings.resolved_data_dir)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    language_model: Optional[LanguageModelService] = None,
    audio_backend: Optional[AudioBackend] = None,
) -> Services:
    settings = settings or Settings.from_env()
    logger.separator("LingAI Startup")

    store = store or default_store(settings)
    language_model = language_model or LanguageModelService(settings)
    if not language_model.is_available():
        logger.warning("Translations and generation are unavailable until an API key is set")

    vocabulary = VocabularyStore(store, translator=language_model)
    services = Services(
        settings=settings,
        language_model=language_model,
        vocabulary=vocabulary,
        practice=PracticeSession(vocabulary),
        grammar=GrammarManager(language_model),
        reading=ReadingManager(
            store,
            language_model,
            AudioController(audio_backend or PygameBackend()),
            settings.resolved_audio_dir,
        ),
    )
    logger.success(f"LingAI ready: {len(vocabulary)} words, {len(services.reading.passages)} passages")
    return services

"""
OpenAI-compatible services for LingAI.

This module handles:
- Translation of a German or English phrase (with etymology and synonyms)
- Grammar exercise generation from the learner's vocabulary
- Reading passage + comprehension quiz generation
- Text-to-speech for reading passages

Every chat call is a single user prompt with response_format=json_object.
The raw text is handed to a ResponseExtractor, so callers never see the
brace-span parsing. SDK and transport errors become NetworkFailure; bad or
incomplete JSON becomes ParseFailure.
"""

import os
from typing import List, Optional, Dict, Any

import openai
from openai import OpenAI

from .config import Settings
from .errors import NetworkFailure, ParseFailure, PersistenceFailure
from .extraction import ResponseExtractor, extractor_for
from .logger import logger, Timer
from .models import (
    Translation, GrammarExercise, ExerciseType, Difficulty,
    ReadingPassage, ComprehensionQuestion,
)
from . import schemas


def _require(data: Dict[str, Any], key: str, kind: type, context: str) -> Any:
    """Fetch a required field of the expected JSON type."""
    if key not in data:
        raise ParseFailure(f"{context}: missing field '{key}'")
    value = data[key]
    if not isinstance(value, kind) or (isinstance(value, bool) and kind is int):
        raise ParseFailure(f"{context}: field '{key}' has unexpected type {type(value).__name__}")
    return value


def _json_to_exercise(data: Dict[str, Any]) -> Optional[GrammarExercise]:
    """
    Convert one generated exercise. Returns None for an unknown type or
    difficulty; raises ParseFailure when required fields are missing.
    """
    if not isinstance(data, dict):
        raise ParseFailure("exercise: expected an object")
    kind = _require(data, "type", str, "exercise")
    question = _require(data, "question", str, "exercise")
    correct_answer = _require(data, "correct_answer", str, "exercise")
    explanation = _require(data, "explanation", str, "exercise")
    difficulty = _require(data, "difficulty", str, "exercise")
    used_words = _require(data, "used_words", list, "exercise")
    options = data.get("options") or []
    if not isinstance(options, list):
        raise ParseFailure("exercise: field 'options' has unexpected type")

    try:
        exercise_type = ExerciseType(kind)
        level = Difficulty(difficulty)
    except ValueError:
        logger.warning(f"Dropping exercise with type={kind!r} difficulty={difficulty!r}")
        return None

    return GrammarExercise(
        kind=exercise_type,
        prompt=question,
        correct_answer=correct_answer,
        options=[str(o) for o in options],
        explanation=explanation,
        difficulty=level,
        used_words=[str(w) for w in used_words],
    )


def _json_to_question(data: Dict[str, Any]) -> ComprehensionQuestion:
    if not isinstance(data, dict):
        raise ParseFailure("question: expected an object")
    return ComprehensionQuestion(
        prompt=_require(data, "question", str, "question"),
        options=[str(o) for o in _require(data, "options", list, "question")],
        correct_option_index=_require(data, "correct_answer", int, "question"),
    )


class LanguageModelService:
    """
    Thin wrapper over the OpenAI SDK client.

    Works against any OpenAI-compatible endpoint (set base_url for Mistral
    and friends). Pass client= to inject a preconfigured or fake client.
    """

    def __init__(
        self,
        settings: Settings,
        client: Optional[Any] = None,
        extractor: Optional[ResponseExtractor] = None,
    ):
        self.settings = settings
        self.extractor = extractor or extractor_for(settings.strict_json)
        if client is not None:
            self.client = client
        elif settings.api_key:
            logger.env("Initializing OpenAI client...")
            self.client = OpenAI(
                api_key=settings.api_key,
                base_url=settings.base_url,
                timeout=settings.request_timeout,
            )
            logger.env_success("OpenAI client initialized successfully")
        else:
            logger.warning("No API key configured, remote calls will fail")
            self.client = None
        logger.env(f"Response extractor: {self.extractor.name}")

    def is_available(self) -> bool:
        """Check if the client is properly configured."""
        return self.client is not None

    def _ensure_client(self) -> Any:
        if self.client is None:
            raise NetworkFailure("LLM client not configured (OPENAI_API_KEY missing)")
        return self.client

    # ------------------------------------------------------------------
    # Chat completion
    # ------------------------------------------------------------------

    def chat_json(self, prompt: str, endpoint: str = "chat") -> Dict[str, Any]:
        """Send one prompt and return the extracted JSON object."""
        client = self._ensure_client()
        model = self.settings.chat_model

        logger.api_call(f"chat.completions.create ({endpoint})", model=model)
        try:
            with Timer() as timer:
                completion = client.chat.completions.create(
                    model=model,
                    messages=[{"role": "user", "content": prompt}],
                    response_format={"type": "json_object"},
                )
        except openai.APIError as e:
            logger.api_error(f"{endpoint} request failed: {e}")
            raise NetworkFailure(str(e)) from e
        logger.api_response("chat.completions.create", duration_ms=timer.duration_ms)

        try:
            raw = completion.choices[0].message.content
        except (AttributeError, IndexError) as e:
            raise ParseFailure(f"{endpoint}: completion has no message content") from e
        logger.debug(f"Raw {endpoint} response: {len(raw or '')} chars")
        return self.extractor.extract(raw or "")

    # ------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------

    def translate(self, phrase: str, is_german: bool = True) -> Translation:
        """Translate a phrase between German and English."""
        direction = "de→en" if is_german else "en→de"
        logger.api(f"translate() called for '{phrase}' ({direction})")

        data = self.chat_json(schemas.translation_prompt(phrase, is_german), endpoint="translate")
        result = Translation(
            translation=_require(data, "trans", str, "translation").strip(),
            etymology=_require(data, "etym", str, "translation").strip(),
            synonyms=_require(data, "synonyms", str, "translation").strip(),
        )
        logger.success(f"Translated '{phrase}' → '{result.translation}'")
        return result

    # ------------------------------------------------------------------
    # Grammar exercises
    # ------------------------------------------------------------------

    def generate_grammar_exercises(
        self,
        words: List[str],
        exercise_type: str,
        count: int = 5,
    ) -> List[GrammarExercise]:
        """
        Generate up to `count` exercises of one type.

        Exercises with an unknown type or difficulty are dropped, so the
        result may be shorter than requested (or empty).
        """
        logger.api(f"generate_grammar_exercises() - {count}x {exercise_type}, {len(words)} words")

        data = self.chat_json(schemas.grammar_prompt(words, exercise_type, count), endpoint="grammar")
        generated = _require(data, "exercises", list, "grammar response")

        exercises = []
        for item in generated:
            exercise = _json_to_exercise(item)
            if exercise is not None:
                exercises.append(exercise)

        logger.success(f"Generated {len(exercises)}/{len(generated)} usable exercises")
        return exercises

    # ------------------------------------------------------------------
    # Reading passages
    # ------------------------------------------------------------------

    def generate_reading_passage(
        self,
        vocabulary: List[str],
        custom_instructions: str = "",
    ) -> ReadingPassage:
        """Generate a passage (without audio) using the given vocabulary."""
        logger.api(f"generate_reading_passage() - {len(vocabulary)} words")
        if custom_instructions.strip():
            logger.debug(f"Custom instructions: {custom_instructions.strip()[:80]}")

        data = self.chat_json(
            schemas.reading_prompt(vocabulary, custom_instructions), endpoint="reading"
        )
        passage = ReadingPassage(
            title=_require(data, "title", str, "passage").strip(),
            body=_require(data, "content", str, "passage").strip(),
            questions=[_json_to_question(q) for q in _require(data, "questions", list, "passage")],
            source_vocabulary=list(vocabulary),
        )
        logger.success(f"Passage generated: '{passage.title}' ({len(passage.questions)} questions)")
        return passage

    # ------------------------------------------------------------------
    # Text-to-Speech
    # ------------------------------------------------------------------

    def synthesize_speech(
        self,
        text: str,
        path: str,
        voice: Optional[str] = None,
        instructions: Optional[str] = None,
    ) -> str:
        """
        Synthesize `text` and write the MP3 to `path`.

        Returns the path. Raises NetworkFailure when the call fails and
        PersistenceFailure when the file cannot be written.
        """
        client = self._ensure_client()
        selected_voice = voice or self.settings.tts_voice
        style = self.settings.tts_instructions if instructions is None else instructions

        if not text or not text.strip():
            raise ParseFailure("Empty text provided for TTS")

        logger.tts_start(text, selected_voice)
        request: Dict[str, Any] = {
            "model": self.settings.tts_model,
            "voice": selected_voice,
            "input": text,
            "response_format": "mp3",
        }
        if style:
            request["instructions"] = style
            logger.tts(f"Style: {style[:60]}")

        try:
            logger.api_call("audio.speech.create", model=self.settings.tts_model)
            with Timer() as timer:
                response = client.audio.speech.create(**request)
            logger.tts(f"Writing audio to {path}")
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            with open(path, "wb") as f:
                for chunk in response.iter_bytes():
                    f.write(chunk)
        except openai.APIError as e:
            logger.tts_error(f"Speech request failed: {e}")
            raise NetworkFailure(str(e)) from e
        except OSError as e:
            logger.tts_error(f"Could not write audio file {path}: {e}")
            raise PersistenceFailure(f"Could not write audio file: {e}") from e

        logger.tts_complete(path, duration_ms=timer.duration_ms)
        return path

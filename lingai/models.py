import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Dict, Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def _parse_timestamp(value: Any) -> datetime:
    """Read an ISO timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif value:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    else:
        return utcnow()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ExerciseType(str, Enum):
    """Grammar exercise kinds, valued as the LLM names them."""
    FILL_BLANK = "fill_blank"
    SENTENCE_BUILDING = "sentence_building"
    CASE_SELECTION = "case_selection"
    VERB_CONJUGATION = "verb_conjugation"

    @property
    def display_name(self) -> str:
        return {
            ExerciseType.FILL_BLANK: "Fill in the Blank",
            ExerciseType.SENTENCE_BUILDING: "Sentence Building",
            ExerciseType.CASE_SELECTION: "Case Selection",
            ExerciseType.VERB_CONJUGATION: "Verb Conjugation",
        }[self]


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


@dataclass
class WordEntry:
    """
    A single vocabulary item.
    Only is_learned changes after creation.
    """
    headword: str                      # German
    translation: str                   # English
    created_at: datetime = field(default_factory=utcnow)
    is_learned: bool = False
    etymology: str = ""
    synonyms: str = ""                 # comma separated, as the LLM returns them
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WordEntry":
        values = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        values["created_at"] = _parse_timestamp(values.get("created_at"))
        return cls(**values)


@dataclass
class Translation:
    """Parsed answer of a translation call."""
    translation: str
    etymology: str = ""
    synonyms: str = ""


@dataclass(frozen=True)
class GrammarExercise:
    """A generated grammar exercise. Replaced wholesale, never edited."""
    kind: ExerciseType
    prompt: str
    correct_answer: str
    options: List[str] = field(default_factory=list)   # empty for sentence_building
    explanation: str = ""
    difficulty: Difficulty = Difficulty.BEGINNER
    used_words: List[str] = field(default_factory=list)


@dataclass
class ComprehensionQuestion:
    prompt: str
    options: List[str] = field(default_factory=list)
    correct_option_index: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ComprehensionQuestion":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class ReadingPassage:
    """
    A generated reading text with its comprehension quiz.
    audio_asset_ref is filled in once speech synthesis has finished.
    """
    title: str
    body: str
    questions: List[ComprehensionQuestion] = field(default_factory=list)
    source_vocabulary: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    audio_asset_ref: Optional[str] = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "questions": [q.to_dict() for q in self.questions],
            "source_vocabulary": list(self.source_vocabulary),
            "created_at": self.created_at.isoformat(),
            "audio_asset_ref": self.audio_asset_ref,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReadingPassage":
        values = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        values["questions"] = [
            ComprehensionQuestion.from_dict(q) for q in values.get("questions", []) or []
        ]
        values["created_at"] = _parse_timestamp(values.get("created_at"))
        return cls(**values)


UNANSWERED = -1


@dataclass
class ReadingSession:
    """A completed quiz for one passage."""
    passage_id: str                    # lookup only, the passage may be gone
    chosen_answers: List[int] = field(default_factory=list)
    score: int = 0                     # 0-100
    completed_at: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["completed_at"] = self.completed_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReadingSession":
        values = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        values["completed_at"] = _parse_timestamp(values.get("completed_at"))
        return cls(**values)

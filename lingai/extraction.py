"""
Response extractors: turn the raw text of a chat completion into a JSON object.

LLMs asked for JSON still sometimes wrap it in prose or code fences, so the
default extractor takes everything from the first '{' to the last '}'.
StrictJSONExtractor is for models that honour response_format reliably.
"""

import json
from typing import Any, Dict

from .errors import ParseFailure


class ResponseExtractor:
    """Interface: extract(raw) -> dict, raising ParseFailure."""

    name = "base"

    def extract(self, raw: str) -> Dict[str, Any]:
        raise NotImplementedError

    @staticmethod
    def _load(text: str) -> Dict[str, Any]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseFailure(f"Invalid JSON in response: {e}") from e
        if not isinstance(data, dict):
            raise ParseFailure(f"Expected a JSON object, got {type(data).__name__}")
        return data


class BraceSpanExtractor(ResponseExtractor):
    """Parse the substring between the first '{' and the last '}'."""

    name = "brace-span"

    def extract(self, raw: str) -> Dict[str, Any]:
        if not raw:
            raise ParseFailure("Empty response")
        start = raw.find("{")
        end = raw.rfind("}")
        if start == -1 or end == -1 or end < start:
            raise ParseFailure("Could not find JSON in response.")
        return self._load(raw[start:end + 1])


class StrictJSONExtractor(ResponseExtractor):
    """The whole body must be one JSON object."""

    name = "strict"

    def extract(self, raw: str) -> Dict[str, Any]:
        if not raw or not raw.strip():
            raise ParseFailure("Empty response")
        return self._load(raw.strip())


def extractor_for(strict: bool) -> ResponseExtractor:
    return StrictJSONExtractor() if strict else BraceSpanExtractor()

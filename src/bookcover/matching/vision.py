# ABOUTME: Visual verification collaborator: reads title/author off a cover image.
# ABOUTME: Defines the VisionValidator protocol and a Gemini-backed implementation.

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from bookcover.providers.http import HttpClient, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_VISION_MODEL = "gemini-1.5-flash"

_PROMPT = """You are checking whether a book cover image belongs to a specific book.
Expected title: {title}
Expected author: {author}

Read the title and author printed on the cover and answer with JSON only:
{{
  "coverTitle": "title as printed on the cover",
  "coverAuthor": "author as printed on the cover",
  "titleMatch": true or false,
  "authorMatch": true or false,
  "confidence": integer 0-100,
  "isValid": true if this is a real cover of the expected book,
  "reason": "short explanation"
}}"""


class VisionError(Exception):
    """Raised when the visual verification collaborator cannot produce a verdict."""


@dataclass
class VisionCheck:
    """What the vision collaborator read off a cover image."""

    cover_title: str
    cover_author: str
    title_match: bool
    author_match: bool
    confidence: int
    is_valid: bool
    reason: str = ""


@runtime_checkable
class VisionValidator(Protocol):
    """Protocol for checking a cover image against an expected title and author."""

    def validate(self, image_url: str, title: str, author: str) -> VisionCheck: ...


def parse_vision_response(text: str) -> VisionCheck:
    """Parse the collaborator's JSON verdict, tolerating a fenced code block."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.startswith("json"):
            cleaned = cleaned[4:]
    try:
        data: dict[str, Any] = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise VisionError(f"Unparseable vision response: {exc}") from exc
    if not isinstance(data, dict):
        raise VisionError("Vision response is not a JSON object")

    try:
        confidence = int(data.get("confidence", 0))
    except (TypeError, ValueError) as exc:
        raise VisionError(f"Invalid confidence value: {data.get('confidence')!r}") from exc

    return VisionCheck(
        cover_title=str(data.get("coverTitle") or ""),
        cover_author=str(data.get("coverAuthor") or ""),
        title_match=bool(data.get("titleMatch")),
        author_match=bool(data.get("authorMatch")),
        confidence=max(0, min(100, confidence)),
        is_valid=bool(data.get("isValid")),
        reason=str(data.get("reason") or ""),
    )


class GeminiVisionValidator:
    """VisionValidator backed by a Gemini multimodal model.

    Downloads the cover through the shared HTTP client, then asks the model to
    transcribe the cover and compare it with the expected book.
    """

    def __init__(
        self,
        http_client: HttpClient,
        *,
        api_key: str,
        model: str = DEFAULT_VISION_MODEL,
        generate_fn: Any = None,
    ) -> None:
        self._http = http_client
        self._api_key = api_key
        self._model_name = model
        self._generate_fn = generate_fn

    def validate(self, image_url: str, title: str, author: str) -> VisionCheck:
        try:
            image_bytes, mime_type = self._http.get_bytes(image_url)
        except ProviderError as exc:
            raise VisionError(f"Could not download cover {image_url}: {exc}") from exc

        prompt = _PROMPT.format(title=title, author=author or "(unknown)")
        image_part = {
            "mime_type": mime_type or "image/jpeg",
            "data": image_bytes,
        }
        try:
            text = self._generate([prompt, image_part])
        except VisionError:
            raise
        except Exception as exc:
            raise VisionError(f"Vision model call failed: {exc}") from exc

        check = parse_vision_response(text)
        logger.debug(
            "Vision check for %r: cover=%r confidence=%d",
            title,
            check.cover_title,
            check.confidence,
        )
        return check

    def _generate(self, parts: list[Any]) -> str:
        if self._generate_fn is not None:
            return self._generate_fn(parts)

        import google.generativeai as genai

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(self._model_name)
        response = model.generate_content(
            parts,
            generation_config={"response_mime_type": "application/json", "temperature": 0.0},
        )
        return response.text

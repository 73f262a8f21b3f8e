# ABOUTME: Pydantic request and response models for the cover lookup HTTP API.
# ABOUTME: Field names follow the JSON wire format (camelCase) used by browser clients.

from pydantic import BaseModel, Field, field_validator

from bookcover.types import AccuracyMode, ResolutionResult


class CoverRequest(BaseModel):
    """Body of POST /api/book-cover."""

    title: str = Field(..., max_length=500)
    author: str = Field(default="", max_length=200)
    isbn: str | None = None
    genre: str | None = None
    accuracyMode: AccuracyMode = AccuracyMode.BALANCED

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be empty")
        return value


class CoverResponse(BaseModel):
    """Lookup outcome. Optional fields are omitted when unknown."""

    success: bool
    imageUrl: str | None = None
    confidence: int | None = None
    source: str | None = None
    searchMethod: str | None = None

    @classmethod
    def from_result(cls, result: ResolutionResult) -> "CoverResponse":
        return cls(
            success=result.success,
            imageUrl=result.image_url,
            confidence=result.confidence,
            source=result.source or None,
            searchMethod=result.strategy_used,
        )


class HealthResponse(BaseModel):
    status: str
    cacheSize: int

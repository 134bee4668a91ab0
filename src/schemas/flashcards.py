from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Flashcard(BaseModel):
    """One question/answer unit with an identifier that is stable within its set."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Identifier, unique within the owning set")
    question: str = Field(..., description="Question side of the card")
    answer: str = Field(..., description="Answer side of the card")

    @field_validator("id", "question", "answer", mode="before")
    @classmethod
    def _strip_and_require(cls, value):
        if isinstance(value, str):
            value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


class FlashcardSet(BaseModel):
    """Normalized result of one ingestion attempt."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = Field(..., description="Display label for the set")
    source: str = Field(..., description="Article URL, pasted-text marker or import provenance")
    cards: List[Flashcard] = Field(..., min_length=1)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="createdAt",
        description="When the set was normalized, not when the content was authored",
    )

    @model_validator(mode="after")
    def _unique_card_ids(self):
        seen = set()
        for card in self.cards:
            if card.id in seen:
                raise ValueError(f"duplicate card id: {card.id}")
            seen.add(card.id)
        return self


class WikipediaContent(BaseModel):
    """Plain-text article returned by the document fetcher."""

    title: str
    content: str


class ExtractedFlashcard(BaseModel):
    """Card as produced by the extraction service, before ids are settled."""

    id: Optional[str] = None
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)

    @field_validator("question", "answer", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class ExtractionOptions(BaseModel):
    """Optional knobs passed through to the extraction service."""

    max_cards: Optional[int] = Field(None, ge=1, le=50)
    model: Optional[str] = None
    temperature: float = Field(0.3, ge=0.0, le=2.0)

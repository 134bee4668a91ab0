"""Pydantic models for OpenAI structured outputs."""

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from src.schemas.flashcards import ExtractedFlashcard


class FlashcardExtractionResponse(BaseModel):
    """Structured response expected from the extraction model."""

    model_config = ConfigDict(extra="ignore")

    flashcards: List[ExtractedFlashcard] = Field(
        ...,
        description="Question/answer pairs extracted from the source text, in reading order",
    )
    diagnostics: List[str] = Field(
        default_factory=list,
        description="Notes explaining dropped items or schema corrections (for logging/observability)",
    )

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from src.schemas.ingestion import ErrorKind


class GenerateRequest(BaseModel):
    """Payload for generating flashcards from a Wikipedia URL or pasted text."""

    input: str = Field("", description="Wikipedia article URL or the text to extract flashcards from")
    is_url_mode: bool = Field(True, description="Treat input as a Wikipedia URL")

    class Config:
        json_schema_extra = {
            "example": {
                "input": "https://en.wikipedia.org/wiki/Artificial_intelligence",
                "is_url_mode": True,
            }
        }


class ErrorDetail(BaseModel):
    """Error body returned with non-2xx responses."""

    kind: ErrorKind
    message: str
    position: Optional[int] = Field(
        None, description="1-based card position or CSV row number, when one applies"
    )


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"

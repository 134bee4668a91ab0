from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from src.schemas.flashcards import FlashcardSet


class ErrorKind(str, Enum):
    EMPTY_INPUT = "empty_input"
    MISSING_CREDENTIAL = "missing_credential"
    INVALID_SOURCE = "invalid_source"
    BUSY = "busy"
    FETCH_FAILED = "fetch_failed"
    EXTRACTION_FAILED = "extraction_failed"
    PARSE_ERROR = "parse_error"
    VALIDATION_ERROR = "validation_error"
    MISSING_COLUMNS = "missing_columns"
    INSUFFICIENT_ROWS = "insufficient_rows"
    NO_VALID_CARDS = "no_valid_cards"
    UNKNOWN = "unknown"


class IngestionState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    IMPORTING = "importing"
    DONE = "done"
    ERROR = "error"


class ImportKind(str, Enum):
    JSON = "json"
    CSV = "csv"


class IngestionError(BaseModel):
    """Typed failure surfaced to the caller."""

    kind: ErrorKind
    message: str
    position: Optional[int] = Field(
        None, description="1-based record index or row number, when one applies"
    )


class IngestionSuccess(BaseModel):
    status: Literal["success"] = "success"
    flashcard_set: FlashcardSet


class IngestionFailure(BaseModel):
    status: Literal["failure"] = "failure"
    error: IngestionError


IngestionResult = Annotated[
    Union[IngestionSuccess, IngestionFailure], Field(discriminator="status")
]


def failure(kind: ErrorKind, message: str, position: Optional[int] = None) -> IngestionFailure:
    return IngestionFailure(error=IngestionError(kind=kind, message=message, position=position))

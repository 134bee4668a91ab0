"""Import flashcards from a previously exported JSON file.

Two layouts are accepted:

* a bare list of ``{"id"?, "question", "answer"}`` records, or
* a set object ``{"title"?, "source"?, "cards": [...]}``.

Malformed syntax is reported as ``parse_error``; well-formed input with the
wrong shape as ``validation_error`` carrying the 1-based record position.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Optional, Set, Union

from pydantic import ValidationError

from src.schemas.flashcards import Flashcard, FlashcardSet
from src.schemas.ingestion import (
    ErrorKind,
    IngestionFailure,
    IngestionResult,
    IngestionSuccess,
    failure,
)
from src.services.importers.common import import_provenance, title_from_file_name

logger = logging.getLogger(__name__)

GENERATED_ID_PREFIX = "imported"


@dataclass(frozen=True)
class CardRecord:
    """A record that passed validation but has not been given its final id."""

    position: int
    question: str
    answer: str
    id: Optional[str] = None


def parse_json_flashcards(
    raw_text: str, file_name: str, now: Optional[datetime] = None
) -> IngestionResult:
    """Parse ``raw_text`` and normalize it into a ``FlashcardSet``."""
    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError as e:
        return failure(
            ErrorKind.PARSE_ERROR,
            f"Invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})",
        )
    return build_flashcard_set(data, file_name, now=now)


def build_flashcard_set(
    data: Any, file_name: str, now: Optional[datetime] = None
) -> IngestionResult:
    """Validate already-decoded JSON data."""
    if data is None or not isinstance(data, (list, dict)):
        return failure(ErrorKind.VALIDATION_ERROR, "Invalid JSON format")

    title = title_from_file_name(file_name, ["json"])
    source = import_provenance(file_name)

    if isinstance(data, list):
        records = data
    elif isinstance(data.get("cards"), list):
        records = data["cards"]
        title = coerce_text(data.get("title")) or title
        source = coerce_text(data.get("source")) or source
    else:
        return failure(
            ErrorKind.VALIDATION_ERROR,
            "JSON must contain an array of flashcards or a FlashcardSet object with a cards array",
        )

    validated: List[CardRecord] = []
    for position, record in enumerate(records, start=1):
        checked = validate_card_record(record, position)
        if isinstance(checked, IngestionFailure):
            return checked
        validated.append(checked)

    if not validated:
        return failure(ErrorKind.NO_VALID_CARDS, "No valid flashcards found in the file")

    cards = assign_card_ids(validated, GENERATED_ID_PREFIX)
    if isinstance(cards, IngestionFailure):
        return cards

    try:
        flashcard_set = FlashcardSet(
            title=title,
            source=source,
            cards=cards,
            created_at=now or datetime.now(timezone.utc),
        )
    except ValidationError as e:
        return failure(ErrorKind.VALIDATION_ERROR, f"Invalid flashcard set: {e.errors()[0]['msg']}")

    logger.info(f"Imported {len(cards)} flashcards from {file_name}")
    return IngestionSuccess(flashcard_set=flashcard_set)


def validate_card_record(record: Any, position: int) -> Union[CardRecord, IngestionFailure]:
    """Convert one untyped record into a ``CardRecord`` or a positioned failure."""
    if not isinstance(record, dict):
        return failure(
            ErrorKind.VALIDATION_ERROR, f"Invalid card at position {position}", position
        )

    question = coerce_text(record.get("question"))
    answer = coerce_text(record.get("answer"))
    if not question or not answer:
        return failure(
            ErrorKind.VALIDATION_ERROR,
            f"Card at position {position} must have both question and answer fields",
            position,
        )

    return CardRecord(
        position=position,
        question=question,
        answer=answer,
        id=coerce_text(record.get("id")),
    )


def assign_card_ids(
    records: List[CardRecord], prefix: str
) -> Union[List[Flashcard], IngestionFailure]:
    """Keep explicit ids and derive missing ones from the record position.

    A derived id never reuses an id that appears explicitly in the batch.
    """
    taken: Set[str] = set()
    for record in records:
        if record.id is None:
            continue
        if record.id in taken:
            return failure(
                ErrorKind.VALIDATION_ERROR,
                f'Card at position {record.position} has a duplicate id "{record.id}"',
                record.position,
            )
        taken.add(record.id)

    cards: List[Flashcard] = []
    for record in records:
        card_id = record.id
        if card_id is None:
            card_id = unique_id(f"{prefix}-{record.position}", taken)
            taken.add(card_id)
        cards.append(Flashcard(id=card_id, question=record.question, answer=record.answer))
    return cards


def unique_id(candidate: str, taken: Set[str]) -> str:
    if candidate not in taken:
        return candidate
    suffix = 2
    while f"{candidate}-{suffix}" in taken:
        suffix += 1
    return f"{candidate}-{suffix}"


def coerce_text(value: Any) -> Optional[str]:
    """Return trimmed text for scalar values, ``None`` for anything else or blank."""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    text = str(value).strip()
    return text or None

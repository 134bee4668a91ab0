"""Import flashcards from delimited text (CSV or TSV).

The first non-blank row is the header. The question and answer columns are
the first header cells containing "question" and "answer", so exports such
as ``Front Question,Back Answer`` are accepted too.
"""

import csv
import io
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from src.schemas.flashcards import Flashcard, FlashcardSet
from src.schemas.ingestion import ErrorKind, IngestionResult, IngestionSuccess, failure
from src.services.importers.common import import_provenance, title_from_file_name

logger = logging.getLogger(__name__)

QUOTE_CHAR = '"'
QUESTION_TERM = "question"
ANSWER_TERM = "answer"


def delimiter_for(file_name: str) -> str:
    return "\t" if (file_name or "").lower().endswith(".tsv") else ","


def parse_csv_flashcards(
    raw_text: str,
    file_name: str,
    delimiter: Optional[str] = None,
    now: Optional[datetime] = None,
) -> IngestionResult:
    """Parse delimited text into a ``FlashcardSet``.

    Row numbers in error messages are line numbers, so the header is row 1
    and the first data row is row 2.
    """
    delimiter = delimiter or delimiter_for(file_name)

    try:
        rows = _read_rows(raw_text, delimiter)
    except csv.Error as e:
        return failure(ErrorKind.PARSE_ERROR, f"Invalid CSV: {e}")

    if len(rows) < 2:
        return failure(
            ErrorKind.INSUFFICIENT_ROWS,
            "CSV must contain at least a header row and one data row",
        )

    _, header_cells = rows[0]
    header = [_normalize_header(cell) for cell in header_cells]
    question_index = _find_column(header, QUESTION_TERM)
    answer_index = _find_column(header, ANSWER_TERM)
    if question_index is None or answer_index is None:
        return failure(
            ErrorKind.MISSING_COLUMNS,
            'CSV must contain columns with "question" and "answer" in their names',
        )

    required = max(question_index, answer_index)
    cards: List[Flashcard] = []
    for ordinal, (row_number, fields) in enumerate(rows[1:], start=1):
        if len(fields) <= required:
            return failure(
                ErrorKind.VALIDATION_ERROR,
                f"Row {row_number} does not have enough columns",
                row_number,
            )

        question = _clean_field(fields[question_index])
        answer = _clean_field(fields[answer_index])
        if not question or not answer:
            return failure(
                ErrorKind.VALIDATION_ERROR,
                f"Row {row_number} has empty question or answer",
                row_number,
            )

        cards.append(Flashcard(id=f"imported-csv-{ordinal}", question=question, answer=answer))

    if not cards:
        return failure(ErrorKind.NO_VALID_CARDS, "No valid flashcards found in the CSV file")

    flashcard_set = FlashcardSet(
        title=title_from_file_name(file_name, ["csv", "tsv"]),
        source=import_provenance(file_name),
        cards=cards,
        created_at=now or datetime.now(timezone.utc),
    )
    logger.info(f"Imported {len(cards)} flashcards from {file_name}")
    return IngestionSuccess(flashcard_set=flashcard_set)


def _read_rows(raw_text: str, delimiter: str) -> List[Tuple[int, List[str]]]:
    """Return ``(line_number, fields)`` for every non-blank row."""
    text = raw_text.lstrip("\ufeff")
    reader = csv.reader(io.StringIO(text), delimiter=delimiter, skipinitialspace=True)
    rows = []
    for fields in reader:
        if not any(field.strip() for field in fields):
            continue
        rows.append((reader.line_num, fields))
    return rows


def _normalize_header(cell: str) -> str:
    return cell.strip().lower().replace(QUOTE_CHAR, "")


def _find_column(header: List[str], term: str) -> Optional[int]:
    return next((i for i, name in enumerate(header) if term in name), None)


def _clean_field(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == QUOTE_CHAR and value[-1] == QUOTE_CHAR:
        value = value[1:-1].strip()
    return value

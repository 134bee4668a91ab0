"""Serialize a ``FlashcardSet`` into the formats the importers read back."""

import csv
import io
import json

from src.schemas.flashcards import FlashcardSet


def export_json(flashcard_set: FlashcardSet) -> str:
    payload = {
        "title": flashcard_set.title,
        "source": flashcard_set.source,
        "createdAt": flashcard_set.created_at.isoformat(),
        "cards": [card.model_dump() for card in flashcard_set.cards],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


def export_csv(flashcard_set: FlashcardSet, delimiter: str = ",") -> str:
    """Two-column export with a ``Question,Answer`` header, every field quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=delimiter, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(["Question", "Answer"])
    for card in flashcard_set.cards:
        writer.writerow([card.question, card.answer])
    return buffer.getvalue()


def export_filename(flashcard_set: FlashcardSet, extension: str) -> str:
    stem = "".join(ch if ch.isalnum() or ch in " -_" else "_" for ch in flashcard_set.title)
    stem = "_".join(stem.split()) or "flashcards"
    return f"{stem}.{extension}"

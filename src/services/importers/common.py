import re
from typing import Iterable


def title_from_file_name(file_name: str, extensions: Iterable[str]) -> str:
    """Drop a known extension (case-insensitive) and surrounding whitespace."""
    name = (file_name or "").strip()
    for ext in extensions:
        name = re.sub(rf"\.{re.escape(ext)}$", "", name, flags=re.IGNORECASE)
    return name.strip() or "Imported Flashcards"


def import_provenance(file_name: str) -> str:
    return f"Imported from {file_name}"

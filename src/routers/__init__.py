"""Router modules for the flashcard API."""

from . import flashcards, ping

__all__ = ["flashcards", "ping"]

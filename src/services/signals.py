"""Caller-visible channels for one ingestion attempt: loading, result, error."""

from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple, Union

from src.schemas.flashcards import FlashcardSet


class IngestionListener(Protocol):
    def on_loading(self, loading: bool) -> None:
        ...

    def on_result(self, flashcard_set: FlashcardSet) -> None:
        ...

    def on_error(self, message: Optional[str]) -> None:
        ...


class NullListener:
    def on_loading(self, loading: bool) -> None:
        pass

    def on_result(self, flashcard_set: FlashcardSet) -> None:
        pass

    def on_error(self, message: Optional[str]) -> None:
        pass


SignalEvent = Tuple[str, Union[bool, FlashcardSet, str, None]]


@dataclass
class IngestionSignals:
    """Listener that keeps the latest value of each channel and the event order."""

    loading: bool = False
    result: Optional[FlashcardSet] = None
    error: Optional[str] = None
    history: List[SignalEvent] = field(default_factory=list)

    def on_loading(self, loading: bool) -> None:
        self.loading = loading
        self.history.append(("loading", loading))

    def on_result(self, flashcard_set: FlashcardSet) -> None:
        self.result = flashcard_set
        self.history.append(("result", flashcard_set))

    def on_error(self, message: Optional[str]) -> None:
        self.error = message
        self.history.append(("error", message))

    def channel_events(self, channel: str) -> list:
        return [value for name, value in self.history if name == channel]

import pytest

from src.config import Settings
from src.schemas.flashcards import WikipediaContent
from src.services.flashcards import FlashcardIngestionService
from src.services.preferences import InMemoryPreferenceStore
from src.services.signals import IngestionSignals


class FakeFetcher:
    def __init__(self, content=None, error=None):
        self.content = content or WikipediaContent(
            title="React",
            content="React is a JavaScript library for building user interfaces.",
        )
        self.error = error
        self.calls = []

    async def fetch(self, reference):
        self.calls.append(reference)
        if self.error:
            raise self.error
        return self.content


class FakeExtractor:
    def __init__(self, cards=None, error=None):
        self.cards = cards if cards is not None else [
            {"id": "1", "question": "What is React?", "answer": "A JavaScript library for building user interfaces."}
        ]
        self.error = error
        self.calls = []

    async def extract_flashcards(self, text, options=None, simulated=False):
        self.calls.append((text, options, simulated))
        if self.error:
            raise self.error
        return list(self.cards)


@pytest.fixture
def settings():
    return Settings(_env_file=None, llm_api_key="test-key")


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def preferences():
    return InMemoryPreferenceStore()


@pytest.fixture
def signals():
    return IngestionSignals()


@pytest.fixture
def service(settings, fetcher, extractor, preferences, signals):
    return FlashcardIngestionService(
        settings=settings,
        fetcher=fetcher,
        extractor=extractor,
        preferences=preferences,
        listener=signals,
    )

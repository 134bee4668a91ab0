import asyncio

import pytest

from src.config import Settings
from src.exceptions import LLMTimeoutError, WikipediaFetchError
from src.schemas.ingestion import ErrorKind, ImportKind, IngestionFailure, IngestionState, IngestionSuccess
from src.services.flashcards import FlashcardIngestionService
from src.services.preferences import InMemoryPreferenceStore
from src.services.signals import IngestionSignals
from tests.conftest import FakeExtractor, FakeFetcher

REACT_URL = "https://en.wikipedia.org/wiki/React_(JavaScript_library)"


class BytesReader:
    def __init__(self, payload):
        self.payload = payload

    async def read(self):
        return self.payload


class BlockingReader:
    def __init__(self):
        self.started = asyncio.Event()

    async def read(self):
        self.started.set()
        await asyncio.Event().wait()


class BlockingFetcher(FakeFetcher):
    def __init__(self):
        super().__init__()
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def fetch(self, reference):
        self.started.set()
        await self.release.wait()
        return await super().fetch(reference)


def _service(settings, fetcher=None, extractor=None, preferences=None, listener=None):
    return FlashcardIngestionService(
        settings=settings,
        fetcher=fetcher or FakeFetcher(),
        extractor=extractor or FakeExtractor(),
        preferences=preferences or InMemoryPreferenceStore(),
        listener=listener,
    )


class TestSubmit:
    @pytest.mark.asyncio
    async def test_url_mode_fetches_and_titles_from_url(self, service, fetcher, extractor, signals):
        result = await service.submit(REACT_URL, is_url_mode=True)

        assert isinstance(result, IngestionSuccess)
        assert fetcher.calls == [REACT_URL]
        assert extractor.calls[0][0] == fetcher.content.content
        flashcard_set = result.flashcard_set
        assert flashcard_set.title == "React (JavaScript library)"
        assert flashcard_set.source == REACT_URL
        assert flashcard_set.cards[0].question == "What is React?"
        assert signals.result == flashcard_set
        assert signals.error is None
        assert service.state is IngestionState.DONE

    @pytest.mark.asyncio
    async def test_text_mode_skips_fetch(self, service, fetcher, extractor):
        text = "Photosynthesis converts light energy into chemical energy."

        result = await service.submit(text, is_url_mode=False)

        assert fetcher.calls == []
        assert extractor.calls[0][0] == text
        assert result.flashcard_set.title == "Custom Text Flashcards"
        assert result.flashcard_set.source == "Custom text"

    @pytest.mark.asyncio
    async def test_signal_order_delivers_result_before_clearing_loading(self, service, signals):
        await service.submit(REACT_URL, is_url_mode=True)

        channels = [name for name, _ in signals.history]
        assert channels == ["error", "loading", "result", "loading"]
        assert signals.channel_events("loading") == [True, False]
        assert signals.loading is False
        assert service.is_loading is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("blank", ["", "   ", "\n\t"])
    async def test_blank_input_is_rejected_without_loading(self, service, signals, fetcher, blank):
        result = await service.submit(blank, is_url_mode=True)

        assert result.error.kind == ErrorKind.EMPTY_INPUT
        assert signals.error == "Please enter a Wikipedia URL or text"
        assert signals.channel_events("loading") == []
        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_missing_credential_is_rejected_without_loading(self, signals):
        fetcher = FakeFetcher()
        service = _service(Settings(_env_file=None, llm_api_key="  "), fetcher=fetcher, listener=signals)

        result = await service.submit(REACT_URL, is_url_mode=True)

        assert result.error.kind == ErrorKind.MISSING_CREDENTIAL
        assert signals.error == "Please set your API key in LLM Settings"
        assert signals.channel_events("loading") == []
        assert fetcher.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/x",
            "not a url",
            "https://en.wikipedia.org/",
            "ftp://en.wikipedia.org/wiki/React",
            REACT_URL + "/",
        ],
    )
    async def test_non_wikipedia_url_never_fetches(self, service, fetcher, extractor, signals, url):
        result = await service.submit(url, is_url_mode=True)

        assert result.error.kind == ErrorKind.INVALID_SOURCE
        assert result.error.message == "Please enter a valid Wikipedia URL"
        assert fetcher.calls == []
        assert extractor.calls == []
        assert signals.loading is False

    @pytest.mark.asyncio
    async def test_fetch_failure_is_prefixed(self, settings, signals):
        extractor = FakeExtractor()
        service = _service(
            settings,
            fetcher=FakeFetcher(error=WikipediaFetchError("Wikipedia returned HTTP 500")),
            extractor=extractor,
            listener=signals,
        )

        result = await service.submit(REACT_URL, is_url_mode=True)

        assert result.error.kind == ErrorKind.FETCH_FAILED
        assert signals.error == "Fetch error: Wikipedia returned HTTP 500"
        assert extractor.calls == []
        assert signals.result is None
        assert signals.channel_events("loading") == [True, False]

    @pytest.mark.asyncio
    async def test_extraction_failure_is_prefixed(self, settings, signals):
        service = _service(
            settings,
            extractor=FakeExtractor(error=LLMTimeoutError("LLM request timeout")),
            listener=signals,
        )

        result = await service.submit("Some pasted notes.", is_url_mode=False)

        assert result.error.kind == ErrorKind.EXTRACTION_FAILED
        assert signals.error == "Extraction error: LLM request timeout"
        assert service.state is IngestionState.ERROR

    @pytest.mark.asyncio
    async def test_no_usable_cards_is_an_extraction_failure(self, settings):
        service = _service(settings, extractor=FakeExtractor(cards=[{"question": "Q", "answer": " "}]))

        result = await service.submit("notes", is_url_mode=False)

        assert isinstance(result, IngestionFailure)
        assert result.error.kind == ErrorKind.EXTRACTION_FAILED

    @pytest.mark.asyncio
    async def test_extracted_cards_get_unique_ids(self, settings):
        cards = [
            {"id": "1", "question": "Q1", "answer": "A1"},
            {"id": "1", "question": "Q2", "answer": "A2"},
            {"question": "Q3", "answer": "A3"},
            {"question": "", "answer": "dropped"},
        ]
        service = _service(settings, extractor=FakeExtractor(cards=cards))

        result = await service.submit("notes", is_url_mode=False)

        ids = [c.id for c in result.flashcard_set.cards]
        assert ids == ["1", "card-2", "card-3"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stored, expected", [("true", True), ("false", False), (None, False)])
    async def test_simulated_preference_is_passed_to_extractor(self, settings, stored, expected):
        values = {"use_mock_mode": stored} if stored is not None else {}
        extractor = FakeExtractor()
        service = _service(settings, extractor=extractor, preferences=InMemoryPreferenceStore(values))

        await service.submit("notes", is_url_mode=False)

        assert extractor.calls[0][2] is expected

    @pytest.mark.asyncio
    async def test_new_attempt_clears_previous_error(self, service, signals):
        await service.submit("", is_url_mode=False)
        assert signals.error is not None

        await service.submit("notes", is_url_mode=False)

        assert signals.error is None
        assert signals.result is not None

    @pytest.mark.asyncio
    async def test_concurrent_attempt_is_rejected_as_busy(self, settings, signals):
        fetcher = BlockingFetcher()
        service = _service(settings, fetcher=fetcher, listener=signals)

        first = asyncio.create_task(service.submit(REACT_URL, is_url_mode=True))
        await fetcher.started.wait()
        second = await service.import_structured('[{"question": "Q", "answer": "A"}]', "deck.json")
        fetcher.release.set()
        first_result = await first

        assert second.error.kind == ErrorKind.BUSY
        assert isinstance(first_result, IngestionSuccess)
        assert signals.channel_events("loading") == [True, False]
        assert signals.result == first_result.flashcard_set
        assert signals.error is None
        assert signals.channel_events("error") == [None]

    @pytest.mark.asyncio
    async def test_cancelled_submission_clears_loading(self, settings, signals):
        fetcher = BlockingFetcher()
        service = _service(settings, fetcher=fetcher, listener=signals)

        task = asyncio.create_task(service.submit(REACT_URL, is_url_mode=True))
        await fetcher.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert signals.loading is False
        assert service.is_loading is False
        assert service.state is IngestionState.IDLE
        assert signals.result is None

        follow_up = await service.import_structured('[{"question": "Q", "answer": "A"}]', "deck.json")

        assert isinstance(follow_up, IngestionSuccess)
        assert signals.channel_events("loading") == [True, False, True, False]


class TestImport:
    @pytest.mark.asyncio
    async def test_structured_import_does_not_need_credential(self, signals):
        service = _service(Settings(_env_file=None, llm_api_key=""), listener=signals)

        result = await service.import_structured('[{"question": "Q", "answer": "A"}]', "deck.json")

        assert isinstance(result, IngestionSuccess)
        assert signals.result.title == "deck"
        assert [name for name, _ in signals.history] == ["error", "loading", "result", "loading"]

    @pytest.mark.asyncio
    async def test_structured_failure_is_wrapped(self, service, signals):
        result = await service.import_structured('{"cards":[{"question":"Q"}]}', "deck.json")

        assert result.error.message == (
            "Error importing JSON: Card at position 1 must have both question and answer fields"
        )
        assert result.error.position == 1
        assert signals.error == result.error.message
        assert signals.loading is False

    @pytest.mark.asyncio
    async def test_tabular_failure_is_wrapped(self, service):
        result = await service.import_tabular("Title,Description\nfoo,bar\n", "deck.csv")

        assert result.error.kind == ErrorKind.MISSING_COLUMNS
        assert result.error.message.startswith("Error importing CSV: ")

    @pytest.mark.asyncio
    async def test_import_file_decodes_bytes(self, service):
        payload = "\ufeffQuestion,Answer\nÉcole?,School\n".encode("utf-8")

        result = await service.import_file(BytesReader(payload), "french.csv", ImportKind.CSV)

        assert result.flashcard_set.cards[0].question == "École?"

    @pytest.mark.asyncio
    async def test_import_file_rejects_undecodable_bytes(self, service):
        result = await service.import_file(BytesReader(b"\xff\xfe\x00"), "deck.csv", ImportKind.CSV)

        assert result.error.kind == ErrorKind.PARSE_ERROR
        assert result.error.message.startswith("Error importing CSV: File is not valid UTF-8 text")

    @pytest.mark.asyncio
    async def test_cancelled_file_read_clears_loading(self, service, signals):
        reader = BlockingReader()

        task = asyncio.create_task(service.import_file(reader, "deck.csv", ImportKind.CSV))
        await reader.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert signals.loading is False
        assert service.is_loading is False

        result = await service.submit("notes", is_url_mode=False)

        assert isinstance(result, IngestionSuccess)

    @pytest.mark.asyncio
    async def test_reimport_produces_equal_cards(self, service):
        raw = '{"title": "Deck", "cards": [{"question": "Q1", "answer": "A1"}, {"question": "Q2", "answer": "A2"}]}'

        first = await service.import_structured(raw, "deck.json")
        second = await service.import_structured(raw, "deck.json")

        assert first.flashcard_set.cards == second.flashcard_set.cards
        assert first.flashcard_set.title == second.flashcard_set.title == "Deck"

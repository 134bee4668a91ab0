import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Sequence, Set, Union

from pydantic import BaseModel

from src.config import Settings
from src.schemas.flashcards import (
    ExtractionOptions,
    Flashcard,
    FlashcardSet,
    WikipediaContent,
)
from src.schemas.ingestion import (
    ErrorKind,
    ImportKind,
    IngestionFailure,
    IngestionResult,
    IngestionState,
    IngestionSuccess,
    failure,
)
from src.services.importers.csv_importer import parse_csv_flashcards
from src.services.importers.json_importer import (
    CardRecord,
    assign_card_ids,
    parse_json_flashcards,
    validate_card_record,
)
from src.services.preferences import PreferenceStore, read_flag
from src.services.signals import IngestionListener, NullListener
from src.services.wikipedia.urls import extract_title_from_url, is_valid_wikipedia_url

logger = logging.getLogger(__name__)

TEXT_TITLE = "Custom Text Flashcards"
TEXT_SOURCE = "Custom text"
EXTRACTED_ID_PREFIX = "card"


class DocumentFetcher(Protocol):
    async def fetch(self, reference: str) -> WikipediaContent:
        ...


class FlashcardExtractor(Protocol):
    async def extract_flashcards(
        self,
        text: str,
        options: Optional[ExtractionOptions] = None,
        simulated: bool = False,
    ) -> Sequence[Any]:
        ...


class FileReader(Protocol):
    async def read(self) -> Union[bytes, str]:
        ...


class FlashcardIngestionService:
    """Turns a submission or an imported file into one ``FlashcardSet``.

    Every entry point returns an ``IngestionResult`` and reports through the
    listener: the result or error is delivered first, then loading is
    cleared. Only one attempt may be in flight; a second one is rejected as
    ``busy`` instead of racing the first.
    """

    def __init__(
        self,
        settings: Settings,
        fetcher: DocumentFetcher,
        extractor: FlashcardExtractor,
        preferences: PreferenceStore,
        listener: Optional[IngestionListener] = None,
    ):
        self.settings = settings
        self.fetcher = fetcher
        self.extractor = extractor
        self.listener = listener or NullListener()
        # Read once; later preference changes apply to the next service instance.
        self.simulated = read_flag(preferences, settings.mock_mode_preference_key)
        self.state = IngestionState.IDLE
        self._in_flight = False

    @property
    def is_loading(self) -> bool:
        return self._in_flight

    async def submit(self, input_text: str, is_url_mode: bool) -> IngestionResult:
        """Generate flashcards from a Wikipedia URL or from pasted text."""
        if self._in_flight:
            return self._busy()

        self.listener.on_error(None)
        self.state = IngestionState.VALIDATING

        if not input_text or not input_text.strip():
            return self._reject(
                failure(ErrorKind.EMPTY_INPUT, "Please enter a Wikipedia URL or text")
            )
        if not (self.settings.llm_api_key or "").strip():
            return self._reject(
                failure(ErrorKind.MISSING_CREDENTIAL, "Please set your API key in LLM Settings")
            )

        self._begin()
        logger.info(
            f"Submission started: mode={'url' if is_url_mode else 'text'}, simulated={self.simulated}"
        )
        try:
            result = await self._guarded_submission(input_text, is_url_mode)
            self._deliver(result)
        finally:
            self._end()
        return result

    async def import_structured(self, raw_text: str, file_name: str) -> IngestionResult:
        return await self._run_import(ImportKind.JSON, file_name, _constant(raw_text))

    async def import_tabular(
        self, raw_text: str, file_name: str, delimiter: Optional[str] = None
    ) -> IngestionResult:
        return await self._run_import(ImportKind.CSV, file_name, _constant(raw_text), delimiter)

    async def import_file(
        self, reader: FileReader, file_name: str, kind: ImportKind
    ) -> IngestionResult:
        """Read an uploaded file and route it to the importer for ``kind``."""
        return await self._run_import(kind, file_name, reader.read)

    async def _guarded_submission(self, input_text: str, is_url_mode: bool) -> IngestionResult:
        try:
            return await self._run_submission(input_text, is_url_mode)
        except Exception as e:
            logger.exception("Unexpected failure during submission")
            return failure(ErrorKind.UNKNOWN, f"Error: {e}")

    async def _run_submission(self, input_text: str, is_url_mode: bool) -> IngestionResult:
        text = input_text
        title = TEXT_TITLE
        source = TEXT_SOURCE

        if is_url_mode:
            reference = input_text.strip()
            if not is_valid_wikipedia_url(reference, self.settings.wikipedia_allowed_hosts):
                return failure(ErrorKind.INVALID_SOURCE, "Please enter a valid Wikipedia URL")

            self.state = IngestionState.FETCHING
            try:
                article = await self.fetcher.fetch(reference)
            except Exception as e:
                logger.warning(f"Article fetch failed for {reference}: {e}")
                return failure(ErrorKind.FETCH_FAILED, f"Fetch error: {e}")

            text = article.content
            title = extract_title_from_url(reference)
            source = reference

        self.state = IngestionState.EXTRACTING
        try:
            extracted = await self.extractor.extract_flashcards(text, None, self.simulated)
        except Exception as e:
            logger.warning(f"Flashcard extraction failed: {e}")
            return failure(ErrorKind.EXTRACTION_FAILED, f"Extraction error: {e}")

        cards = self._cards_from_extraction(extracted)
        if not cards:
            return failure(
                ErrorKind.EXTRACTION_FAILED,
                "Extraction error: no flashcards could be generated from the provided content",
            )

        flashcard_set = FlashcardSet(
            title=title,
            source=source,
            cards=cards,
            created_at=datetime.now(timezone.utc),
        )
        return IngestionSuccess(flashcard_set=flashcard_set)

    async def _run_import(
        self,
        kind: ImportKind,
        file_name: str,
        read: Callable[[], Awaitable[Union[bytes, str]]],
        delimiter: Optional[str] = None,
    ) -> IngestionResult:
        if self._in_flight:
            return self._busy()

        self.listener.on_error(None)
        self._begin(IngestionState.IMPORTING)
        logger.info(f"Import started: kind={kind.value}, file={file_name}")

        try:
            result = await self._guarded_import(kind, file_name, read, delimiter)
            self._deliver(result)
        finally:
            self._end()
        return result

    async def _guarded_import(
        self,
        kind: ImportKind,
        file_name: str,
        read: Callable[[], Awaitable[Union[bytes, str]]],
        delimiter: Optional[str],
    ) -> IngestionResult:
        try:
            raw_text = decode_upload(await read())
            if kind is ImportKind.JSON:
                result = parse_json_flashcards(raw_text, file_name)
            else:
                result = parse_csv_flashcards(raw_text, file_name, delimiter=delimiter)
        except UnicodeDecodeError as e:
            result = failure(ErrorKind.PARSE_ERROR, f"File is not valid UTF-8 text: {e.reason}")
        except Exception as e:
            logger.exception(f"Unexpected failure importing {file_name}")
            result = failure(ErrorKind.UNKNOWN, str(e) or "Unknown error occurred")

        if isinstance(result, IngestionFailure):
            error = result.error
            result = failure(
                error.kind,
                f"Error importing {kind.value.upper()}: {error.message}",
                error.position,
            )
        return result

    def _cards_from_extraction(self, extracted: Sequence[Any]) -> List[Flashcard]:
        """Validate service output; unusable items are dropped, ids are settled."""
        records: List[CardRecord] = []
        seen_ids: Set[str] = set()
        for position, item in enumerate(extracted or [], start=1):
            data = item.model_dump() if isinstance(item, BaseModel) else item
            checked = validate_card_record(data, position)
            if isinstance(checked, IngestionFailure):
                logger.warning(f"Dropping extracted card: {checked.error.message}")
                continue
            if checked.id is not None and checked.id in seen_ids:
                checked = replace(checked, id=None)
            if checked.id is not None:
                seen_ids.add(checked.id)
            records.append(checked)

        if not records:
            return []
        cards = assign_card_ids(records, EXTRACTED_ID_PREFIX)
        return cards if isinstance(cards, list) else []

    def _begin(self, state: IngestionState = IngestionState.VALIDATING) -> None:
        self._in_flight = True
        self.state = state
        self.listener.on_loading(True)

    def _busy(self) -> IngestionFailure:
        """Reject without touching the listener, which belongs to the running attempt."""
        logger.info("Request rejected: busy")
        return failure(ErrorKind.BUSY, "An ingestion is already in progress")

    def _reject(self, result: IngestionFailure) -> IngestionFailure:
        """Fail before loading was asserted."""
        self.state = IngestionState.ERROR
        logger.info(f"Request rejected: {result.error.kind.value}")
        self.listener.on_error(result.error.message)
        return result

    def _deliver(self, result: IngestionResult) -> None:
        if isinstance(result, IngestionSuccess):
            self.state = IngestionState.DONE
            logger.info(
                f"Ingestion complete: {len(result.flashcard_set.cards)} cards "
                f"from {result.flashcard_set.source}"
            )
            self.listener.on_result(result.flashcard_set)
        else:
            self.state = IngestionState.ERROR
            logger.warning(f"Ingestion failed ({result.error.kind.value}): {result.error.message}")
            self.listener.on_error(result.error.message)

    def _end(self) -> None:
        """Runs on every exit path once loading was asserted, cancellation included."""
        if self.state not in (IngestionState.DONE, IngestionState.ERROR):
            logger.warning(f"Ingestion interrupted while {self.state.value}")
            self.state = IngestionState.IDLE
        self._in_flight = False
        self.listener.on_loading(False)


def decode_upload(raw: Union[bytes, str]) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8-sig")
    return raw


def _constant(raw_text: str) -> Callable[[], Awaitable[str]]:
    async def read() -> str:
        return raw_text

    return read

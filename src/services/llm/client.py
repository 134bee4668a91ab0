import logging
import re
from typing import List, Optional

from openai import APIConnectionError, APITimeoutError, AsyncOpenAI, OpenAIError

from src.config import get_settings
from src.exceptions import LLMConnectionError, LLMException, LLMTimeoutError
from src.schemas.flashcards import ExtractedFlashcard, ExtractionOptions
from src.services.llm.prompts import FlashcardPromptBuilder, ResponseParser, response_format

logger = logging.getLogger(__name__)

SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
MIN_SENTENCE_WORDS = 5


class LLMClient:
    """Client for an OpenAI-compatible chat endpoint that extracts flashcards."""

    def __init__(self):
        settings = get_settings()
        self.api_key = settings.llm_api_key
        self.base_url = settings.llm_base_url
        self.timeout = float(settings.llm_timeout)
        self.default_model = settings.llm_model
        self.max_cards = settings.llm_max_cards
        self.prompt_builder = FlashcardPromptBuilder(settings.llm_max_input_chars)
        self.response_parser = ResponseParser()
        self._client: Optional[AsyncOpenAI] = None

    @property
    def client(self) -> AsyncOpenAI:
        # Built on first live call so simulated mode works without a key.
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._client

    async def extract_flashcards(
        self,
        text: str,
        options: Optional[ExtractionOptions] = None,
        simulated: bool = False,
    ) -> List[ExtractedFlashcard]:
        """Turn ``text`` into an ordered list of question/answer pairs."""
        options = options or ExtractionOptions()
        max_cards = options.max_cards or self.max_cards

        if simulated:
            logger.info(f"Simulated extraction: max_cards={max_cards}")
            return self.simulate_flashcards(text, max_cards)

        model = options.model or self.default_model
        prompt = self.prompt_builder.create_extraction_prompt(text, max_cards)
        logger.info(f"Sending extraction request to LLM: model={model}, max_cards={max_cards}")

        try:
            completion = await self.client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": self.prompt_builder.system_prompt},
                    {"role": "user", "content": prompt},
                ],
                temperature=options.temperature,
                max_tokens=2048,
                response_format=response_format,
            )
        except APITimeoutError as e:
            raise LLMTimeoutError(f"LLM request timeout: {e}") from e
        except APIConnectionError as e:
            raise LLMConnectionError(f"Cannot connect to LLM: {e}") from e
        except OpenAIError as e:
            raise LLMException(f"LLM API error: {e}") from e

        raw = completion.choices[0].message.content if completion.choices else None
        if not raw:
            raise LLMException("No response generated from LLM")

        parsed = self.response_parser.parse_flashcards(raw)
        if parsed.diagnostics:
            logger.warning(f"LLM response needed repairs: {parsed.diagnostics}")
        if not parsed.flashcards:
            raise LLMException("LLM response did not contain any flashcards")

        return parsed.flashcards[:max_cards]

    @staticmethod
    def simulate_flashcards(text: str, max_cards: int) -> List[ExtractedFlashcard]:
        """Deterministic offline cards: one per sufficiently long sentence."""
        cleaned = " ".join(text.split())
        cards: List[ExtractedFlashcard] = []
        for sentence in SENTENCE_SPLIT.split(cleaned):
            words = sentence.split()
            if len(words) < MIN_SENTENCE_WORDS:
                continue
            topic = " ".join(words[:4]).rstrip(",;:")
            cards.append(
                ExtractedFlashcard(
                    id=f"mock-{len(cards) + 1}",
                    question=f'What does the text say about "{topic}"?',
                    answer=sentence,
                )
            )
            if len(cards) >= max_cards:
                break

        if not cards and cleaned:
            cards.append(
                ExtractedFlashcard(
                    id="mock-1",
                    question="What is the main point of the text?",
                    answer=cleaned[:280],
                )
            )
        return cards

import json
import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from src.schemas.flashcards import ExtractedFlashcard
from src.schemas.llm import FlashcardExtractionResponse

logger = logging.getLogger(__name__)

response_format = {
    "type": "json_schema",
    "json_schema": {
        "name": "flashcard_extraction",
        "strict": True,
        "schema": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "flashcards": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "additionalProperties": False,
                        "properties": {
                            "question": {
                                "type": "string",
                                "description": "A self-contained question answerable from the text"
                            },
                            "answer": {
                                "type": "string",
                                "description": "A concise answer taken from the text"
                            },
                        },
                        "required": ["question", "answer"],
                    },
                },
            },
            "required": ["flashcards"],
        }
    }
}

SYSTEM_PROMPT = (
    "You create study flashcards. Base every card STRICTLY on the provided text. "
    "Each card has one clear question and a short, factual answer. "
    "Do not repeat the same fact twice."
)


class FlashcardPromptBuilder:
    """Builder class for flashcard extraction prompts."""

    def __init__(self, max_input_chars: int = 12000):
        self.max_input_chars = max_input_chars
        self.system_prompt = SYSTEM_PROMPT

    def create_extraction_prompt(self, text: str, max_cards: int) -> str:
        """Create the user prompt for ``text``.

        Args:
            text: Source text (article body or pasted notes)
            max_cards: Upper bound on the number of cards requested

        Returns:
            Formatted prompt string
        """
        snippet = text.strip()
        if len(snippet) > self.max_input_chars:
            logger.info(
                f"Truncating extraction input from {len(snippet)} to {self.max_input_chars} chars"
            )
            snippet = snippet[: self.max_input_chars]

        prompt = "### Source text (do NOT imitate formatting):\n\n"
        prompt += "```text\n"
        prompt += f"{snippet}\n"
        prompt += "```\n\n"
        prompt += f"### Task:\nWrite up to {max_cards} flashcards covering the most important facts.\n"
        prompt += (
            "Return ONLY valid JSON of the form "
            '{"flashcards": [{"question": "...", "answer": "..."}]}. '
            "Do not include any prose outside of the JSON object."
        )
        return prompt


class ResponseParser:
    """Parser for extraction model responses."""

    @staticmethod
    def parse_flashcards(response: str) -> FlashcardExtractionResponse:
        """Parse the raw model output into validated flashcards.

        Args:
            response: Raw LLM response string

        Returns:
            Parsed response; malformed items are dropped and noted in diagnostics
        """
        diagnostics: List[str] = []
        parsed_json: Optional[Any] = None
        try:
            parsed_json = json.loads(ResponseParser._strip_code_fence(response))
            return FlashcardExtractionResponse.model_validate(parsed_json)
        except json.JSONDecodeError as e:
            diagnostics.append(f"json_decode_error: {e.msg}")
            logger.warning("Failed to decode LLM response as JSON: %s", e)
        except ValidationError as e:
            diagnostics.append(f"schema_validation_failed: {e.error_count()} errors")
            logger.warning("LLM response failed schema validation: %s", e)

        return ResponseParser._extract_json_fallback(response, diagnostics, parsed_json)

    @staticmethod
    def _extract_json_fallback(
        response: str,
        diagnostics: List[str],
        parsed_json: Optional[Any] = None,
    ) -> FlashcardExtractionResponse:
        """Salvage individual cards when the response does not match the schema."""
        if parsed_json is None:
            json_match = re.search(r"[\[{].*[\]}]", response, re.DOTALL)
            if json_match:
                try:
                    parsed_json = json.loads(json_match.group())
                except json.JSONDecodeError as e:
                    diagnostics.append(f"fallback_json_decode_error: {e.msg}")

        items: List[Any] = []
        if isinstance(parsed_json, list):
            items = parsed_json
        elif isinstance(parsed_json, dict):
            for key in ("flashcards", "cards"):
                if isinstance(parsed_json.get(key), list):
                    items = parsed_json[key]
                    break

        cards: List[ExtractedFlashcard] = []
        for index, item in enumerate(items, start=1):
            if not isinstance(item, dict):
                diagnostics.append(f"dropped_item_{index}: not an object")
                continue
            try:
                cards.append(ExtractedFlashcard.model_validate(_normalize_keys(item)))
            except ValidationError:
                diagnostics.append(f"dropped_item_{index}: missing question or answer")

        if diagnostics:
            logger.info(f"Flashcard response fallback used: {diagnostics}")
        return FlashcardExtractionResponse(flashcards=cards, diagnostics=diagnostics)

    @staticmethod
    def _strip_code_fence(response: str) -> str:
        cleaned = response.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            cleaned = "\n".join(lines[1:-1]).strip()
        return cleaned


def _normalize_keys(item: Dict[str, Any]) -> Dict[str, Any]:
    """Accept the common ``q``/``a`` and ``front``/``back`` spellings."""
    return {
        "id": str(item["id"]) if item.get("id") is not None else None,
        "question": item.get("question") or item.get("q") or item.get("front"),
        "answer": item.get("answer") or item.get("a") or item.get("back"),
    }

import logging
from typing import Any, Dict, Optional
from urllib.parse import unquote, urlsplit

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.config import get_settings
from src.exceptions import WikipediaFetchError, WikipediaNotFoundError
from src.schemas.flashcards import WikipediaContent
from src.services.wikipedia.urls import article_slug

logger = logging.getLogger(__name__)


class _RetryableStatus(Exception):
    """Internal marker for 5xx / 429 responses worth retrying."""


class WikipediaClient:
    """Fetch plain-text article content through the MediaWiki action API."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        max_attempts: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_url = api_url or settings.wikipedia_api_url
        self.timeout = timeout if timeout is not None else settings.wikipedia_timeout
        self.user_agent = user_agent or settings.wikipedia_user_agent
        self.max_attempts = max_attempts
        self._transport = transport

    async def fetch(self, reference: str) -> WikipediaContent:
        """Download the article behind ``reference`` as plain text."""
        title = self._title_from_reference(reference)
        params = {
            "action": "query",
            "format": "json",
            "formatversion": "2",
            "prop": "extracts",
            "explaintext": "1",
            "redirects": "1",
            "titles": title,
        }
        logger.info(f"Fetching Wikipedia article: {title}")

        try:
            payload = await self._get_json(params)
        except httpx.HTTPStatusError as e:
            raise WikipediaFetchError(
                f"Wikipedia returned HTTP {e.response.status_code} for '{title}'"
            ) from e
        except (httpx.HTTPError, _RetryableStatus) as e:
            raise WikipediaFetchError(f"Failed to reach Wikipedia: {e}") from e
        except ValueError as e:
            raise WikipediaFetchError(f"Wikipedia returned an unreadable response: {e}") from e

        return self._parse_payload(payload, title)

    async def _get_json(self, params: Dict[str, str]) -> Dict[str, Any]:
        headers = {"User-Agent": self.user_agent}
        async with httpx.AsyncClient(
            headers=headers, timeout=self.timeout, transport=self._transport
        ) as client:
            async for attempt in AsyncRetrying(
                reraise=True,
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
                retry=retry_if_exception_type((httpx.TransportError, _RetryableStatus)),
            ):
                with attempt:
                    response = await client.get(self.api_url, params=params)
                    if response.status_code == 429 or response.status_code >= 500:
                        raise _RetryableStatus(f"HTTP {response.status_code}")
                    response.raise_for_status()
        return response.json()

    def _parse_payload(self, payload: Dict[str, Any], title: str) -> WikipediaContent:
        if "error" in payload:
            info = payload["error"].get("info", "unknown error")
            raise WikipediaFetchError(f"Wikipedia API error: {info}")

        pages = payload.get("query", {}).get("pages", [])
        if not pages:
            raise WikipediaNotFoundError(f"Wikipedia article not found: {title}")

        page = pages[0]
        if page.get("missing") or page.get("invalid"):
            raise WikipediaNotFoundError(f"Wikipedia article not found: {title}")

        content = (page.get("extract") or "").strip()
        if not content:
            raise WikipediaFetchError(f"Wikipedia article has no text content: {title}")

        return WikipediaContent(title=page.get("title") or title, content=content)

    @staticmethod
    def _title_from_reference(reference: str) -> str:
        try:
            slug = article_slug(urlsplit(reference.strip()).path)
        except ValueError:
            slug = None
        if not slug:
            raise WikipediaFetchError(f"Not a Wikipedia article URL: {reference}")
        return unquote(slug).replace("_", " ")

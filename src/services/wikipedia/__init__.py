from src.services.wikipedia.client import WikipediaClient
from src.services.wikipedia.urls import extract_title_from_url, is_valid_wikipedia_url

__all__ = ["WikipediaClient", "extract_title_from_url", "is_valid_wikipedia_url"]

from functools import lru_cache

from src.services.wikipedia.client import WikipediaClient


@lru_cache(maxsize=1)
def make_wikipedia_client() -> WikipediaClient:
    """
    Create and return a singleton Wikipedia client instance.

    Returns:
        WikipediaClient: Client configured from application settings
    """
    return WikipediaClient()

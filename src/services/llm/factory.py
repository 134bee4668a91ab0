from functools import lru_cache

from src.services.llm.client import LLMClient


@lru_cache(maxsize=1)
def make_llm_client() -> LLMClient:
    """
    Create and return a singleton extraction client instance.

    Returns:
        LLMClient: Configured OpenAI-compatible client
    """
    return LLMClient()

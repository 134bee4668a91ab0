from typing import Annotated

from fastapi import Depends

from src.config import Settings, get_settings
from src.services.flashcards import FlashcardIngestionService
from src.services.llm.client import LLMClient
from src.services.llm.factory import make_llm_client
from src.services.preferences import PreferenceStore, make_preference_store
from src.services.wikipedia.client import WikipediaClient
from src.services.wikipedia.factory import make_wikipedia_client


def get_ingestion_service(
    settings: Annotated[Settings, Depends(get_settings)],
    fetcher: Annotated[WikipediaClient, Depends(make_wikipedia_client)],
    extractor: Annotated[LLMClient, Depends(make_llm_client)],
    preferences: Annotated[PreferenceStore, Depends(make_preference_store)],
) -> FlashcardIngestionService:
    """One service per request, so the simulated-mode flag is read per attempt."""
    return FlashcardIngestionService(
        settings=settings,
        fetcher=fetcher,
        extractor=extractor,
        preferences=preferences,
    )


SettingsDep = Annotated[Settings, Depends(get_settings)]
IngestionServiceDep = Annotated[FlashcardIngestionService, Depends(get_ingestion_service)]

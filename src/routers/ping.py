from fastapi import APIRouter

from src.dependencies import SettingsDep

router = APIRouter(tags=["health"])


@router.get("/ping")
async def ping(settings: SettingsDep):
    """Liveness check; also reports whether an extraction credential is configured."""
    return {
        "status": "ok",
        "version": settings.app_version,
        "llm_configured": bool(settings.llm_api_key.strip()),
    }

"""Health check endpoint."""
import logging
from fastapi import APIRouter

from app.core.config import settings

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check():
    """Report liveness and which upstream services have credentials."""
    services = {
        "llm": bool(settings.llm_api_key),
        "speech": bool(settings.openai_api_key),
    }
    logger.debug(f"[HEALTH] Health check requested - services: {services}")
    return {
        "status": "healthy",
        "assistant": settings.assistant_name,
        "services": services,
    }

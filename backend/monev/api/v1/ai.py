"""AI API routes: categorization and provider configuration."""

import structlog
from fastapi import APIRouter, Depends

from monev.api.deps import get_categorizer, get_current_user
from monev.core.exceptions import ValidationError
from monev.models.user import User
from monev.schemas.ai import AIConfigUpdate, AIStatusResponse, CategorizeRequest, CategorizeResponse
from monev.services.ai_config import clear_override, get_current_provider, has_override, set_provider
from monev.services.categorizer import Categorizer
from monev.services.llm_provider import get_llm_provider

logger = structlog.get_logger()
router = APIRouter()


@router.post("/categorize", response_model=CategorizeResponse)
async def categorize(
    data: CategorizeRequest,
    current_user: User = Depends(get_current_user),
    categorizer: Categorizer = Depends(get_categorizer),
):
    """Suggest a category. Degrades to "Lainnya" when the model is unavailable."""
    result = await categorizer.categorize(merchant_name=data.merchant_name, description=data.description)
    return result.to_dict()


async def _status() -> dict:
    provider = get_llm_provider()
    return {
        "provider": get_current_provider(),
        "model": provider.get_model_name(),
        "available": await provider.is_available(),
        "override": has_override(),
    }


@router.get("/status", response_model=AIStatusResponse)
async def ai_status(current_user: User = Depends(get_current_user)):
    return await _status()


@router.patch("/config", response_model=AIStatusResponse)
async def update_ai_config(
    data: AIConfigUpdate,
    current_user: User = Depends(get_current_user),
):
    """Switch the LLM provider at runtime (in-memory, lost on restart)."""
    if data.provider is None:
        clear_override()
    else:
        try:
            set_provider(data.provider)
        except ValueError as e:
            raise ValidationError(str(e)) from e
    logger.info("ai_provider_changed", provider=get_current_provider(), user_id=current_user.id)
    return await _status()

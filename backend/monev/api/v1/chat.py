"""Chat assistant route."""

from fastapi import APIRouter, Depends

from monev.api.deps import get_analytics_service, get_chat_actions, get_current_user, get_llm_provider, get_store
from monev.models.user import User
from monev.schemas.chat import ChatRequest, ChatResponse
from monev.services.analytics_service import AnalyticsService
from monev.services.chat_service import ChatActions, ChatService
from monev.services.llm_provider import LLMProviderBase
from monev.services.store import FinanceStore

router = APIRouter()


@router.post("", response_model=ChatResponse)
async def chat(
    data: ChatRequest,
    current_user: User = Depends(get_current_user),
    provider: LLMProviderBase = Depends(get_llm_provider),
    store: FinanceStore = Depends(get_store),
    analytics: AnalyticsService = Depends(get_analytics_service),
    actions: ChatActions = Depends(get_chat_actions),
):
    """Ask the assistant. The client keeps the conversation and sends it back as ``history``."""
    service = ChatService(provider=provider, store=store, analytics=analytics, actions=actions)
    history = [turn.model_dump() for turn in data.history]
    return await service.reply(current_user, data.message, history)

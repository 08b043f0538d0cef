"""
AI helper endpoints: assistant chat, recommendations, description
enhancement, review sentiment and search suggestions.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from eventhub.api.schemas.ai import (
    ChatRequest,
    ChatResponse,
    EnhanceDescriptionRequest,
    EnhanceDescriptionResponse,
    RecommendationRequest,
    RecommendationResponse,
    SearchSuggestionRequest,
    SearchSuggestionResponse,
    SentimentRequest,
    SentimentResponse,
)
from eventhub.core.security import User, get_current_user, get_optional_user
from eventhub.integrations import llm

router = APIRouter(prefix="/api/ai", tags=["ai"])


@router.post("/chat", response_model=ChatResponse)
def chat(request: ChatRequest, current_user: User = Depends(get_current_user)):
    """Ask the platform assistant. Requires a session."""
    context = {
        "user_role": current_user.role,
        "user_location": request.user_location or current_user.city,
        "language": request.language,
    }
    try:
        reply = llm.chat_with_assistant(request.message, context)
    except llm.LlmNotConfiguredError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except llm.LlmError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return ChatResponse(response=reply)


@router.post("/recommendations", response_model=RecommendationResponse)
def recommendations(
    request: RecommendationRequest,
    current_user: Optional[User] = Depends(get_optional_user),
):
    """Recommend events from the supplied candidates."""
    preferences = request.preferences.model_dump(exclude_none=True)
    if current_user is not None and current_user.city and "location" not in preferences:
        preferences["location"] = current_user.city
    result = llm.get_event_recommendations(preferences, request.events)
    return RecommendationResponse(**result)


@router.post("/enhance-description", response_model=EnhanceDescriptionResponse)
def enhance_description(
    request: EnhanceDescriptionRequest,
    current_user: User = Depends(get_current_user),
):
    """Polish an event description for organizers."""
    if current_user.role not in ("organizer", "admin"):
        raise HTTPException(status_code=403, detail="Only organizers can enhance event descriptions")
    description = llm.enhance_event_description(request.title, request.description, request.event_type)
    return EnhanceDescriptionResponse(description=description)


@router.post("/sentiment", response_model=SentimentResponse)
def sentiment(request: SentimentRequest, current_user: User = Depends(get_current_user)):
    """Score a review's sentiment."""
    return SentimentResponse(**llm.analyze_review_sentiment(request.text))


@router.post("/search-suggestions", response_model=SearchSuggestionResponse)
def search_suggestions(request: SearchSuggestionRequest):
    """Suggest search phrases. Public."""
    return SearchSuggestionResponse(
        suggestions=llm.get_search_suggestions(request.query, request.search_type)
    )

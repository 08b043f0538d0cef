"""
Schemas for the AI helper endpoints.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from eventhub.integrations.llm import SearchType


class ChatRequest(BaseModel):
    message: str = Field(min_length=1, max_length=4000)
    user_location: Optional[str] = None
    language: Optional[str] = None


class ChatResponse(BaseModel):
    response: str


class UserPreferences(BaseModel):
    interests: List[str] = []
    location: Optional[str] = None
    budget: Optional[str] = None
    event_types: List[str] = []


class RecommendationRequest(BaseModel):
    preferences: UserPreferences
    events: List[Dict[str, Any]] = []


class RecommendationResponse(BaseModel):
    recommendations: List[str]
    reasoning: str


class EnhanceDescriptionRequest(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    event_type: str = "general"


class EnhanceDescriptionResponse(BaseModel):
    description: str


class SentimentRequest(BaseModel):
    text: str = Field(min_length=1, max_length=5000)


class SentimentResponse(BaseModel):
    rating: int
    confidence: float
    summary: str


class SearchSuggestionRequest(BaseModel):
    query: str = Field(min_length=1, max_length=200)
    search_type: SearchType = "events"


class SearchSuggestionResponse(BaseModel):
    suggestions: List[str]

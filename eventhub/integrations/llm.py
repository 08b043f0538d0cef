"""
LLM-backed helpers for the event marketplace.

Each helper makes a single chat-completion call. Everything except the
assistant chat degrades to a neutral fallback when the model is unavailable,
because those features decorate pages that must still render.
"""
import json
import logging
import re
from typing import Any, Dict, List, Literal, Optional

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage, SystemMessage

from eventhub.core.config import settings

logger = logging.getLogger(__name__)

SearchType = Literal["events", "service-providers", "venues"]

MAX_EVENTS_IN_PROMPT = 10
RECOMMENDATION_FALLBACK = "Unable to generate recommendations at this time"
SENTIMENT_FALLBACK = {"rating": 3, "confidence": 0.5, "summary": "Unable to analyze sentiment"}


class LlmError(RuntimeError):
    """The model call failed or returned nothing usable."""


class LlmNotConfiguredError(LlmError):
    """No API key is configured."""


def _get_model(max_tokens: int = 1024, temperature: float = 0.3) -> ChatAnthropic:
    api_key = (settings.anthropic_api_key or "").strip()
    if not api_key:
        raise LlmNotConfiguredError(
            "Anthropic API key not configured. Set ANTHROPIC_API_KEY in your environment."
        )
    return ChatAnthropic(
        model=settings.llm_model,
        api_key=api_key,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout=settings.llm_api_timeout,
        max_retries=settings.llm_max_retries,
    )


def _content_text(content: Any) -> str:
    """Flatten a LangChain message content (str or list of blocks) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
            elif isinstance(block, str):
                parts.append(block)
        return "".join(parts)
    return str(content or "")


def _invoke(system_prompt: str, user_prompt: str, max_tokens: int = 1024) -> str:
    model = _get_model(max_tokens=max_tokens)
    response = model.invoke([SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)])
    text = _content_text(response.content).strip()
    if not text:
        raise LlmError("Model returned an empty response")
    return text


def parse_json_reply(content: str) -> Any:
    """Parse JSON from a model reply, tolerating ```json fences and surrounding prose."""
    fenced = re.search(r"```(?:json)?\s*(.*?)\s*```", content, re.DOTALL | re.IGNORECASE)
    candidate = fenced.group(1) if fenced else content.strip()
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        match = re.search(r"(\{.*\}|\[.*\])", candidate, re.DOTALL)
        if not match:
            raise
        return json.loads(match.group(1))


def chat_with_assistant(message: str, context: Optional[Dict[str, Any]] = None) -> str:
    """Answer a user's question as the platform assistant. Raises LlmError on failure."""
    context = context or {}
    lines = [
        "You are an AI assistant for EventHub, an event management platform in Saudi Arabia.",
        "You help users with finding and discovering events, event planning and organization,",
        "connecting with service providers, general event questions, and platform navigation.",
    ]
    if context.get("user_role"):
        lines.append(f"User role: {context['user_role']}")
    if context.get("user_location"):
        lines.append(f"User location: {context['user_location']}")
    if context.get("language") == "ar":
        lines.append("Respond in Arabic.")
    lines.append("Be helpful, friendly and practical, in a conversational tone.")

    try:
        return _invoke("\n".join(lines), message)
    except LlmError:
        raise
    except Exception as e:
        logger.exception("Assistant chat failed")
        raise LlmError("Failed to get AI response") from e


def get_event_recommendations(
    preferences: Dict[str, Any],
    available_events: List[Dict[str, Any]],
) -> Dict[str, Any]:
    """Pick 3-5 events for the user. Only ids present in ``available_events`` are returned."""
    events = available_events[:MAX_EVENTS_IN_PROMPT]
    known_ids = {str(event.get("id")) for event in events if event.get("id") is not None}
    prompt = (
        f"Based on user preferences: {json.dumps(preferences, ensure_ascii=False)}\n"
        f"and available events: {json.dumps(events, ensure_ascii=False, default=str)}\n\n"
        "Recommend the best 3-5 events for this user and explain your reasoning.\n"
        'Return JSON in this format: {"recommendations": [event_ids], "reasoning": "explanation"}'
    )
    try:
        result = parse_json_reply(
            _invoke(
                "You are an AI that recommends events based on user preferences. "
                "Always respond with valid JSON.",
                prompt,
            )
        )
        ids = [str(item) for item in result.get("recommendations", []) if str(item) in known_ids]
        return {"recommendations": ids, "reasoning": str(result.get("reasoning") or "")}
    except Exception as e:
        logger.warning("Event recommendations unavailable: %s", e)
        return {"recommendations": [], "reasoning": RECOMMENDATION_FALLBACK}


def enhance_event_description(title: str, description: str, event_type: str) -> str:
    """Rewrite an event description; returns the original text on failure."""
    prompt = (
        "Enhance this event description for the Saudi Arabian market:\n\n"
        f"Title: {title}\nType: {event_type}\nBasic Description: {description}\n\n"
        "Make it more engaging, professional, and culturally appropriate for Saudi Arabia.\n"
        "Keep it concise but compelling (maximum 200 words)."
    )
    try:
        return _invoke(
            "You are a professional event copywriter specializing in the Saudi Arabian market.",
            prompt,
        )
    except Exception as e:
        logger.warning("Description enhancement unavailable: %s", e)
        return description


def analyze_review_sentiment(text: str) -> Dict[str, Any]:
    """Score a review: rating 1-5, confidence 0-1, and a one-line summary."""
    try:
        result = parse_json_reply(
            _invoke(
                "You are a sentiment analysis expert. Analyze the sentiment of event/service "
                "reviews and provide a rating from 1 to 5 stars, a confidence score between 0 "
                'and 1, and a brief summary. Respond with JSON: {"rating": number, '
                '"confidence": number, "summary": "brief explanation"}',
                text,
            )
        )
        rating = int(round(float(result.get("rating", 3))))
        confidence = float(result.get("confidence", 0.5))
        return {
            "rating": max(1, min(5, rating)),
            "confidence": max(0.0, min(1.0, confidence)),
            "summary": result.get("summary") or SENTIMENT_FALLBACK["summary"],
        }
    except Exception as e:
        logger.warning("Sentiment analysis unavailable: %s", e)
        return dict(SENTIMENT_FALLBACK)


def get_search_suggestions(query: str, search_type: SearchType) -> List[str]:
    """Five search suggestions for ``query``; empty list on failure."""
    prompt = (
        f'Generate 5 smart search suggestions based on the query "{query}" for {search_type} '
        "in Saudi Arabia. Consider popular events, cultural preferences, and local terminology.\n"
        'Return JSON: {"suggestions": ["suggestion1", "suggestion2", ...]}'
    )
    try:
        result = parse_json_reply(
            _invoke(
                "You are a search optimization expert for event platforms in Saudi Arabia.",
                prompt,
                max_tokens=512,
            )
        )
        suggestions = result.get("suggestions", []) if isinstance(result, dict) else result
        return [str(item) for item in suggestions if str(item).strip()][:5]
    except Exception as e:
        logger.warning("Search suggestions unavailable: %s", e)
        return []

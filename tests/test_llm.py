"""
LLM helpers and the /api/ai routes, with the chat model replaced by a fake.
"""
import json
from types import SimpleNamespace

import pytest

from eventhub.core.config import settings
from eventhub.integrations import llm


class FakeModel:
    """Stands in for ChatAnthropic; records prompts and replays a canned reply."""

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def invoke(self, messages):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=self.reply)


@pytest.fixture
def fake_model(monkeypatch):
    model = FakeModel(reply="")
    monkeypatch.setattr(llm, "_get_model", lambda **kwargs: model)
    return model


def test_parse_json_reply_handles_fences_and_prose():
    assert llm.parse_json_reply('```json\n{"a": 1}\n```') == {"a": 1}
    assert llm.parse_json_reply('Sure! {"a": [1, 2]} Hope that helps.') == {"a": [1, 2]}
    with pytest.raises(json.JSONDecodeError):
        llm.parse_json_reply("no json here")


def test_content_text_flattens_blocks():
    blocks = [{"type": "text", "text": "Hello "}, {"type": "tool_use"}, "world"]
    assert llm._content_text(blocks) == "Hello world"


def test_missing_api_key_raises_not_configured(monkeypatch):
    monkeypatch.setattr(settings, "anthropic_api_key", None)
    with pytest.raises(llm.LlmNotConfiguredError):
        llm._get_model()


def test_chat_includes_context_and_returns_text(fake_model):
    fake_model.reply = "Try the Riyadh Season opening night."
    reply = llm.chat_with_assistant("What is on?", {"user_role": "attendee", "language": "ar"})

    assert reply == "Try the Riyadh Season opening night."
    system_message = fake_model.calls[0][0].content
    assert "User role: attendee" in system_message
    assert "Respond in Arabic." in system_message


def test_chat_failure_raises(fake_model):
    fake_model.error = RuntimeError("upstream down")
    with pytest.raises(llm.LlmError):
        llm.chat_with_assistant("hello")


def test_recommendations_keep_only_known_ids(fake_model):
    events = [{"id": i, "title": f"Event {i}"} for i in range(15)]
    fake_model.reply = '```json\n{"recommendations": [1, 3, 99], "reasoning": "Close to home"}\n```'

    result = llm.get_event_recommendations({"interests": ["music"]}, events)

    assert result == {"recommendations": ["1", "3"], "reasoning": "Close to home"}
    prompt = fake_model.calls[0][1].content
    assert "Event 9" in prompt
    assert "Event 10" not in prompt


def test_recommendations_fall_back(fake_model):
    fake_model.reply = "not json"
    result = llm.get_event_recommendations({}, [{"id": 1}])
    assert result == {"recommendations": [], "reasoning": llm.RECOMMENDATION_FALLBACK}


def test_enhance_description_falls_back_to_original(fake_model):
    fake_model.error = RuntimeError("boom")
    assert llm.enhance_event_description("Gala", "A dinner.", "corporate") == "A dinner."


def test_sentiment_is_clamped(fake_model):
    fake_model.reply = '{"rating": 7.6, "confidence": 1.4, "summary": "Loved it"}'
    assert llm.analyze_review_sentiment("Amazing!") == {"rating": 5, "confidence": 1.0, "summary": "Loved it"}


def test_sentiment_falls_back(fake_model):
    fake_model.error = RuntimeError("boom")
    assert llm.analyze_review_sentiment("meh") == llm.SENTIMENT_FALLBACK


def test_search_suggestions_are_capped(fake_model):
    fake_model.reply = json.dumps({"suggestions": [f"s{i}" for i in range(8)]})
    assert llm.get_search_suggestions("concert", "events") == ["s0", "s1", "s2", "s3", "s4"]


def test_search_suggestions_fall_back(fake_model):
    fake_model.error = RuntimeError("boom")
    assert llm.get_search_suggestions("concert", "venues") == []


def test_chat_route_requires_session(client):
    assert client.post("/api/ai/chat", json={"message": "hi"}).status_code == 401


def test_chat_route_returns_reply(client, user_factory, fake_model):
    account = user_factory()
    fake_model.reply = "Hello!"
    response = client.post("/api/ai/chat", headers=account["headers"], json={"message": "hi"})
    assert response.status_code == 200
    assert response.json() == {"response": "Hello!"}


def test_chat_route_maps_failures(client, user_factory, fake_model, monkeypatch):
    account = user_factory()
    fake_model.error = RuntimeError("upstream down")
    response = client.post("/api/ai/chat", headers=account["headers"], json={"message": "hi"})
    assert response.status_code == 502

    def not_configured(**kwargs):
        raise llm.LlmNotConfiguredError("no key")

    monkeypatch.setattr(llm, "_get_model", not_configured)
    response = client.post("/api/ai/chat", headers=account["headers"], json={"message": "hi"})
    assert response.status_code == 503


def test_enhance_description_route_is_for_organizers(client, user_factory, fake_model):
    attendee = user_factory(role="attendee")
    organizer = user_factory(role="organizer")
    body = {"title": "Gala", "description": "A dinner.", "event_type": "corporate"}
    fake_model.reply = "An unforgettable evening."

    assert client.post("/api/ai/enhance-description", headers=attendee["headers"], json=body).status_code == 403
    response = client.post("/api/ai/enhance-description", headers=organizer["headers"], json=body)
    assert response.status_code == 200
    assert response.json() == {"description": "An unforgettable evening."}


def test_search_suggestions_route_is_public(client, fake_model):
    fake_model.reply = '{"suggestions": ["jazz night"]}'
    response = client.post("/api/ai/search-suggestions", json={"query": "jazz", "search_type": "events"})
    assert response.status_code == 200
    assert response.json() == {"suggestions": ["jazz night"]}


def test_sentiment_route(client, user_factory, fake_model):
    account = user_factory()
    fake_model.reply = '{"rating": 4, "confidence": 0.8, "summary": "Positive"}'
    response = client.post("/api/ai/sentiment", headers=account["headers"], json={"text": "Great venue"})
    assert response.status_code == 200
    assert response.json()["rating"] == 4

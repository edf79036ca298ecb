"""Tests for the intent classifier, with the Anthropic API mocked out."""

import asyncio
import json

import httpx
import pytest

from tomato.engine.classifier import (
    IntentClassifier,
    detect_basic_intent,
    extract_basic_entities,
)


def _reply(text: str) -> dict:
    return {"content": [{"type": "text", "text": text}]}


def _classifier(handler) -> IntentClassifier:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return IntentClassifier(
        api_key="test-key",
        model="test-model",
        base_url="https://api.example.test",
        http_client=client,
    )


class TestKeywordFallback:
    """Keyword detection used without an API key or after failures."""

    @pytest.mark.parametrize("message,intent", [
        ("new project Website relaunch", "create_project"),
        ("add task Write copy", "create_task"),
        ("delete project Website", "delete_project"),
        ("list projects", "list_projects"),
        ("pause my timer", "pause_pomodoro"),
        ("resume please", "resume_pomodoro"),
        ("I'm going out for lunch", "going_out"),
        ("I'm back", "coming_back"),
        ("start pomodoro on Design doc", "start_pomodoro"),
        ("how much time left?", "session_status"),
        ("show me a summary", "show_summary"),
        ("help", "help"),
        ("the weather is nice", "unknown"),
    ])
    def test_detect_basic_intent(self, message, intent):
        assert detect_basic_intent(message) == intent

    def test_extract_entities(self):
        entities = extract_basic_entities("Task: Write copy\nEstimate: 30\nDeadline: 2026-03-10\nnoise")

        assert entities == {
            "title": "Write copy",
            "estimated_minutes": 30,
            "deadline": "2026-03-10",
        }

    def test_no_api_key_uses_keywords(self):
        classifier = IntentClassifier(api_key="")

        payload = asyncio.run(classifier.classify("pause"))

        assert not classifier.enabled
        assert payload == {"intent": "pause_pomodoro", "entities": {}}


class TestClassify:
    """Requests to the Messages API and parsing of replies."""

    def test_request_shape_and_parsed_reply(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_reply(
                '{"intent": "create_project", "entities": {"name": "Website"}}'
            ))

        classifier = _classifier(handler)
        payload = asyncio.run(classifier.classify("new project Website", "Active task: Design doc"))

        assert payload == {"intent": "create_project", "entities": {"name": "Website"}}
        assert seen["url"] == "https://api.example.test/v1/messages"
        assert seen["headers"]["x-api-key"] == "test-key"
        assert seen["headers"]["anthropic-version"] == "2023-06-01"
        assert seen["body"]["model"] == "test-model"
        assert seen["body"]["messages"] == [{"role": "user", "content": "new project Website"}]
        assert "Active task: Design doc" in seen["body"]["system"]

    def test_fenced_reply(self):
        def handler(request):
            return httpx.Response(200, json=_reply(
                '```json\n{"intent": "start_pomodoro", "entities": {"task": "Design doc"}}\n```'
            ))

        payload = asyncio.run(_classifier(handler).classify("work on design doc"))

        assert payload["intent"] == "start_pomodoro"
        assert payload["entities"] == {"task": "Design doc"}

    def test_prose_around_json(self):
        def handler(request):
            return httpx.Response(200, json=_reply(
                'Sure! Here you go: {"intent": "help"} Hope that helps.'
            ))

        payload = asyncio.run(_classifier(handler).classify("what can you do"))

        assert payload == {"intent": "help", "entities": {}}

    @pytest.mark.parametrize("response", [
        httpx.Response(500, text="overloaded"),
        httpx.Response(200, json=_reply("I am not sure what you mean.")),
        httpx.Response(200, json=_reply('{"entities": {}}')),
        httpx.Response(200, json={"unexpected": True}),
    ])
    def test_failures_fall_back_to_keywords(self, response):
        classifier = _classifier(lambda request: response)

        payload = asyncio.run(classifier.classify("pause my timer"))

        assert payload["intent"] == "pause_pomodoro"

    def test_transport_error_falls_back(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        payload = asyncio.run(_classifier(handler).classify("I'm back"))

        assert payload["intent"] == "coming_back"

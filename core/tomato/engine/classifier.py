"""
The classifier turns a chat message into an intent payload.

It asks Claude through the Anthropic Messages API and falls back to
keyword matching when the API is unavailable or its reply can't be parsed.
The payload is a loose dict; engine.intents validates it.
"""

import json
import re
from typing import Optional

import httpx

from tomato.config import (
    ANTHROPIC_API_KEY,
    ANTHROPIC_BASE_URL,
    CLASSIFIER_TIMEOUT,
    TOMATO_MODEL,
)
from tomato.utils.logging import logger

ANTHROPIC_VERSION = "2023-06-01"

# Checked in order; the first matching phrase wins
INTENT_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("delete_project", ("delete project", "remove project", "drop project")),
    ("create_project", ("new project", "create project", "add project")),
    ("create_task", ("new task", "add task", "create task")),
    ("list_projects", ("list projects", "show projects", "my projects")),
    ("list_tasks", ("list tasks", "show tasks", "my tasks", "what's left")),
    ("going_out", ("going out", "heading out", "stepping out", "be right back", "brb")),
    ("coming_back", ("i'm back", "im back", "coming back", "back now")),
    ("pause_pomodoro", ("pause",)),
    ("resume_pomodoro", ("resume", "continue")),
    ("complete_pomodoro", ("done", "finished", "complete", "stop timer")),
    ("start_pomodoro", ("start pomodoro", "start working", "start timer", "start")),
    ("session_status", ("time left", "how long", "timer status")),
    ("show_summary", ("summary", "progress", "status", "digest")),
    ("help", ("help", "how do i", "what can you do")),
]

# "Field: value" lines a user may type to fill entities by hand
ENTITY_LINE_KEYS = {
    "project": "name",
    "project name": "name",
    "name": "name",
    "task": "title",
    "title": "title",
    "description": "description",
    "deadline": "deadline",
    "estimate": "estimated_minutes",
    "estimated minutes": "estimated_minutes",
}

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def detect_basic_intent(message: str) -> str:
    """Best-effort intent label from keywords alone."""
    text = message.lower()
    for intent, words in INTENT_KEYWORDS:
        if any(word in text for word in words):
            logger.debug(f"Detected intent '{intent}' from keywords")
            return intent
    return "unknown"


def extract_basic_entities(message: str) -> dict:
    """Pick up "Key: value" lines, e.g. "Task: Write report"."""
    entities: dict = {}
    for line in message.splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        target = ENTITY_LINE_KEYS.get(key.strip().lower())
        value = value.strip()
        if not target or not value:
            continue
        if target == "estimated_minutes":
            if value.isdigit():
                entities[target] = int(value)
        else:
            entities[target] = value
    return entities


def keyword_payload(message: str) -> dict:
    return {
        "intent": detect_basic_intent(message),
        "entities": extract_basic_entities(message),
    }


class IntentClassifier:
    """
    Uses Claude to label a message with an intent and its entities.
    Falls back to keywords for every failure mode.
    """

    SYSTEM_PROMPT = """You are the assistant of a pomodoro timer and task tracker.
Read the user's message and respond with ONE JSON object:
{{
    "intent": "<label>",
    "entities": {{ ... }}
}}

Intent labels and their entities:
- list_projects: none
- list_tasks: project (name or ID, optional), status (pending/in_progress/completed, optional)
- create_project: name, description, deadline (YYYY-MM-DD)
- create_projects: projects (list of {{name, description, deadline}})
- create_task: project, title, description, deadline, estimated_minutes
- create_tasks: project, tasks (list of {{title, description, deadline, estimated_minutes}})
- delete_project: project
- start_pomodoro: task (name or ID; omit for "it"), work_minutes, break_minutes
- pause_pomodoro / resume_pomodoro / complete_pomodoro: task or session_id (optional)
- going_out: reason, duration (minutes); the user is stepping away
- coming_back: none; the user has returned
- session_status: none
- show_summary: none
- help: none
- unknown: none

Leave out entities the user did not mention. Copy names exactly as written.
{context}
Respond ONLY with the JSON object, no other text."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = ANTHROPIC_API_KEY if api_key is None else api_key
        self.model = model or TOMATO_MODEL
        self.base_url = (base_url or ANTHROPIC_BASE_URL).rstrip("/")
        self._client = http_client

    @property
    def enabled(self) -> bool:
        """Whether an API key is configured."""
        return bool(self.api_key)

    async def classify(self, message: str, context_prompt: str = "") -> dict:
        """
        Classify a user message.

        Args:
            message: The raw chat message
            context_prompt: What the conversation is currently about

        Returns:
            {"intent": str, "entities": dict}, never raises
        """
        if not self.enabled:
            return keyword_payload(message)

        try:
            text = await self._ask(message, context_prompt)
            payload = self._parse_response(text)
            logger.info(f"Classified message as '{payload.get('intent')}'")
            return payload
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning(f"Intent classification failed: {e}, falling back to keywords")
            return keyword_payload(message)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=CLASSIFIER_TIMEOUT)
        return self._client

    async def _ask(self, message: str, context_prompt: str) -> str:
        context = f"\nConversation context:\n{context_prompt}\n" if context_prompt else ""
        response = await self._get_client().post(
            f"{self.base_url}/v1/messages",
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "content-type": "application/json",
            },
            json={
                "model": self.model,
                "max_tokens": 1024,
                "temperature": 0,
                "system": self.SYSTEM_PROMPT.format(context=context),
                "messages": [{"role": "user", "content": message}],
            },
        )
        response.raise_for_status()
        data = response.json()
        return "".join(
            block.get("text", "")
            for block in data["content"]
            if block.get("type") == "text"
        )

    @staticmethod
    def _parse_response(text: str) -> dict:
        """Pull the first JSON object out of the model's reply."""
        text = text.strip()
        # Strip markdown fences if present
        if text.startswith("```"):
            text = text.split("```")[1]
            if text.startswith("json"):
                text = text[4:]

        match = _JSON_OBJECT.search(text)
        if not match:
            raise ValueError("no JSON object in classifier reply")

        data = json.loads(match.group(0))
        if not isinstance(data, dict) or not data.get("intent"):
            raise ValueError("classifier reply has no intent")
        if not isinstance(data.get("entities"), dict):
            data["entities"] = {}
        return data

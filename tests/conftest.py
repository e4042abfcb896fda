"""Shared fixtures: a scripted CognitionProvider and an agent factory."""

from __future__ import annotations

import json

import pytest

from generative_agents import Agent, AgentPersonality, AgentSettings, Position


VOCABULARY = ("coffee", "cafe", "fire", "kitchen", "dog", "work", "park", "painting")

DAY_ITEMS = [
    {"description": "sleep", "start": 0, "end": 420, "emoji": "😴", "location": "home"},
    {"description": "morning routine", "start": 420, "end": 540, "location": "home"},
    {
        "description": "work at the cafe",
        "start": 540,
        "end": 1020,
        "emoji": "☕",
        "location": "cafe",
        "priority": 3,
    },
    {"description": "evening painting", "start": 1020, "end": 1440, "location": "home"},
]


def scripted_text(prompt: str, context: str) -> str:
    """Deterministic stand-in for the generator, keyed on prompt wording."""
    if "broad strokes" in prompt:
        return json.dumps({"items": DAY_ITEMS})
    if "hour-long" in prompt:
        items = [
            {"description": f"hour block {hour}", "start": hour * 60, "end": hour * 60 + 60}
            for hour in range(24)
        ]
        return "```json\n" + json.dumps({"items": items}) + "\n```"
    if "5 to 15 minute" in prompt:
        items = [
            {"description": f"step {idx}", "start": idx * 15, "end": idx * 15 + 15}
            for idx in range(96)
        ]
        return json.dumps({"items": items})
    if "salient" in prompt:
        return "1. What is John focused on?\n2. Who matters to John?"
    if "single high-level insight" in prompt:
        return "John cares deeply about his work."
    if "having a conversation" in prompt:
        return "Hello there|Hi John"
    if "rumor" in prompt:
        return "I heard the cafe is closing."
    return "Sure thing."


class FakeProvider:
    """CognitionProvider with keyword embeddings and scripted generation."""

    def __init__(self, *, importance=None, default_importance=3.0, generate=scripted_text):
        self.importance = dict(importance or {})
        self.default_importance = default_importance
        self.generate = generate
        self.vocabulary = VOCABULARY
        self.fail_scoring: set[str] = set()
        self.fail_embedding = False
        self.fail_generation = False
        self.prompts: list[tuple[str, str]] = []
        self.embed_calls = 0

    async def score_importance(self, text: str) -> float:
        for marker in self.fail_scoring:
            if marker in text:
                raise RuntimeError("scorer offline")
        for marker, score in self.importance.items():
            if marker in text:
                return score
        return self.default_importance

    async def embed(self, text: str) -> list[float]:
        self.embed_calls += 1
        if self.fail_embedding:
            raise RuntimeError("embedder offline")
        lowered = text.lower()
        return [1.0 if word in lowered else 0.0 for word in self.vocabulary] + [0.1]

    async def generate_text(self, prompt: str, context: str) -> str:
        self.prompts.append((prompt, context))
        if self.fail_generation:
            raise RuntimeError("generator offline")
        return self.generate(prompt, context)


@pytest.fixture(autouse=True)
def quiet_logs(monkeypatch):
    monkeypatch.setenv("GENAGENTS_NO_COLOR", "1")


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def fake_provider_cls():
    return FakeProvider


@pytest.fixture
def make_agent(provider):
    def _make(agent_id="john", name="John Lin", *, agent_provider=None, x=0.0, y=0.0, **kwargs):
        kwargs.setdefault(
            "personality",
            AgentPersonality(
                background=f"{name} runs the neighbourhood cafe.",
                innate_tendency=["friendly", "curious"],
                learned_tendency=["punctual"],
                current_goal="keep the cafe running",
                lifestyle="wakes at 7, sleeps at 11",
                values=["family", "craft"],
            ),
        )
        kwargs.setdefault("settings", AgentSettings())
        return Agent(
            agent_id,
            name,
            agent_provider or provider,
            age=45,
            position=Position(x=x, y=y),
            **kwargs,
        )

    return _make

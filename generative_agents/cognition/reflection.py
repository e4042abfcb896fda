"""Reflection engine.

Reflection converts accumulated experiences into higher-level insights and
feeds them back into memory (Stanford Generative Agents pattern):

1. Every Observation adds its importance to a running sum.
2. Once the sum reaches ``retention * importance_per_retention`` the engine
   asks the provider for focal questions about the recent stream.
3. Each question retrieves its most relevant observations as evidence.
4. One insight is synthesized and appended as a Reflection that cites the
   evidence IDs. The running sum resets.

Provider failures defer the reflection: the sum is kept, so the next
observation tries again.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, List, Optional, Sequence

from generative_agents.config import Config
from generative_agents.errors import GenerationUnavailable, ScoringUnavailable
from generative_agents.events import AgentEventType
from generative_agents.logging_utils import log_deterministic, log_error, log_llm, log_success
from generative_agents.provider import CognitionProvider
from generative_agents.schemas import Memory, MemoryKind, Observation, Reflection

from .context import build_prompt_values
from .prompts import PromptLibrary
from .renderers import render_prompt, resolve_template

if TYPE_CHECKING:  # pragma: no cover
    from generative_agents.agent import Agent


DEFAULT_FOCAL_QUERIES = (
    "What matters most to me right now?",
    "What patterns do I notice in recent events?",
    "How do I feel about the people around me?",
)

_NUMBERING = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")


def parse_focal_questions(text: str, limit: int) -> List[str]:
    """Pull up to ``limit`` questions out of generated text, one per line."""
    questions: List[str] = []
    for line in text.splitlines():
        candidate = _NUMBERING.sub("", line).strip()
        if candidate.endswith("?") and candidate not in questions:
            questions.append(candidate)
        if len(questions) >= limit:
            break
    return questions


class ReflectionEngine:
    """Threshold-triggered reflection for a single agent.

    Args:
        provider: CognitionProvider used for focal questions and insights
        prompt_library: Optional overrides for reflect_* templates
        importance_per_retention: Threshold multiplier applied to retention
        evidence_limit: Observations retrieved per focal question
        question_count: Focal questions requested per reflection
        recent_limit: Recent memories shown when asking for focal questions
    """

    def __init__(
        self,
        provider: CognitionProvider,
        *,
        prompt_library: Optional[PromptLibrary] = None,
        importance_per_retention: float = Config.IMPORTANCE_PER_RETENTION,
        evidence_limit: int = 5,
        question_count: int = 3,
        recent_limit: int = 20,
        day_length: float = Config.DAY_LENGTH,
    ) -> None:
        self.provider = provider
        self.prompt_library = prompt_library
        self.importance_per_retention = importance_per_retention
        self.evidence_limit = evidence_limit
        self.question_count = question_count
        self.recent_limit = recent_limit
        self.day_length = day_length
        self.importance_sum = 0.0

    def threshold(self, agent: "Agent") -> float:
        return agent.settings.retention * self.importance_per_retention

    def record(self, memory: Memory) -> None:
        """Accumulate importance; only observations count toward the trigger."""
        if isinstance(memory, Observation):
            self.importance_sum += memory.importance

    def should_reflect(self, agent: "Agent") -> bool:
        return self.importance_sum >= self.threshold(agent)

    async def maybe_reflect(self, agent: "Agent", now: float) -> Optional[Reflection]:
        """Reflect if the running sum crossed the threshold.

        Returns the new Reflection, or None when below threshold or deferred.
        """

        if not self.should_reflect(agent):
            return None

        log_deterministic(
            f"Reflection triggered ({self.importance_sum:.1f} >= {self.threshold(agent):.1f})",
            scope=agent.name,
        )
        try:
            reflection = await self._reflect(agent, now)
        except (GenerationUnavailable, ScoringUnavailable) as exc:
            log_error(f"Reflection deferred: {exc}", scope=agent.name)
            return None
        if reflection is None:
            return None

        self.importance_sum = 0.0
        agent.emit_memory_added(reflection, now)
        agent.emit(AgentEventType.REFLECTED, now, memory_id=reflection.id, evidence=list(reflection.evidence))
        log_success(f"Reflected: {reflection.description}", scope=agent.name)
        return reflection

    async def focal_questions(self, agent: "Agent", now: float) -> List[str]:
        values = build_prompt_values(
            agent,
            now,
            memories=agent.memory.recent(self.recent_limit),
            day_length=self.day_length,
            question_count=self.question_count,
        )
        text = await self._generate(agent, "reflect_questions", values, purpose="focal questions")
        questions = parse_focal_questions(text, self.question_count)
        if not questions:
            log_deterministic("Focal questions unparsable; using defaults", scope=agent.name)
            return list(DEFAULT_FOCAL_QUERIES[: self.question_count])
        return questions

    async def gather_evidence(self, agent: "Agent", questions: Sequence[str], now: float) -> List[Memory]:
        evidence: List[Memory] = []
        seen = set()
        for question in questions:
            hits = await agent.memory.retrieve(
                question, self.evidence_limit, now, kinds=(MemoryKind.OBSERVATION,)
            )
            for memory in hits:
                if memory.id not in seen:
                    seen.add(memory.id)
                    evidence.append(memory)
        return evidence

    async def _reflect(self, agent: "Agent", now: float) -> Optional[Reflection]:
        questions = await self.focal_questions(agent, now)
        evidence = await self.gather_evidence(agent, questions, now)
        if not evidence:
            log_deterministic("No evidence retrieved; reflection deferred", scope=agent.name)
            return None

        values = build_prompt_values(agent, now, memories=evidence, day_length=self.day_length)
        insight = (await self._generate(agent, "reflect_insight", values, purpose="reflection")).strip()
        if not insight:
            raise GenerationUnavailable(agent_id=agent.id, purpose="reflection (empty insight)")

        memory = await agent.memory.append(
            MemoryKind.REFLECTION,
            insight,
            now,
            evidence=tuple(item.id for item in evidence),
        )
        return memory  # type: ignore[return-value]

    async def _generate(self, agent: "Agent", template_name: str, values: dict, *, purpose: str) -> str:
        rendered = render_prompt(resolve_template(template_name, self.prompt_library), values)
        log_llm(f"Generating {purpose}", scope=agent.name)
        try:
            return await self.provider.generate_text(rendered.user, rendered.system)
        except Exception as exc:
            raise GenerationUnavailable(agent_id=agent.id, purpose=purpose, cause=exc) from exc

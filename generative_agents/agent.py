"""
Agent façade: identity, memory stream and cognition behind one object.

Each agent owns a MemoryStream, an AgentCognition bundle and an
``asyncio.Lock``. Every public operation takes the lock, so operations on
one agent are serialized while distinct agents run concurrently.

Observation pipeline::

    observe -> append Observation -> reflection.record -> reaction decision
            -> (interrupt) planner.replan -> reflection.maybe_reflect
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import List, Optional

from .cognition import (
    AgentCognition,
    PlanningState,
    ReactionDecision,
    Scratchpad,
    build_default_cognition,
)
from .cognition.context import build_prompt_values, personality_summary
from .cognition.renderers import render_prompt, resolve_template
from .config import Config
from .errors import GenerationUnavailable, ScoringUnavailable
from .events import AgentEvent, AgentEventType, AgentListener, EventEmitter
from .logging_utils import log_deterministic, log_error, log_info, log_llm
from .memory import MemoryStream, RetrievalWeights
from .provider import CognitionProvider
from .schemas import (
    AgentAction,
    AgentPersonality,
    AgentSettings,
    Memory,
    MemoryKind,
    Observation,
    Plan,
    Position,
    Reflection,
)

INITIAL_ACTION = AgentAction(status="sleeping", emoji=["😴"])


@dataclass
class ObservationOutcome:
    """Result of ``Agent.observe``.

    ``decision`` is the reaction engine's verdict; ``replanned`` tells whether
    the interrupt actually rewrote the plan. ``reflection`` is set when the
    observation pushed the running importance sum over the threshold.
    """

    memory: Observation
    decision: ReactionDecision
    reflection: Optional[Reflection] = None
    replanned: bool = False


class Agent:
    """A generative agent.

    Args:
        agent_id: Unique ID (also the lock-ordering key for interactions)
        name: Display name used in prompts
        provider: CognitionProvider shared by memory and engines
        age: Optional age for the personality summary
        personality: Character sheet grounding every prompt
        settings: visual_range / attention / retention
        position: 2D position for proximity checks
        location: Named place the agent is at
        cognition: Engine bundle (defaults to build_default_cognition)
        weights: Retrieval scoring constants
    """

    def __init__(
        self,
        agent_id: str,
        name: str,
        provider: CognitionProvider,
        *,
        age: Optional[int] = None,
        personality: Optional[AgentPersonality] = None,
        settings: Optional[AgentSettings] = None,
        position: Optional[Position] = None,
        location: Optional[str] = None,
        cognition: Optional[AgentCognition] = None,
        weights: Optional[RetrievalWeights] = None,
        day_length: float = Config.DAY_LENGTH,
    ) -> None:
        self.id = agent_id
        self.name = name
        self.age = age
        self.provider = provider
        self.personality = personality or AgentPersonality()
        self.settings = settings or AgentSettings()
        self.position = position or Position(x=0.0, y=0.0)
        self.memory = MemoryStream(
            provider,
            owner_id=agent_id,
            weights=weights,
            max_results=self.settings.attention,
        )
        self.cognition = cognition or build_default_cognition(provider, day_length=day_length)
        self.latest_plan_iteration = 1
        self.lock = asyncio.Lock()
        self._action = INITIAL_ACTION.model_copy(deep=True)
        self._location = location
        self._events = EventEmitter()

    def __repr__(self) -> str:
        return f"Agent(id={self.id!r}, name={self.name!r})"

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def action(self) -> AgentAction:
        return self._action.model_copy(deep=True)

    @property
    def location(self) -> Optional[str]:
        return self._location

    @property
    def scratchpad(self) -> Scratchpad:
        return self.cognition.scratchpad

    @property
    def current_task(self) -> Optional[Plan]:
        return self.cognition.planner.current_task(self)

    @property
    def planning_state(self) -> PlanningState:
        return self.cognition.planner.state(self)

    def set_action(self, action: AgentAction, now: float) -> None:
        if action == self._action:
            return
        previous = self._action
        self._action = action.model_copy(deep=True)
        self.emit(
            AgentEventType.ACTION_CHANGED,
            now,
            previous=previous.model_dump(),
            action=action.model_dump(),
        )

    def set_location(self, location: Optional[str], now: float) -> None:
        if location == self._location:
            return
        previous = self._location
        self._location = location
        self.emit(AgentEventType.LOCATION_CHANGED, now, previous=previous, location=location)

    def personality_summary(self) -> str:
        return personality_summary(self.name, self.age, self.personality)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event_type: Optional[AgentEventType], listener: AgentListener) -> None:
        self._events.on(event_type, listener)

    def off(self, event_type: Optional[AgentEventType], listener: AgentListener) -> None:
        self._events.off(event_type, listener)

    def emit(self, event_type: AgentEventType, now: float, **payload) -> None:
        self._events.emit(
            AgentEvent(type=event_type, agent_id=self.id, timestamp=now, payload=payload)
        )

    def emit_memory_added(self, memory: Memory, now: float) -> None:
        self.emit(AgentEventType.MEMORY_ADDED, now, memory_id=memory.id, kind=memory.kind.value)

    # ------------------------------------------------------------------
    # Memory
    # ------------------------------------------------------------------

    async def observe(self, description: str, now: float) -> ObservationOutcome:
        """Record an observation and run reaction + reflection on it.

        Raises:
            ScoringUnavailable: If the observation cannot be scored; nothing
                is stored and no engine runs
        """
        async with self.lock:
            memory = await self.memory.append(MemoryKind.OBSERVATION, description, now)
            return await self._process_observation(memory, now)  # type: ignore[arg-type]

    async def process_observation(self, memory: Observation, now: float) -> ObservationOutcome:
        """Run reaction + reflection on an observation committed elsewhere."""
        async with self.lock:
            return await self._process_observation(memory, now)

    async def retrieve(self, query: str, k: int, now: float) -> List[Memory]:
        async with self.lock:
            return await self.memory.retrieve(query, k, now)

    async def seed_from_personality(self, now: float) -> List[Observation]:
        """Observe the personality sheet so it becomes retrievable memory."""

        personality = self.personality
        descriptions = []
        if personality.background:
            descriptions.append(f"background: {personality.background}")
        if personality.current_goal:
            descriptions.append(f"current goal: {personality.current_goal}")
        if personality.lifestyle:
            descriptions.append(f"lifestyle: {personality.lifestyle}")
        if personality.innate_tendency:
            descriptions.append(
                f"{self.name} has the following innate tendencies: "
                + ", ".join(personality.innate_tendency)
            )
        if personality.learned_tendency:
            descriptions.append(
                f"{self.name} has the following learned tendencies: "
                + ", ".join(personality.learned_tendency)
            )
        if personality.values:
            descriptions.append(f"{self.name} has the following values: " + ", ".join(personality.values))

        seeded: List[Observation] = []
        for description in descriptions:
            outcome = await self.observe(description, now)
            seeded.append(outcome.memory)
        log_info(f"Seeded {len(seeded)} memories from personality", scope=self.name)
        return seeded

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    async def create_plan(self, *, now: float, force: bool = False) -> List[Plan]:
        async with self.lock:
            return await self.cognition.planner.create_plan(self, now=now, force=force)

    async def advance_current_task(self, now: float) -> Optional[Plan]:
        async with self.lock:
            return await self.cognition.planner.advance(self, now)

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def reply(self, message: str, context: str = "", *, now: float) -> str:
        """Answer ``message`` in character, grounded in retrieved memories.

        Raises:
            ScoringUnavailable: If the message cannot be embedded for retrieval
            GenerationUnavailable: If the provider cannot produce a reply
        """
        async with self.lock:
            memories = await self.memory.retrieve(message, self.settings.attention, now)
            values = build_prompt_values(
                self,
                now,
                memories=memories,
                day_length=self.cognition.planner.day_length,
                extra_context=context,
                message=message,
            )
            rendered = render_prompt(resolve_template("reply", self.cognition.prompt_library), values)
            log_llm(f"Replying to: {message}", scope=self.name)
            try:
                text = await self.provider.generate_text(rendered.user, rendered.system)
            except Exception as exc:
                raise GenerationUnavailable(agent_id=self.id, purpose="reply", cause=exc) from exc
            return text.strip()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _process_observation(self, memory: Observation, now: float) -> ObservationOutcome:
        cognition = self.cognition
        self.emit_memory_added(memory, now)
        cognition.reflection.record(memory)

        decision = cognition.reaction.on_observe(self, memory, now)
        replanned = False
        if decision is ReactionDecision.INTERRUPT:
            if cognition.planner.state(self) is PlanningState.NO_PLAN:
                log_deterministic(f"Interrupt without a plan: {memory.description}", scope=self.name)
            else:
                severe = cognition.reaction.is_severe(memory)
                try:
                    await cognition.planner.replan(self, memory.description, now, severe=severe)
                    replanned = True
                except (GenerationUnavailable, ScoringUnavailable) as exc:
                    log_error(f"Replan failed, keeping current plan: {exc}", scope=self.name)

        reflection = await cognition.reflection.maybe_reflect(self, now)
        return ObservationOutcome(
            memory=memory,
            decision=decision,
            reflection=reflection,
            replanned=replanned,
        )


__all__ = ["Agent", "ObservationOutcome", "INITIAL_ACTION"]

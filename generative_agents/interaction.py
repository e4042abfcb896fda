"""
Interaction coordinator: mediated exchanges between two agents.

The coordinator owns the interaction log and the cross-agent ledger (who
learned what from whom, and how reliably). Creating an interaction is one
critical section over both agents:

1. Content is generated outside the locks (conversation / rumor via the
   provider, observation from a local template).
2. Both agents' locks are taken in ID order.
3. Both memories are prepared (scored + embedded). A failure here aborts
   the interaction with neither stream touched.
4. Both memories are committed, then the log, ledger and cooldown update.

Observation memories then run through each agent's reaction/reflection
pipeline once the locks are released.
"""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Tuple

from .agent import Agent
from .config import Config
from .errors import (
    GenerationResult,
    GenerationUnavailable,
    InconsistentInteraction,
    ScoringUnavailable,
)
from .logging_utils import log_deterministic, log_error, log_info, log_llm
from .memory import PendingMemory
from .schemas import (
    CHANNEL_RELIABILITY,
    CrossAgentMemory,
    Interaction,
    InteractionKind,
    MemoryChannel,
    MemoryKind,
    Position,
)
from .cognition.prompts import PromptLibrary
from .cognition.renderers import render_prompt, resolve_template

CONVERSATION_FAILURE = "Failed to generate conversation"
RUMOR_FAILURE = "Failed to generate rumor"


class InteractionCoordinator:
    """Creates and records interactions between proximate agents.

    Args:
        proximity_threshold: Maximum Euclidean distance for can_interact
        cooldown: Minimum time between two interactions of the same ordered pair
        rumor_window: How far back the initiator's ledger feeds a rumor
        prompt_library: Optional overrides for conversation/rumor templates
    """

    def __init__(
        self,
        *,
        proximity_threshold: float = Config.PROXIMITY_THRESHOLD,
        cooldown: float = Config.INTERACTION_COOLDOWN,
        rumor_window: float = Config.DAY_LENGTH,
        prompt_library: Optional[PromptLibrary] = None,
    ) -> None:
        self.proximity_threshold = proximity_threshold
        self.cooldown = cooldown
        self.rumor_window = rumor_window
        self.prompt_library = prompt_library
        self.interactions: List[Interaction] = []
        self._ledger: Dict[str, List[CrossAgentMemory]] = {}
        self._last_interaction: Dict[Tuple[str, str], float] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def can_interact(self, a: Position, b: Position) -> bool:
        return a.distance_to(b) <= self.proximity_threshold

    def is_cooling_down(self, initiator_id: str, target_id: str, now: float) -> bool:
        last = self._last_interaction.get((initiator_id, target_id))
        return last is not None and now - last < self.cooldown

    def get_agent_memories(self, agent_id: str) -> List[CrossAgentMemory]:
        return list(self._ledger.get(agent_id, []))

    def get_recent_interactions(self, limit: int = 10) -> List[Interaction]:
        ordered = sorted(self.interactions, key=lambda item: item.timestamp, reverse=True)
        return ordered[:limit]

    def record_memory(
        self,
        agent_id: str,
        content: str,
        channel: MemoryChannel,
        source: str,
        now: float,
    ) -> CrossAgentMemory:
        entry = CrossAgentMemory(
            agent_id=agent_id,
            content=content,
            timestamp=now,
            source=source,
            channel=channel,
            reliability=CHANNEL_RELIABILITY[channel],
        )
        self._ledger.setdefault(agent_id, []).append(entry)
        return entry

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------

    async def create_interaction(
        self,
        initiator: Agent,
        target: Agent,
        kind: InteractionKind,
        now: float,
    ) -> Optional[Interaction]:
        """Run one interaction; None when skipped or when scoring failed.

        Raises:
            InconsistentInteraction: If the prepared pair cannot be committed
                on both sides
        """

        kind = InteractionKind(kind)
        if initiator.id == target.id:
            return None
        if self.is_cooling_down(initiator.id, target.id, now):
            log_deterministic(f"{initiator.id} -> {target.id} cooling down", scope="interaction")
            return None

        result = await self._generate_content(initiator, target, kind, now)

        first, second = sorted((initiator, target), key=lambda agent: agent.id)
        async with first.lock, second.lock:
            if self.is_cooling_down(initiator.id, target.id, now):
                return None
            try:
                pending_initiator, pending_target = await asyncio.gather(
                    self._prepare(initiator, target, kind, result.text, now),
                    self._prepare(target, initiator, kind, result.text, now),
                )
            except ScoringUnavailable as exc:
                log_error(f"Interaction {initiator.id} -> {target.id} aborted: {exc}", scope="interaction")
                return None

            if not (
                initiator.memory.can_commit(pending_initiator)
                and target.memory.can_commit(pending_target)
            ):
                raise InconsistentInteraction(
                    initiator_id=initiator.id,
                    target_id=target.id,
                    reason="prepared memory already committed or bound to another stream",
                )
            initiator_memory = initiator.memory.commit(pending_initiator)
            target_memory = target.memory.commit(pending_target)

            interaction = Interaction(
                id=f"int_{len(self.interactions) + 1}",
                initiator_id=initiator.id,
                target_id=target.id,
                kind=kind,
                content=result.text,
                timestamp=now,
                degraded=not result.ok,
            )
            self.interactions.append(interaction)
            self.record_memory(initiator.id, result.text, MemoryChannel.DIRECT, target.id, now)
            target_channel = MemoryChannel.RUMOR if kind is InteractionKind.RUMOR else MemoryChannel.DIRECT
            self.record_memory(target.id, result.text, target_channel, initiator.id, now)
            self._last_interaction[(initiator.id, target.id)] = now

        log_info(
            f"{kind.value}: {initiator.name} -> {target.name}: {result.text}",
            scope="interaction",
        )
        if kind is InteractionKind.OBSERVATION:
            await initiator.process_observation(initiator_memory, now)  # type: ignore[arg-type]
            await target.process_observation(target_memory, now)  # type: ignore[arg-type]
        else:
            initiator.emit_memory_added(initiator_memory, now)
            target.emit_memory_added(target_memory, now)
        return interaction

    async def _prepare(
        self,
        owner: Agent,
        partner: Agent,
        kind: InteractionKind,
        content: str,
        now: float,
    ) -> PendingMemory:
        if kind is InteractionKind.OBSERVATION:
            return await owner.memory.prepare(MemoryKind.OBSERVATION, content, now)
        return await owner.memory.prepare(
            MemoryKind.CONVERSATION, content, now, partner_id=partner.id
        )

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    async def _generate_content(
        self,
        initiator: Agent,
        target: Agent,
        kind: InteractionKind,
        now: float,
    ) -> GenerationResult:
        if kind is InteractionKind.OBSERVATION:
            goal = target.personality.current_goal or "doing something"
            return GenerationResult.success(f"{initiator.name} observed {target.name} {goal}")
        if kind is InteractionKind.CONVERSATION:
            return await self.generate_conversation(initiator, target)
        return await self.generate_rumor(initiator, target, now)

    async def generate_conversation(self, initiator: Agent, target: Agent) -> GenerationResult:
        values = {
            "initiator_name": initiator.name,
            "initiator_background": initiator.personality.background,
            "initiator_goal": initiator.personality.current_goal,
            "target_name": target.name,
            "target_background": target.personality.background,
            "target_goal": target.personality.current_goal,
        }
        return await self._generate(initiator, "conversation", values, CONVERSATION_FAILURE)

    async def generate_rumor(self, initiator: Agent, target: Agent, now: float) -> GenerationResult:
        horizon = now - self.rumor_window
        facts = [entry.content for entry in self.get_agent_memories(initiator.id) if entry.timestamp > horizon]
        values = {
            "innate_tendency": ", ".join(initiator.personality.innate_tendency),
            "known_facts": "\n".join(facts),
            "initiator_name": initiator.name,
            "target_name": target.name,
        }
        return await self._generate(initiator, "rumor", values, RUMOR_FAILURE)

    async def _generate(
        self,
        speaker: Agent,
        template_name: str,
        values: dict,
        placeholder: str,
    ) -> GenerationResult:
        rendered = render_prompt(resolve_template(template_name, self.prompt_library), values)
        log_llm(f"Generating {template_name}", scope=speaker.name)
        error: Optional[GenerationUnavailable] = None
        try:
            text = (await speaker.provider.generate_text(rendered.user, rendered.system)).strip()
        except Exception as exc:
            text = ""
            error = GenerationUnavailable(agent_id=speaker.id, purpose=template_name, cause=exc)
        if text:
            return GenerationResult.success(text)
        if error is None:
            error = GenerationUnavailable(agent_id=speaker.id, purpose=f"{template_name} (empty response)")
        log_error(str(error), scope=speaker.name)
        return GenerationResult.failure(placeholder, error)


__all__ = [
    "InteractionCoordinator",
    "CONVERSATION_FAILURE",
    "RUMOR_FAILURE",
]

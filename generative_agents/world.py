"""
Reference world driver.

Holds agents by ID and advances them together. Each tick:

1. Every agent advances to the plan item covering ``now`` (concurrently).
2. For each ordered pair within the coordinator's proximity threshold, roll
   ``interaction_chance``. On a hit, pick a conversation with probability
   ``conversation_chance``, otherwise a rumor.

Randomness comes from an injectable ``random.Random`` so runs replay
exactly under a fixed seed.
"""

from __future__ import annotations

import asyncio
import random
from typing import Dict, Iterable, List, Optional

from .agent import Agent
from .interaction import InteractionCoordinator
from .logging_utils import log_deterministic, log_error
from .schemas import Interaction, InteractionKind


class World:
    """Tick-based driver over a set of agents.

    Args:
        agents: Initial agents (IDs must be unique)
        coordinator: Interaction coordinator (a fresh one by default)
        rng: Random source for interaction rolls
        interaction_chance: Probability a proximate ordered pair interacts
        conversation_chance: Probability an interaction is a conversation
    """

    def __init__(
        self,
        agents: Iterable[Agent] = (),
        *,
        coordinator: Optional[InteractionCoordinator] = None,
        rng: Optional[random.Random] = None,
        interaction_chance: float = 0.3,
        conversation_chance: float = 0.7,
    ) -> None:
        self.agents: Dict[str, Agent] = {}
        self.coordinator = coordinator or InteractionCoordinator()
        self.rng = rng or random.Random()
        self.interaction_chance = interaction_chance
        self.conversation_chance = conversation_chance
        for agent in agents:
            self.add_agent(agent)

    def add_agent(self, agent: Agent) -> None:
        if agent.id in self.agents:
            raise ValueError(f"Duplicate agent id: {agent.id}")
        self.agents[agent.id] = agent

    def remove_agent(self, agent_id: str) -> Agent:
        return self.agents.pop(agent_id)

    def get_agent(self, agent_id: str) -> Agent:
        return self.agents[agent_id]

    def proximate_pairs(self) -> List[tuple]:
        """Ordered (initiator, target) pairs within proximity, by ID."""
        ordered = sorted(self.agents.values(), key=lambda agent: agent.id)
        return [
            (a, b)
            for a in ordered
            for b in ordered
            if a.id != b.id and self.coordinator.can_interact(a.position, b.position)
        ]

    async def tick(self, now: float) -> List[Interaction]:
        """Advance every agent, then roll interactions for proximate pairs."""

        results = await asyncio.gather(
            *(agent.advance_current_task(now) for agent in self.agents.values()),
            return_exceptions=True,
        )
        for agent, result in zip(list(self.agents.values()), results):
            if isinstance(result, Exception):
                log_error(f"Advance failed: {type(result).__name__}: {result}", scope=agent.name)
            elif isinstance(result, BaseException):
                raise result

        interactions: List[Interaction] = []
        for initiator, target in self.proximate_pairs():
            if self.rng.random() >= self.interaction_chance:
                continue
            kind = (
                InteractionKind.CONVERSATION
                if self.rng.random() < self.conversation_chance
                else InteractionKind.RUMOR
            )
            interaction = await self.coordinator.create_interaction(initiator, target, kind, now)
            if interaction is not None:
                interactions.append(interaction)

        log_deterministic(
            f"Tick {now:g}: {len(self.agents)} agents, {len(interactions)} interactions",
            scope="world",
        )
        return interactions

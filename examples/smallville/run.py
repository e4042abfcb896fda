"""Smallville morning - three residents go about their day.

Seeds each agent from its personality, then ticks the world every 10
simulated minutes from 08:00, printing plan changes and interactions.

Usage:
    LLM_PROVIDER=openai OPENAI_API_KEY=... python examples/smallville/run.py
    LLM_PROVIDER=ollama LLM_MODEL=llama3.1 EMBEDDING_PROVIDER=ollama \
        EMBEDDING_MODEL=nomic-embed-text python examples/smallville/run.py

Env overrides:
  - TICKS: number of ticks to run (default: 12)
  - SEED: random seed for interaction rolls (default: 7)
"""

import asyncio
import os
import random

from generative_agents import (
    Agent,
    AgentEvent,
    AgentEventType,
    AgentPersonality,
    InteractionCoordinator,
    LLMProvider,
    Position,
    World,
)
from generative_agents.config import Config
from generative_agents.logging_utils import log_info


RESIDENTS = [
    (
        "john",
        "John Lin",
        45,
        Position(x=0, y=0),
        AgentPersonality(
            background="John Lin is a pharmacy shopkeeper who loves to help people.",
            innate_tendency=["friendly", "kind"],
            learned_tendency=["attentive to customers"],
            current_goal="make his pharmacy the friendliest in town",
            lifestyle="wakes at 7, opens the pharmacy at 9, sleeps at 10",
            values=["family", "community"],
        ),
    ),
    (
        "maria",
        "Maria Lopez",
        21,
        Position(x=60, y=20),
        AgentPersonality(
            background="Maria Lopez studies physics and streams games in the evening.",
            innate_tendency=["energetic", "curious"],
            learned_tendency=["disciplined"],
            current_goal="finish her thesis draft this month",
            lifestyle="studies at the cafe in the morning, streams at night",
            values=["knowledge", "friendship"],
        ),
    ),
    (
        "isabella",
        "Isabella Rodriguez",
        34,
        Position(x=400, y=300),
        AgentPersonality(
            background="Isabella Rodriguez runs Hobbs Cafe.",
            innate_tendency=["warm", "organized"],
            learned_tendency=["good host"],
            current_goal="throw a Valentine's Day party at Hobbs Cafe",
            lifestyle="opens the cafe at 8, closes at 8pm",
            values=["hospitality"],
        ),
    ),
]


def _print_event(event: AgentEvent) -> None:
    if event.type is AgentEventType.ACTION_CHANGED:
        action = event.payload["action"]
        print(f"  {event.agent_id:>9} -> {action['status']} {''.join(action['emoji'])}")
    elif event.type is AgentEventType.REFLECTED:
        print(f"  {event.agent_id:>9} reflected ({len(event.payload['evidence'])} memories)")


async def main() -> None:
    Config.validate()
    print(Config.display())

    provider = LLMProvider()
    agents = []
    for agent_id, name, age, position, personality in RESIDENTS:
        agent = Agent(agent_id, name, provider, age=age, personality=personality, position=position)
        agent.on(AgentEventType.ACTION_CHANGED, _print_event)
        agent.on(AgentEventType.REFLECTED, _print_event)
        agents.append(agent)

    world = World(
        agents,
        coordinator=InteractionCoordinator(),
        rng=random.Random(int(os.getenv("SEED", "7"))),
    )

    start = 8 * 60.0
    await asyncio.gather(*(agent.seed_from_personality(start) for agent in agents))

    for tick in range(int(os.getenv("TICKS", "12"))):
        now = start + tick * 10
        log_info(f"Tick {tick} at minute {now:g}")
        for interaction in await world.tick(now):
            first, second = interaction.speech_lines()
            print(f"  [{interaction.kind.value}] {interaction.initiator_id}: {first}")
            if second != first:
                print(f"  [{interaction.kind.value}] {interaction.target_id}: {second}")

    for interaction in world.coordinator.get_recent_interactions():
        print(f"{interaction.timestamp:g} {interaction.initiator_id}->{interaction.target_id}: {interaction.content}")


if __name__ == "__main__":
    asyncio.run(main())

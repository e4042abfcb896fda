"""Tests for the interaction coordinator: proximity, atomicity, cooldown, ledger."""

import asyncio

import pytest

from generative_agents import (
    Conversation,
    InteractionCoordinator,
    InteractionKind,
    MemoryChannel,
    MemoryKind,
    Observation,
    Position,
)
from generative_agents.interaction import CONVERSATION_FAILURE, RUMOR_FAILURE


@pytest.fixture
def pair(make_agent):
    john = make_agent("john", "John Lin")
    maria = make_agent("maria", "Maria Lopez", x=50.0)
    return john, maria


def test_can_interact_uses_euclidean_threshold():
    coordinator = InteractionCoordinator()

    assert coordinator.can_interact(Position(x=0, y=0), Position(x=80, y=0))
    assert coordinator.can_interact(Position(x=0, y=0), Position(x=60, y=80))
    assert not coordinator.can_interact(Position(x=0, y=0), Position(x=150, y=0))


@pytest.mark.asyncio
async def test_conversation_is_written_to_both_streams(pair):
    john, maria = pair
    coordinator = InteractionCoordinator()

    interaction = await coordinator.create_interaction(john, maria, InteractionKind.CONVERSATION, 10.0)

    assert interaction.content == "Hello there|Hi John"
    assert interaction.speech_lines() == ("Hello there", "Hi John")
    assert not interaction.degraded
    john_memory = john.memory.by_kind(MemoryKind.CONVERSATION)
    maria_memory = maria.memory.by_kind(MemoryKind.CONVERSATION)
    assert len(john_memory) == len(maria_memory) == 1
    assert isinstance(john_memory[0], Conversation) and john_memory[0].partner_id == "maria"
    assert maria_memory[0].partner_id == "john"

    ledger = coordinator.get_agent_memories("maria")
    assert ledger[0].channel is MemoryChannel.DIRECT
    assert ledger[0].reliability == 1.0
    assert ledger[0].source == "john"


@pytest.mark.asyncio
async def test_rumor_target_records_low_reliability(pair):
    john, maria = pair
    coordinator = InteractionCoordinator()

    interaction = await coordinator.create_interaction(john, maria, InteractionKind.RUMOR, 10.0)

    assert interaction.kind is InteractionKind.RUMOR
    assert coordinator.get_agent_memories("john")[0].channel is MemoryChannel.DIRECT
    heard = coordinator.get_agent_memories("maria")[0]
    assert heard.channel is MemoryChannel.RUMOR
    assert heard.reliability == 0.5


@pytest.mark.asyncio
async def test_rumor_only_uses_recent_ledger_entries(pair, provider):
    john, maria = pair
    coordinator = InteractionCoordinator(rumor_window=1440.0)
    coordinator.record_memory("john", "the bakery burned down", MemoryChannel.DIRECT, "maria", 0.0)
    coordinator.record_memory("john", "the mayor is retiring", MemoryChannel.OBSERVED, "maria", 1900.0)

    result = await coordinator.generate_rumor(john, maria, 2000.0)

    assert result.ok
    _, context = provider.prompts[-1]
    assert "the mayor is retiring" in context
    assert "the bakery burned down" not in context
    assert "friendly, curious" in context
    assert coordinator.get_agent_memories("john")[1].reliability == 0.8


@pytest.mark.asyncio
async def test_observation_runs_reaction_pipeline(pair):
    john, maria = pair
    coordinator = InteractionCoordinator()

    interaction = await coordinator.create_interaction(john, maria, InteractionKind.OBSERVATION, 10.0)

    assert interaction.content == "John Lin observed Maria Lopez keep the cafe running"
    assert isinstance(john.memory.by_kind(MemoryKind.OBSERVATION)[0], Observation)
    assert john.cognition.reflection.importance_sum == pytest.approx(3.0)
    assert maria.cognition.reflection.importance_sum == pytest.approx(3.0)


@pytest.mark.asyncio
async def test_cooldown_applies_per_ordered_pair(pair):
    john, maria = pair
    coordinator = InteractionCoordinator(cooldown=10.0)

    assert await coordinator.create_interaction(john, maria, InteractionKind.CONVERSATION, 10.0)
    assert await coordinator.create_interaction(john, maria, InteractionKind.CONVERSATION, 15.0) is None
    assert await coordinator.create_interaction(maria, john, InteractionKind.CONVERSATION, 15.0)
    assert await coordinator.create_interaction(john, maria, InteractionKind.CONVERSATION, 20.0)
    assert len(coordinator.interactions) == 3


@pytest.mark.asyncio
async def test_self_interaction_is_ignored(pair):
    john, _ = pair
    coordinator = InteractionCoordinator()

    assert await coordinator.create_interaction(john, john, InteractionKind.CONVERSATION, 1.0) is None
    assert len(john.memory) == 0


@pytest.mark.asyncio
async def test_target_scoring_failure_leaves_both_streams_untouched(make_agent, fake_provider_cls):
    john = make_agent("john", "John Lin")
    broken = fake_provider_cls()
    broken.fail_scoring = {"Hello"}
    maria = make_agent("maria", "Maria Lopez", agent_provider=broken)
    coordinator = InteractionCoordinator()

    result = await coordinator.create_interaction(john, maria, InteractionKind.CONVERSATION, 10.0)

    assert result is None
    assert len(john.memory) == 0
    assert len(maria.memory) == 0
    assert coordinator.interactions == []
    assert coordinator.get_agent_memories("john") == []

    broken.fail_scoring = set()
    retried = await coordinator.create_interaction(john, maria, InteractionKind.CONVERSATION, 11.0)
    assert retried is not None
    assert len(john.memory) == len(maria.memory) == 1


@pytest.mark.asyncio
async def test_generation_failure_degrades_to_placeholder(pair, provider):
    john, maria = pair
    coordinator = InteractionCoordinator()
    provider.fail_generation = True

    conversation = await coordinator.create_interaction(john, maria, InteractionKind.CONVERSATION, 10.0)
    rumor = await coordinator.create_interaction(maria, john, InteractionKind.RUMOR, 10.0)

    assert conversation.content == CONVERSATION_FAILURE
    assert conversation.degraded
    assert rumor.content == RUMOR_FAILURE
    assert john.memory.by_kind(MemoryKind.CONVERSATION)[0].description == CONVERSATION_FAILURE


@pytest.mark.asyncio
async def test_recent_interactions_are_newest_first(pair):
    john, maria = pair
    coordinator = InteractionCoordinator(cooldown=0.0)

    for now in (10.0, 20.0, 30.0):
        await coordinator.create_interaction(john, maria, InteractionKind.OBSERVATION, now)

    recent = coordinator.get_recent_interactions(limit=2)

    assert [item.timestamp for item in recent] == [30.0, 20.0]


@pytest.mark.asyncio
async def test_crossed_and_duplicate_interactions_on_one_tick(pair):
    john, maria = pair
    coordinator = InteractionCoordinator(cooldown=10.0)

    results = await asyncio.wait_for(
        asyncio.gather(
            coordinator.create_interaction(john, maria, InteractionKind.CONVERSATION, 10.0),
            coordinator.create_interaction(maria, john, InteractionKind.CONVERSATION, 10.0),
            coordinator.create_interaction(john, maria, InteractionKind.CONVERSATION, 10.0),
        ),
        timeout=5.0,
    )

    created = [result for result in results if result is not None]
    assert len(created) == 2
    assert {(item.initiator_id, item.target_id) for item in created} == {
        ("john", "maria"),
        ("maria", "john"),
    }
    assert len(coordinator.interactions) == 2
    assert len(john.memory.by_kind(MemoryKind.CONVERSATION)) == 2
    assert len(maria.memory.by_kind(MemoryKind.CONVERSATION)) == 2

"""Tests for the reference world driver."""

import random

import pytest

from generative_agents import InteractionKind, World


class ScriptedRandom(random.Random):
    """Random source that replays fixed draws."""

    def __init__(self, draws):
        super().__init__(0)
        self.draws = list(draws)

    def random(self):
        return self.draws.pop(0)


@pytest.mark.asyncio
async def test_tick_advances_agents_and_rolls_interactions(make_agent):
    john = make_agent("john", "John Lin")
    maria = make_agent("maria", "Maria Lopez", x=40.0)
    # john -> maria interacts (0.1 < 0.3) as a conversation (0.5 < 0.7);
    # maria -> john skips (0.9 >= 0.3).
    world = World([john, maria], rng=ScriptedRandom([0.1, 0.5, 0.9]))

    interactions = await world.tick(600.0)

    assert john.current_task.description == "step 40"
    assert maria.current_task.description == "step 40"
    assert len(interactions) == 1
    assert interactions[0].kind is InteractionKind.CONVERSATION
    assert (interactions[0].initiator_id, interactions[0].target_id) == ("john", "maria")


@pytest.mark.asyncio
async def test_rumor_branch_and_distant_agents(make_agent):
    john = make_agent("john", "John Lin")
    maria = make_agent("maria", "Maria Lopez", x=40.0)
    hermit = make_agent("hermit", "Old Hermit", x=1000.0)
    world = World([john, maria, hermit], rng=ScriptedRandom([0.9, 0.2, 0.8]))

    assert [(a.id, b.id) for a, b in world.proximate_pairs()] == [("john", "maria"), ("maria", "john")]

    interactions = await world.tick(600.0)

    assert [item.kind for item in interactions] == [InteractionKind.RUMOR]
    assert interactions[0].initiator_id == "maria"


def test_duplicate_agent_ids_rejected(make_agent):
    world = World([make_agent("john", "John Lin")])

    with pytest.raises(ValueError):
        world.add_agent(make_agent("john", "John Again"))

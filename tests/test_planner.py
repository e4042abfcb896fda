"""Tests for hierarchical planning: generation, decomposition, execution, replanning."""

import pytest
from pydantic import ValidationError

from generative_agents import (
    AgentEventType,
    GenerationUnavailable,
    MemoryKind,
    Plan,
    PlanGranularity,
    PlanningState,
)
from generative_agents.cognition.planner import IDLE_LABEL, PlanItemModel, clamp_items


def _plans(agent):
    return agent.memory.by_kind(MemoryKind.PLAN)


@pytest.mark.asyncio
async def test_create_plan_builds_three_levels(make_agent):
    agent = make_agent()
    assert agent.planning_state is PlanningState.NO_PLAN

    days = await agent.create_plan(now=600.0)

    assert [plan.description for plan in days] == [
        "sleep",
        "morning routine",
        "work at the cafe",
        "evening painting",
    ]
    assert all(plan.granularity is PlanGranularity.DAY and plan.iteration == 1 for plan in days)
    hours = [plan for plan in _plans(agent) if plan.granularity is PlanGranularity.HOUR]
    minutes = [plan for plan in _plans(agent) if plan.granularity is PlanGranularity.MINUTE]
    assert [(plan.start, plan.end) for plan in hours][:2] == [(540, 600), (600, 660)]
    assert len(hours) == 8
    assert [plan.description for plan in minutes] == ["step 40", "step 41", "step 42", "step 43"]
    assert agent.planning_state is PlanningState.MINUTE_PLANNED


@pytest.mark.asyncio
async def test_every_child_names_an_enclosing_coarser_parent(make_agent):
    agent = make_agent()
    await agent.create_plan(now=600.0)
    await agent.advance_current_task(900.0)

    for plan in _plans(agent):
        if plan.granularity is PlanGranularity.DAY:
            assert plan.parent == ()
            continue
        parent = agent.memory.get(plan.parent[0])
        assert isinstance(parent, Plan)
        assert parent.granularity is plan.granularity.coarser
        assert parent.start <= plan.start < plan.end <= parent.end


@pytest.mark.asyncio
async def test_forced_plans_get_increasing_iterations(make_agent):
    agent = make_agent()

    first = await agent.create_plan(now=600.0, force=True)
    second = await agent.create_plan(now=600.0, force=True)

    assert {plan.iteration for plan in first} == {1}
    assert {plan.iteration for plan in second} == {2}
    assert agent.latest_plan_iteration == 2
    assert agent.current_task is None or agent.current_task.iteration == 2


@pytest.mark.asyncio
async def test_existing_day_plan_is_reused(make_agent, provider):
    agent = make_agent()
    await agent.create_plan(now=600.0)
    prompts = len(provider.prompts)

    await agent.create_plan(now=610.0)

    assert len(provider.prompts) == prompts
    assert agent.latest_plan_iteration == 1


@pytest.mark.asyncio
async def test_advance_updates_action_and_emits_events(make_agent):
    agent = make_agent()
    events = []
    agent.on(None, events.append)
    assert agent.action.status == "sleeping"

    task = await agent.advance_current_task(600.0)

    assert task.description == "step 40"
    assert agent.action.status == "step 40"
    assert agent.action.emoji == ["☕"]
    assert agent.location == "cafe"
    assert AgentEventType.ACTION_CHANGED in {event.type for event in events}
    assert AgentEventType.LOCATION_CHANGED in {event.type for event in events}

    events.clear()
    next_task = await agent.advance_current_task(620.0)

    assert next_task.description == "step 41"
    finished = [event for event in events if event.type is AgentEventType.TASK_FINISHED]
    assert [event.payload["task_id"] for event in finished] == [task.id]


@pytest.mark.asyncio
async def test_empty_generation_falls_back_to_idle_then_gives_up(make_agent, fake_provider_cls):
    provider = fake_provider_cls(generate=lambda prompt, context: "no plan today")
    agent = make_agent(agent_provider=provider)

    task = await agent.advance_current_task(600.0)

    assert task.description == IDLE_LABEL
    assert (task.start, task.end) == (0, 1440)
    assert agent.scratchpad.consecutive_fallbacks == 3
    stored = len(_plans(agent))

    with pytest.raises(GenerationUnavailable):
        await agent.create_plan(now=600.0, force=True)
    assert len(_plans(agent)) == stored


@pytest.mark.asyncio
async def test_replan_rewrites_the_rest_of_the_hour(make_agent):
    agent = make_agent()
    await agent.advance_current_task(600.0)
    replanned = []
    agent.on(AgentEventType.REPLANNED, replanned.append)
    superseded = [plan for plan in _plans(agent) if plan.description == "step 41"]

    new_minutes = await agent.cognition.planner.replan(agent, "the kitchen is on fire", 620.0)

    assert [plan.description for plan in new_minutes] == ["step 41", "step 42", "step 43"]
    assert new_minutes[0].start == 620
    assert {plan.iteration for plan in new_minutes} == {2}
    assert agent.current_task.id == new_minutes[0].id
    assert agent.memory.get(superseded[0].id) is not None
    assert len(replanned) == 1
    note = [prompt for prompt, _ in agent.provider.prompts if "the kitchen is on fire" in prompt]
    assert note


def test_clamp_items_sorts_trims_and_drops():
    items = [
        PlanItemModel(description="a", start=-30, end=60),
        PlanItemModel(description="c", start=100, end=300),
        PlanItemModel(description="b", start=50, end=120),
        PlanItemModel(description="bad", start=200, end=150),
    ]

    fitted = clamp_items(items, 0, 240)

    assert [(item.description, item.start, item.end) for item in fitted] == [
        ("a", 0, 60),
        ("b", 60, 120),
        ("c", 120, 240),
    ]


def test_plan_schema_enforces_parent_and_window():
    base = dict(
        id="plan_1",
        created_at=0.0,
        description="x",
        importance=1.0,
        latest_access=0.0,
        embedding=(1.0,),
        iteration=1,
    )
    with pytest.raises(ValidationError):
        Plan(granularity=PlanGranularity.HOUR, start=0, end=60, **base)
    with pytest.raises(ValidationError):
        Plan(granularity=PlanGranularity.DAY, start=60, end=60, **base)
    day = Plan(granularity=PlanGranularity.DAY, start=0, end=60, **base)
    assert day.contains(0) and not day.contains(60)


@pytest.mark.asyncio
async def test_superseded_task_is_reported_finished(make_agent):
    agent = make_agent()
    task = await agent.advance_current_task(600.0)
    finished = []
    agent.on(AgentEventType.TASK_FINISHED, finished.append)

    await agent.cognition.planner.replan(agent, "the kitchen is on fire", 605.0)

    assert [event.payload["task_id"] for event in finished] == [task.id]
    assert finished[0].payload["superseded"] is True

    finished.clear()
    replanned_task = agent.current_task
    await agent.create_plan(now=610.0, force=True)

    assert [event.payload["task_id"] for event in finished] == [replanned_task.id]

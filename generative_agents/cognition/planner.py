"""Planning engine: DAY -> HOUR -> MINUTE plan hierarchy.

States per agent::

    NO_PLAN -> DAY_PLANNED -> HOUR_PLANNED -> MINUTE_PLANNED (executing)

with re-planning moving back to HOUR_PLANNED/MINUTE_PLANNED.

Plan items are persisted as ``Plan`` memories. Generated windows are
validated before persisting: clamped to the parent window, sorted, overlaps
trimmed, empty windows dropped. When a generation yields nothing usable the
engine persists a single ``idle`` filler spanning the remaining window;
more than ``fallback_budget`` consecutive fillers raise
GenerationUnavailable instead.

Time model: ``now`` is in simulation time units; the planning horizon is one
day of ``day_length`` units and plan offsets are measured from the start of
that day.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError

from generative_agents.config import Config
from generative_agents.errors import GenerationUnavailable
from generative_agents.events import AgentEventType
from generative_agents.llm_utils import extract_json_block
from generative_agents.logging_utils import log_deterministic, log_error, log_llm, log_success
from generative_agents.provider import CognitionProvider
from generative_agents.schemas import AgentAction, MemoryKind, Plan, PlanGranularity

from .context import build_prompt_values
from .prompts import PromptLibrary
from .renderers import render_prompt, resolve_template
from .scratchpad import Scratchpad

if TYPE_CHECKING:  # pragma: no cover
    from generative_agents.agent import Agent


IDLE_LABEL = "idle"
IDLE_EMOJI = "💤"


class PlanningState(str, Enum):
    NO_PLAN = "NO_PLAN"
    DAY_PLANNED = "DAY_PLANNED"
    HOUR_PLANNED = "HOUR_PLANNED"
    MINUTE_PLANNED = "MINUTE_PLANNED"


class PlanItemModel(BaseModel):
    description: str = Field(..., min_length=1)
    start: float
    end: float
    emoji: Optional[str] = None
    location: Optional[str] = None
    priority: Optional[float] = Field(None, ge=0, le=10)


class PlanResponse(BaseModel):
    items: List[PlanItemModel] = Field(default_factory=list)


def clamp_items(
    items: Sequence[PlanItemModel], window_start: float, window_end: float
) -> List[PlanItemModel]:
    """Fit generated items into ``[window_start, window_end)``.

    Items are sorted by start, clamped to the window, overlaps are trimmed by
    moving a start up to the previous end, and empty results are dropped.
    """

    fitted: List[PlanItemModel] = []
    cursor = window_start
    for item in sorted(items, key=lambda candidate: (candidate.start, candidate.end)):
        start = max(item.start, window_start, cursor)
        end = min(item.end, window_end)
        if end <= start:
            continue
        fitted.append(item.model_copy(update={"start": start, "end": end}))
        cursor = end
    return fitted


def parse_plan_items(text: str) -> List[PlanItemModel]:
    """Parse generated text into plan items ([] when unusable)."""
    try:
        return PlanResponse.model_validate_json(extract_json_block(text)).items
    except ValidationError:
        return []


class PlanningEngine:
    """Produces, decomposes, executes and revises an agent's plan hierarchy.

    Args:
        provider: CognitionProvider used for text generation
        prompt_library: Optional overrides for the plan_* templates
        day_length: Planning horizon in time units
        fallback_budget: Consecutive filler fallbacks tolerated before
            GenerationUnavailable is raised
        context_memories: How many recent memories ground the day plan
    """

    def __init__(
        self,
        provider: CognitionProvider,
        *,
        prompt_library: Optional[PromptLibrary] = None,
        day_length: float = Config.DAY_LENGTH,
        fallback_budget: int = 3,
        context_memories: int = 10,
    ) -> None:
        if day_length <= 0:
            raise ValueError("day_length must be positive")
        self.provider = provider
        self.prompt_library = prompt_library
        self.day_length = day_length
        self.fallback_budget = fallback_budget
        self.context_memories = context_memories

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def day_index(self, now: float) -> int:
        return int(now // self.day_length)

    def day_offset(self, now: float) -> float:
        return now - self.day_index(now) * self.day_length

    def state(self, agent: "Agent") -> PlanningState:
        pad = agent.scratchpad
        if not pad.day_plan_ids:
            return PlanningState.NO_PLAN
        if pad.current_task_id or any(pad.minute_plan_ids.values()):
            return PlanningState.MINUTE_PLANNED
        if any(pad.hour_plan_ids.values()):
            return PlanningState.HOUR_PLANNED
        return PlanningState.DAY_PLANNED

    def current_task(self, agent: "Agent") -> Optional[Plan]:
        task_id = agent.scratchpad.current_task_id
        return self._plan(agent, task_id) if task_id else None

    def task_at(self, agent: "Agent", now: float) -> Optional[Plan]:
        """MINUTE item covering ``now`` in the active tree, without generating."""
        pad = agent.scratchpad
        if not pad.day_plan_ids or pad.day_index != self.day_index(now):
            return None
        offset = self.day_offset(now)
        day_item = self._find_active(agent, pad.day_plan_ids, offset)
        if day_item is None:
            return None
        hour_item = self._find_active(agent, pad.hour_plan_ids.get(day_item.id, []), offset)
        if hour_item is None:
            return None
        return self._find_active(agent, pad.minute_plan_ids.get(hour_item.id, []), offset)

    def day_plan(self, agent: "Agent") -> List[Plan]:
        return self._plans(agent, agent.scratchpad.day_plan_ids)

    def children(self, agent: "Agent", parent: Plan) -> List[Plan]:
        return self._plans(agent, agent.scratchpad.children(parent.id))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create_plan(self, agent: "Agent", *, now: float, force: bool = False) -> List[Plan]:
        """Ensure a DAY plan exists for the day containing ``now``.

        A fresh generation happens when there is no active DAY plan for this
        day or ``force`` is set; ``latest_plan_iteration`` is bumped first if
        an earlier generation exists. The activity covering ``now`` is then
        decomposed into HOUR items and the current hour into MINUTE items.

        Raises:
            ScoringUnavailable: If plan items cannot be scored/embedded
            GenerationUnavailable: If fillers exceed the fallback budget
        """

        pad = agent.scratchpad
        day_index = self.day_index(now)
        if pad.day_plan_ids and pad.day_index == day_index and not force:
            await self._ensure_decomposed(agent, now)
            return self.day_plan(agent)

        if pad.generations > 0:
            agent.latest_plan_iteration += 1

        values = build_prompt_values(
            agent,
            now,
            memories=agent.memory.recent(self.context_memories),
            day_length=self.day_length,
            window_start=0,
            window_end=int(self.day_length),
        )
        items = await self._generate_items(
            agent, "plan_day", values, 0.0, self.day_length, purpose="day plan"
        )
        days = await self._persist(agent, items, PlanGranularity.DAY, (), now)

        pad.day_index = day_index
        pad.day_plan_ids = [plan.id for plan in days]
        pad.hour_plan_ids = {}
        pad.minute_plan_ids = {}
        self._release_current(agent, now)
        pad.generations += 1
        log_success(
            f"Day plan iteration {agent.latest_plan_iteration}: {len(days)} activities",
            scope=agent.name,
        )

        await self._ensure_decomposed(agent, now)
        return days

    async def advance(self, agent: "Agent", now: float) -> Optional[Plan]:
        """Move execution to the MINUTE item covering ``now``.

        Creates the day plan if missing (or when a new day starts), lazily
        decomposes HOUR/MINUTE levels, updates the agent's action/location
        and emits TASK_FINISHED for the item that was left behind.
        """

        pad = agent.scratchpad
        if not pad.day_plan_ids or pad.day_index != self.day_index(now):
            await self.create_plan(agent, now=now)

        task = await self._ensure_decomposed(agent, now)
        previous_id = pad.current_task_id
        if previous_id and (task is None or task.id != previous_id):
            agent.emit(AgentEventType.TASK_FINISHED, now, task_id=previous_id)

        pad.current_task_id = task.id if task else None
        if task is None:
            agent.set_action(AgentAction(status=IDLE_LABEL, emoji=[IDLE_EMOJI]), now)
            return None

        emoji = [task.emoji] if task.emoji else []
        agent.set_action(AgentAction(status=task.description, emoji=emoji), now)
        if task.location:
            agent.set_location(task.location, now)
        return task

    async def replan(
        self,
        agent: "Agent",
        reason: str,
        now: float,
        *,
        severe: bool = False,
    ) -> List[Plan]:
        """Revise the plan from ``now`` forward after an interruption.

        MINUTE items ending after ``now`` leave the active tree (and HOUR
        items too when ``severe``), ``latest_plan_iteration`` is bumped and
        the remainder of the current window is decomposed again with
        ``reason`` in the prompt. Returns the new MINUTE items.
        """

        pad = agent.scratchpad
        if not pad.day_plan_ids or pad.day_index != self.day_index(now):
            await self.create_plan(agent, now=now)

        offset = self.day_offset(now)
        day_item = self._find_active(agent, pad.day_plan_ids, offset)
        if day_item is None:
            log_deterministic("No activity covers now; nothing to replan", scope=agent.name)
            return []

        agent.latest_plan_iteration += 1
        note = f"Plans changed because: {reason}. Re-plan from minute {int(offset)}."
        log_deterministic(
            f"Replanning ({'severe' if severe else 'minor'}): {reason}", scope=agent.name
        )

        hour_ids = pad.hour_plan_ids.get(day_item.id, [])
        hour_item: Optional[Plan]
        if severe or not hour_ids:
            kept_hours = self._drop_from(agent, hour_ids, offset)
            for dropped in set(hour_ids) - set(kept_hours):
                pad.minute_plan_ids.pop(dropped, None)
            new_hours = await self._decompose(
                agent, day_item, PlanGranularity.HOUR, now, window_start=offset, replan_note=note
            )
            pad.hour_plan_ids[day_item.id] = kept_hours + [plan.id for plan in new_hours]
            hour_item = self._find_active(agent, pad.hour_plan_ids[day_item.id], offset)
            if hour_item is None:
                self._release_current(agent, now)
                agent.emit(AgentEventType.REPLANNED, now, reason=reason, severe=severe)
                await self.advance(agent, now)
                return []
            new_minutes = await self._decompose(
                agent, hour_item, PlanGranularity.MINUTE, now, replan_note=note
            )
            pad.minute_plan_ids[hour_item.id] = [plan.id for plan in new_minutes]
        else:
            hour_item = self._find_active(agent, hour_ids, offset)
            # Later hours get re-decomposed lazily once execution reaches them.
            for later_id in hour_ids:
                later = self._plan(agent, later_id)
                if later is not None and later.start > offset:
                    pad.minute_plan_ids.pop(later_id, None)
            if hour_item is None:
                self._release_current(agent, now)
                agent.emit(AgentEventType.REPLANNED, now, reason=reason, severe=severe)
                await self.advance(agent, now)
                return []
            kept_minutes = self._drop_from(agent, pad.minute_plan_ids.get(hour_item.id, []), offset)
            new_minutes = await self._decompose(
                agent, hour_item, PlanGranularity.MINUTE, now, window_start=offset, replan_note=note
            )
            pad.minute_plan_ids[hour_item.id] = kept_minutes + [plan.id for plan in new_minutes]

        self._release_current(agent, now)
        agent.emit(AgentEventType.REPLANNED, now, reason=reason, severe=severe)
        await self.advance(agent, now)
        return new_minutes

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _release_current(self, agent: "Agent", now: float) -> None:
        """Finish the MINUTE item being executed before its tree is rewritten."""
        pad = agent.scratchpad
        if pad.current_task_id:
            agent.emit(
                AgentEventType.TASK_FINISHED, now, task_id=pad.current_task_id, superseded=True
            )
        pad.current_task_id = None

    def _plan(self, agent: "Agent", plan_id: str) -> Optional[Plan]:
        memory = agent.memory.get(plan_id)
        return memory if isinstance(memory, Plan) else None

    def _plans(self, agent: "Agent", ids: Sequence[str]) -> List[Plan]:
        return [plan for plan in (self._plan(agent, plan_id) for plan_id in ids) if plan is not None]

    def _find_active(self, agent: "Agent", ids: Sequence[str], offset: float) -> Optional[Plan]:
        for plan in self._plans(agent, ids):
            if plan.contains(offset):
                return plan
        return None

    def _drop_from(self, agent: "Agent", ids: Sequence[str], offset: float) -> List[str]:
        """Return the IDs whose window ends at or before ``offset``."""
        return [plan.id for plan in self._plans(agent, ids) if plan.end <= offset]

    async def _ensure_decomposed(self, agent: "Agent", now: float) -> Optional[Plan]:
        pad: Scratchpad = agent.scratchpad
        offset = self.day_offset(now)

        day_item = self._find_active(agent, pad.day_plan_ids, offset)
        if day_item is None:
            return None

        if not pad.hour_plan_ids.get(day_item.id):
            hours = await self._decompose(agent, day_item, PlanGranularity.HOUR, now)
            pad.hour_plan_ids[day_item.id] = [plan.id for plan in hours]
        hour_item = self._find_active(agent, pad.hour_plan_ids[day_item.id], offset)
        if hour_item is None:
            return None

        if not pad.minute_plan_ids.get(hour_item.id):
            minutes = await self._decompose(agent, hour_item, PlanGranularity.MINUTE, now)
            pad.minute_plan_ids[hour_item.id] = [plan.id for plan in minutes]
        return self._find_active(agent, pad.minute_plan_ids[hour_item.id], offset)

    async def _decompose(
        self,
        agent: "Agent",
        parent: Plan,
        granularity: PlanGranularity,
        now: float,
        *,
        window_start: Optional[float] = None,
        replan_note: str = "",
    ) -> List[Plan]:
        start = parent.start if window_start is None else max(parent.start, window_start)
        end = parent.end
        if end <= start:
            return []

        template_name = (
            "plan_decompose_hour" if granularity is PlanGranularity.HOUR else "plan_decompose_minute"
        )
        values = build_prompt_values(
            agent,
            now,
            day_length=self.day_length,
            parent_description=parent.description,
            window_start=int(start),
            window_end=int(end),
            replan_note=replan_note,
        )
        items = await self._generate_items(
            agent, template_name, values, start, end, purpose=f"{granularity.value} decomposition"
        )
        # Children inherit presentation hints the generator left out.
        items = [
            item.model_copy(
                update={
                    "emoji": item.emoji or parent.emoji,
                    "location": item.location or parent.location,
                }
            )
            for item in items
        ]
        return await self._persist(agent, items, granularity, (parent.id,), now)

    async def _generate_items(
        self,
        agent: "Agent",
        template_name: str,
        values: dict,
        window_start: float,
        window_end: float,
        *,
        purpose: str,
    ) -> List[PlanItemModel]:
        rendered = render_prompt(resolve_template(template_name, self.prompt_library), values)
        log_llm(f"Generating {purpose}", scope=agent.name)

        items: List[PlanItemModel] = []
        try:
            text = await self.provider.generate_text(rendered.user, rendered.system)
        except Exception as exc:
            log_error(f"{purpose} generation failed: {type(exc).__name__}: {exc}", scope=agent.name)
        else:
            items = clamp_items(parse_plan_items(text), window_start, window_end)

        pad = agent.scratchpad
        if items:
            pad.consecutive_fallbacks = 0
            return items

        pad.consecutive_fallbacks += 1
        if pad.consecutive_fallbacks > self.fallback_budget:
            raise GenerationUnavailable(
                agent_id=agent.id,
                purpose=f"{purpose} ({pad.consecutive_fallbacks} consecutive fallbacks)",
            )
        log_error(
            f"{purpose} produced no usable items; falling back to '{IDLE_LABEL}' "
            f"({pad.consecutive_fallbacks}/{self.fallback_budget})",
            scope=agent.name,
        )
        return [
            PlanItemModel(
                description=IDLE_LABEL,
                start=window_start,
                end=window_end,
                emoji=IDLE_EMOJI,
            )
        ]

    async def _persist(
        self,
        agent: "Agent",
        items: Sequence[PlanItemModel],
        granularity: PlanGranularity,
        parent: tuple,
        now: float,
    ) -> List[Plan]:
        """Score every item first, then commit them all (all-or-nothing)."""

        pending = []
        for item in items:
            pending.append(
                await agent.memory.prepare(
                    MemoryKind.PLAN,
                    item.description,
                    now,
                    iteration=agent.latest_plan_iteration,
                    granularity=granularity,
                    start=item.start,
                    end=item.end,
                    parent=parent,
                    emoji=item.emoji,
                    location=item.location,
                    priority=item.priority,
                )
            )
        plans = [agent.memory.commit(entry) for entry in pending]
        for plan in plans:
            agent.emit_memory_added(plan, now)
        return plans

"""Reaction engine: decide whether a new observation interrupts the plan."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Optional

from generative_agents.schemas import Memory, Observation, Plan

if TYPE_CHECKING:  # pragma: no cover
    from generative_agents.agent import Agent


class ReactionDecision(str, Enum):
    CONTINUE = "continue"
    INTERRUPT = "interrupt"


class ReactionEngine:
    """Compares observation importance against the current task's priority.

    An observation interrupts when ``importance > priority + margin``. The
    priority comes from the MINUTE item covering ``now`` in the active plan
    tree (or the executing item), else the nearest ancestor
    that declares one, else ``default_priority``. Observations at or above
    ``severe_importance`` also discard the remaining HOUR items on replan.
    """

    def __init__(
        self,
        *,
        margin: float = 2.0,
        default_priority: float = 5.0,
        severe_importance: float = 9.0,
    ) -> None:
        self.margin = margin
        self.default_priority = default_priority
        self.severe_importance = severe_importance

    def current_priority(self, agent: "Agent", now: Optional[float] = None) -> float:
        plan: Optional[Plan] = None
        if now is not None:
            plan = agent.cognition.planner.task_at(agent, now)
        if plan is None:
            plan = agent.current_task
        while plan is not None:
            if plan.priority is not None:
                return plan.priority
            parent = agent.memory.get(plan.parent[0]) if plan.parent else None
            plan = parent if isinstance(parent, Plan) else None
        return self.default_priority

    def on_observe(self, agent: "Agent", memory: Memory, now: float) -> ReactionDecision:
        """Pure decision; never mutates the agent or its plan."""
        if not isinstance(memory, Observation):
            return ReactionDecision.CONTINUE
        if memory.importance > self.current_priority(agent, now) + self.margin:
            return ReactionDecision.INTERRUPT
        return ReactionDecision.CONTINUE

    def is_severe(self, memory: Memory) -> bool:
        return memory.importance >= self.severe_importance

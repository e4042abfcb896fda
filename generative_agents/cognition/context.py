"""Context assembly utilities for cognition prompts.

Gathers what every prompt needs about an agent (identity, personality,
current activity, clock, retrieved memories) into the flat placeholder
mapping consumed by ``render_prompt``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, List

from generative_agents.config import Config
from generative_agents.schemas import AgentPersonality

if TYPE_CHECKING:  # pragma: no cover
    from generative_agents.agent import Agent
    from generative_agents.schemas import Memory


def format_clock(now: float, day_length: float = Config.DAY_LENGTH) -> str:
    """Render simulation time as ``Day N, HH:MM`` (one unit = one minute)."""
    day_index = int(now // day_length)
    offset = now - day_index * day_length
    hours, minutes = divmod(int(offset), 60)
    return f"Day {day_index + 1}, {hours:02d}:{minutes:02d}"


def memories_text(memories: Iterable["Memory"], limit: int | None = None) -> str:
    lines: List[str] = []
    for idx, memory in enumerate(memories):
        if limit is not None and idx >= limit:
            break
        lines.append(f"- [{memory.kind.value}] {memory.description}")
    return "\n".join(lines) if lines else "- (none)"


def personality_summary(name: str, age: int | None, personality: AgentPersonality) -> str:
    lines = [f"Name: {name}" + (f" (age {age})" if age is not None else "")]
    if personality.background:
        lines.append(f"Background: {personality.background}")
    if personality.innate_tendency:
        lines.append(f"Innate tendencies: {', '.join(personality.innate_tendency)}")
    if personality.learned_tendency:
        lines.append(f"Learned tendencies: {', '.join(personality.learned_tendency)}")
    if personality.current_goal:
        lines.append(f"Current goal: {personality.current_goal}")
    if personality.lifestyle:
        lines.append(f"Lifestyle: {personality.lifestyle}")
    if personality.values:
        lines.append(f"Values: {', '.join(personality.values)}")
    return "\n".join(lines)


def build_prompt_values(
    agent: "Agent",
    now: float,
    *,
    memories: Iterable["Memory"] = (),
    day_length: float = Config.DAY_LENGTH,
    **extra: Any,
) -> Dict[str, Any]:
    """Return the placeholder mapping for prompts about ``agent``."""

    summary = personality_summary(agent.name, agent.age, agent.personality)
    summary += f"\nCurrently: {agent.action.status}"
    if agent.location:
        summary += f" at {agent.location}"

    values: Dict[str, Any] = {
        "agent_id": agent.id,
        "agent_name": agent.name,
        "agent_summary": summary,
        "clock": format_clock(now, day_length),
        "memories_text": memories_text(memories),
    }
    values.update(extra)
    return values

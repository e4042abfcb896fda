"""Agent cognition runtime.

Bundles the planner, reflection engine, reaction engine and scratchpad for
each agent so the Agent façade stays agnostic to the specific
implementations and there is one place to hang configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from generative_agents.config import Config
from generative_agents.provider import CognitionProvider

from .planner import PlanningEngine
from .prompts import PromptLibrary
from .reaction import ReactionEngine
from .reflection import ReflectionEngine
from .scratchpad import Scratchpad


@dataclass
class AgentCognition:
    """Collection of cognition modules bound to a single agent.

    Engines hold per-agent state (the reflection sum, the scratchpad), so a
    bundle must not be shared between agents.

    Examples:
        Default Stanford-style stack:
            build_default_cognition(provider)

        Custom reaction sensitivity:
            AgentCognition(
                planner=PlanningEngine(provider),
                reflection=ReflectionEngine(provider),
                reaction=ReactionEngine(margin=1.0),
            )
    """

    planner: PlanningEngine
    reflection: ReflectionEngine
    reaction: ReactionEngine = field(default_factory=ReactionEngine)
    scratchpad: Scratchpad = field(default_factory=Scratchpad)
    prompt_library: Optional[PromptLibrary] = None


def build_default_cognition(
    provider: CognitionProvider,
    *,
    prompt_library: Optional[PromptLibrary] = None,
    day_length: float = Config.DAY_LENGTH,
) -> AgentCognition:
    """Return the full planning/reflection/reaction stack for one agent."""

    return AgentCognition(
        planner=PlanningEngine(provider, prompt_library=prompt_library, day_length=day_length),
        reflection=ReflectionEngine(provider, prompt_library=prompt_library, day_length=day_length),
        reaction=ReactionEngine(),
        scratchpad=Scratchpad(),
        prompt_library=prompt_library,
    )

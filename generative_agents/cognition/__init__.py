"""Agent cognition stack: planning, reflection, reaction and prompts."""

from .scratchpad import Scratchpad
from .planner import PlanningEngine, PlanningState, PlanItemModel, PlanResponse, clamp_items
from .reflection import DEFAULT_FOCAL_QUERIES, ReflectionEngine
from .reaction import ReactionDecision, ReactionEngine
from .runtime import AgentCognition, build_default_cognition
from .context import build_prompt_values, format_clock
from .prompts import PromptLibrary, PromptTemplate, DEFAULT_PROMPTS
from .renderers import render_prompt, RenderedPrompt

__all__ = [
    "Scratchpad",
    "PlanningEngine",
    "PlanningState",
    "PlanItemModel",
    "PlanResponse",
    "clamp_items",
    "DEFAULT_FOCAL_QUERIES",
    "ReflectionEngine",
    "ReactionDecision",
    "ReactionEngine",
    "AgentCognition",
    "build_default_cognition",
    "build_prompt_values",
    "format_clock",
    "PromptLibrary",
    "PromptTemplate",
    "DEFAULT_PROMPTS",
    "render_prompt",
    "RenderedPrompt",
]

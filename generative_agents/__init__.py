"""
generative_agents - believable simulated characters driven by LLM cognition.

Each agent keeps an append-only memory stream, reflects on what it
observes, plans its day hierarchically and reacts to surprises; an
interaction coordinator mediates exchanges between proximate agents.

No file I/O required. No database required. Model access is injected
through a CognitionProvider.
"""

__version__ = "0.1.0"

# Agents and world
from .agent import Agent, ObservationOutcome
from .interaction import InteractionCoordinator
from .world import World

# Memory and cognition
from .memory import MemoryStream, RetrievalWeights, ScoredMemory
from .cognition import (
    AgentCognition,
    build_default_cognition,
    Scratchpad,
    PlanningEngine,
    PlanningState,
    ReflectionEngine,
    ReactionEngine,
    ReactionDecision,
    PromptLibrary,
    PromptTemplate,
    DEFAULT_PROMPTS,
)

# External collaborator
from .provider import CognitionProvider, LLMProvider

# Errors and events
from .errors import (
    GenerativeAgentsError,
    ScoringUnavailable,
    GenerationUnavailable,
    InconsistentInteraction,
    GenerationResult,
)
from .events import AgentEvent, AgentEventType

# Core schemas
from .schemas import (
    MemoryKind,
    Observation,
    Reflection,
    Plan,
    Conversation,
    PlanGranularity,
    AgentPersonality,
    AgentSettings,
    AgentAction,
    Position,
    Interaction,
    InteractionKind,
    CrossAgentMemory,
    MemoryChannel,
)

__all__ = [
    "Agent",
    "ObservationOutcome",
    "InteractionCoordinator",
    "World",
    "MemoryStream",
    "RetrievalWeights",
    "ScoredMemory",
    "AgentCognition",
    "build_default_cognition",
    "Scratchpad",
    "PlanningEngine",
    "PlanningState",
    "ReflectionEngine",
    "ReactionEngine",
    "ReactionDecision",
    "PromptLibrary",
    "PromptTemplate",
    "DEFAULT_PROMPTS",
    "CognitionProvider",
    "LLMProvider",
    "GenerativeAgentsError",
    "ScoringUnavailable",
    "GenerationUnavailable",
    "InconsistentInteraction",
    "GenerationResult",
    "AgentEvent",
    "AgentEventType",
    "MemoryKind",
    "Observation",
    "Reflection",
    "Plan",
    "Conversation",
    "PlanGranularity",
    "AgentPersonality",
    "AgentSettings",
    "AgentAction",
    "Position",
    "Interaction",
    "InteractionKind",
    "CrossAgentMemory",
    "MemoryChannel",
]

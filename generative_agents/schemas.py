"""
Pydantic schemas for the generative agents core.

All data structures shared between the memory stream, cognition engines and
the interaction coordinator are defined here.

Design Philosophy:
- Memories are a discriminated union on ``kind`` so a stream can hold every
  variant while callers still get precise types back
- Fields that must never change after creation are declared ``frozen`` so an
  accidental assignment fails loudly instead of corrupting retrieval
- Times are floats in simulation time units supplied by the world driver
"""

import math
from enum import Enum
from typing import Annotated, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator, model_validator


# ============================================================================
# Memory Schemas
# ============================================================================


class MemoryKind(str, Enum):
    """Discriminator for the four memory variants."""

    OBSERVATION = "observation"
    REFLECTION = "reflection"
    PLAN = "plan"
    CONVERSATION = "conversation"


# Per-kind ID prefixes. IDs look like "obs_1", "plan_12".
MEMORY_ID_PREFIXES = {
    MemoryKind.OBSERVATION: "obs",
    MemoryKind.REFLECTION: "ref",
    MemoryKind.PLAN: "plan",
    MemoryKind.CONVERSATION: "conv",
}

IMPORTANCE_MIN = 0.0
IMPORTANCE_MAX = 10.0


class PlanGranularity(str, Enum):
    """Time resolution of a plan item."""

    DAY = "DAY"
    HOUR = "HOUR"
    MINUTE = "MINUTE"

    @property
    def coarser(self) -> Optional["PlanGranularity"]:
        """Return the granularity this one refines (None for DAY)."""
        if self is PlanGranularity.MINUTE:
            return PlanGranularity.HOUR
        if self is PlanGranularity.HOUR:
            return PlanGranularity.DAY
        return None

    @property
    def finer(self) -> Optional["PlanGranularity"]:
        if self is PlanGranularity.DAY:
            return PlanGranularity.HOUR
        if self is PlanGranularity.HOUR:
            return PlanGranularity.MINUTE
        return None


class BaseMemory(BaseModel):
    """A single record in an agent's memory stream.

    Memory records are written once by the stream and never edited, with one
    exception: ``latest_access`` moves forward every time retrieval returns
    the record. Accessed memories therefore decay more slowly.

    Importance scoring (0-10):
    - 0-3: Mundane observations (brushing teeth, walking past a bench)
    - 4-6: Notable events (a conversation, a change of plans)
    - 7-9: Significant events (an argument, a fire, a job offer)
    - 10: Life-changing events
    """

    id: str = Field(..., frozen=True, description="Stable ID, unique within agent+kind")
    created_at: float = Field(..., frozen=True, description="Creation time (time units)")
    description: str = Field(..., frozen=True, description="Natural language content")
    importance: float = Field(
        ...,
        ge=IMPORTANCE_MIN,
        le=IMPORTANCE_MAX,
        frozen=True,
        description="Salience score assigned once by the external scorer",
    )
    latest_access: float = Field(..., description="Last time retrieval returned this memory")
    embedding: Tuple[float, ...] = Field(
        ..., frozen=True, description="Fixed-length embedding vector"
    )

    @field_validator("embedding")
    @classmethod
    def _embedding_is_finite(cls, value: Tuple[float, ...]) -> Tuple[float, ...]:
        if not value:
            raise ValueError("embedding must not be empty")
        if any(not math.isfinite(component) for component in value):
            raise ValueError("embedding must contain only finite numbers")
        return value


class Observation(BaseMemory):
    """A raw percept."""

    kind: Literal[MemoryKind.OBSERVATION] = Field(MemoryKind.OBSERVATION, frozen=True)


class Reflection(BaseMemory):
    """A synthesized insight and the evidence it was derived from."""

    kind: Literal[MemoryKind.REFLECTION] = Field(MemoryKind.REFLECTION, frozen=True)
    evidence: Tuple[str, ...] = Field(
        default_factory=tuple, frozen=True, description="IDs of evidentiary memories"
    )


class Plan(BaseMemory):
    """A plan item at DAY, HOUR or MINUTE granularity.

    ``start``/``end`` are offsets inside the planning horizon (one day) and
    describe the half-open window ``[start, end)``. HOUR and MINUTE items
    always name the coarser item they refine in ``parent``.
    """

    kind: Literal[MemoryKind.PLAN] = Field(MemoryKind.PLAN, frozen=True)
    iteration: int = Field(..., ge=0, frozen=True, description="Plan revision counter")
    granularity: PlanGranularity = Field(..., frozen=True)
    start: float = Field(..., ge=0, frozen=True)
    end: float = Field(..., frozen=True)
    parent: Tuple[str, ...] = Field(default_factory=tuple, frozen=True)
    # Presentation hints mirrored into AgentAction (status + emoji) and
    # where the activity happens. Optional: generators may omit them.
    emoji: Optional[str] = Field(None, frozen=True)
    location: Optional[str] = Field(None, frozen=True)
    # Per-activity urgency consulted by the reaction engine.
    priority: Optional[float] = Field(
        None, ge=IMPORTANCE_MIN, le=IMPORTANCE_MAX, frozen=True
    )

    @model_validator(mode="after")
    def _check_window_and_parent(self) -> "Plan":
        if self.end <= self.start:
            raise ValueError(f"plan window must be non-empty (start={self.start}, end={self.end})")
        if self.granularity is not PlanGranularity.DAY and not self.parent:
            raise ValueError(f"{self.granularity.value} plan items require a parent")
        return self

    def contains(self, offset: float) -> bool:
        return self.start <= offset < self.end

    def overlaps(self, other: "Plan") -> bool:
        return self.start < other.end and other.start < self.end


class Conversation(BaseMemory):
    """Dialogue content exchanged with another agent."""

    kind: Literal[MemoryKind.CONVERSATION] = Field(MemoryKind.CONVERSATION, frozen=True)
    partner_id: Optional[str] = Field(None, frozen=True, description="The other agent")


Memory = Annotated[
    Union[Observation, Reflection, Plan, Conversation],
    Field(discriminator="kind"),
]

MEMORY_CLASSES = {
    MemoryKind.OBSERVATION: Observation,
    MemoryKind.REFLECTION: Reflection,
    MemoryKind.PLAN: Plan,
    MemoryKind.CONVERSATION: Conversation,
}


# ============================================================================
# Agent Schemas
# ============================================================================


class AgentPersonality(BaseModel):
    """Static character sheet used to ground every prompt about the agent."""

    background: str = Field("", description="Backstory, first person or narrative")
    innate_tendency: List[str] = Field(default_factory=list)
    learned_tendency: List[str] = Field(default_factory=list)
    current_goal: str = Field("", description="What the agent is trying to achieve")
    lifestyle: str = Field("", description="Daily rhythm, e.g. 'wakes at 7, sleeps at 11'")
    values: List[str] = Field(default_factory=list)


class AgentSettings(BaseModel):
    """Per-agent cognitive limits."""

    visual_range: float = Field(8, ge=0, description="How far the agent perceives")
    # attention bounds how many memories a single retrieval may return
    attention: int = Field(8, ge=1, description="Maximum retrieval result count")
    # retention scales the reflection trigger threshold
    retention: float = Field(8, gt=0, description="Reflection threshold scale")


class AgentAction(BaseModel):
    """What the agent is visibly doing right now (status label + emoji)."""

    status: str = Field(..., description="Short activity label")
    emoji: List[str] = Field(default_factory=list, description="Expressive markers")


class Position(BaseModel):
    """Continuous 2D position used for proximity checks."""

    x: float
    y: float

    def distance_to(self, other: "Position") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


# ============================================================================
# Interaction Schemas
# ============================================================================


class InteractionKind(str, Enum):
    CONVERSATION = "conversation"
    OBSERVATION = "observation"
    RUMOR = "rumor"


class Interaction(BaseModel):
    """A mediated exchange between two agents, owned by the coordinator."""

    id: str
    initiator_id: str
    target_id: str
    kind: InteractionKind
    content: str
    timestamp: float
    # True when content is the generic placeholder after a generation failure
    degraded: bool = False

    def speech_lines(self) -> Tuple[str, str]:
        """Split ``"initiator line | target line"`` content for display.

        Content without a separator is attributed to both agents.
        """
        if "|" not in self.content:
            text = self.content.strip()
            return text, text
        initiator_text, target_text = self.content.split("|", 1)
        return initiator_text.strip(), target_text.strip()


class MemoryChannel(str, Enum):
    """How an agent came to know a piece of cross-agent information."""

    DIRECT = "direct"
    OBSERVED = "observed"
    RUMOR = "rumor"


CHANNEL_RELIABILITY = {
    MemoryChannel.DIRECT: 1.0,
    MemoryChannel.OBSERVED: 0.8,
    MemoryChannel.RUMOR: 0.5,
}


class CrossAgentMemory(BaseModel):
    """Coordinator ledger entry: something an agent learned from another agent."""

    agent_id: str
    content: str
    timestamp: float
    source: str = Field(..., description="ID of the agent the information came from")
    channel: MemoryChannel
    reliability: float = Field(..., ge=0.0, le=1.0)

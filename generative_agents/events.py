"""Typed notifications emitted by agents.

Renderers and world drivers subscribe to these instead of polling agent
state. Listeners are plain callables invoked synchronously in registration
order; a failing listener is reported and does not stop the others.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from .logging_utils import log_error


class AgentEventType(str, Enum):
    ACTION_CHANGED = "action_changed"
    LOCATION_CHANGED = "location_changed"
    TASK_FINISHED = "task_finished"
    MEMORY_ADDED = "memory_added"
    REFLECTED = "reflected"
    REPLANNED = "replanned"


class AgentEvent(BaseModel):
    type: AgentEventType
    agent_id: str
    timestamp: float
    payload: Dict[str, Any] = Field(default_factory=dict)


AgentListener = Callable[[AgentEvent], None]


class EventEmitter:
    """Minimal per-type listener registry."""

    def __init__(self) -> None:
        self._listeners: Dict[Optional[AgentEventType], List[AgentListener]] = {}

    def on(self, event_type: Optional[AgentEventType], listener: AgentListener) -> None:
        """Register ``listener`` for ``event_type`` (``None`` = every event)."""
        self._listeners.setdefault(event_type, []).append(listener)

    def off(self, event_type: Optional[AgentEventType], listener: AgentListener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event: AgentEvent) -> None:
        targets = list(self._listeners.get(event.type, [])) + list(self._listeners.get(None, []))
        for listener in targets:
            try:
                listener(event)
            except Exception as exc:
                log_error(
                    f"Listener for {event.type.value} raised {type(exc).__name__}: {exc}",
                    scope=event.agent_id,
                )

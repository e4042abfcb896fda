"""Scratchpad: the agent's working memory for plan execution.

The memory stream keeps every plan item ever generated. The scratchpad
records which of them are currently consulted for execution (the active
plan tree) and which MINUTE item the agent is working on. Re-planning
rewrites the tree; superseded items simply stop being referenced here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set


@dataclass
class Scratchpad:
    """Active plan tree plus free-form working state.

    Notes
    -----
    * ``day_plan_ids`` are the DAY items of the current generation.
    * ``hour_plan_ids`` maps a DAY item ID to its active HOUR children and
      ``minute_plan_ids`` maps an HOUR item ID to its active MINUTE children,
      each list ordered by start time.
    * ``state`` stays open for custom engines to stash arbitrary keys.
    """

    day_index: Optional[int] = None
    day_plan_ids: List[str] = field(default_factory=list)
    hour_plan_ids: Dict[str, List[str]] = field(default_factory=dict)
    minute_plan_ids: Dict[str, List[str]] = field(default_factory=dict)
    current_task_id: Optional[str] = None
    generations: int = 0
    consecutive_fallbacks: int = 0
    state: Dict[str, Any] = field(default_factory=dict)

    def clear(self) -> None:
        """Forget the active plan tree (the memory stream is untouched)."""

        self.day_index = None
        self.day_plan_ids = []
        self.hour_plan_ids = {}
        self.minute_plan_ids = {}
        self.current_task_id = None
        self.state.clear()

    def children(self, parent_id: str) -> List[str]:
        if parent_id in self.hour_plan_ids:
            return list(self.hour_plan_ids[parent_id])
        return list(self.minute_plan_ids.get(parent_id, []))

    def active_ids(self) -> Set[str]:
        active: Set[str] = set(self.day_plan_ids)
        for ids in self.hour_plan_ids.values():
            active.update(ids)
        for ids in self.minute_plan_ids.values():
            active.update(ids)
        return active

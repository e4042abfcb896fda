"""Prompt templates for the cognition stages.

Templates use ``{{placeholder}}`` markers (see renderers.render_prompt).
``system`` carries the grounding context, ``user`` the instruction; both
are handed to ``CognitionProvider.generate_text(prompt=user, context=system)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass
class PromptTemplate:
    """Represents a templated prompt with placeholders."""

    name: str
    system: str
    user: str
    description: str = ""


class PromptLibrary:
    """Container for named prompt templates per cognition stage."""

    def __init__(self) -> None:
        self.templates: Dict[str, PromptTemplate] = {}

    def register(self, template: PromptTemplate) -> None:
        self.templates[template.name] = template

    def get(self, name: str) -> PromptTemplate:
        return self.templates[name]

    def copy(self) -> "PromptLibrary":
        library = PromptLibrary()
        library.templates = dict(self.templates)
        return library


DEFAULT_PROMPTS = PromptLibrary()

_AGENT_CONTEXT = "{{agent_summary}}\n\nCurrent time: {{clock}}"

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="reflect_questions",
        system=_AGENT_CONTEXT,
        user=(
            "Statements from {{agent_name}}'s recent memory:\n{{memories_text}}\n\n"
            "Given only the information above, what are the {{question_count}} most salient "
            "high-level questions we can answer about the subjects in the statements? "
            "Write one question per line with no numbering."
        ),
        description="Generates focal questions that drive evidence retrieval.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="reflect_insight",
        system=_AGENT_CONTEXT,
        user=(
            "Statements about {{agent_name}}:\n{{memories_text}}\n\n"
            "What single high-level insight can you infer from the above statements? "
            "Answer in one or two sentences written from {{agent_name}}'s perspective."
        ),
        description="Synthesizes one reflection from evidentiary memories.",
    )
)

_PLAN_ITEM_SCHEMA = (
    "Respond with JSON only:\n"
    "{\n"
    "  \"items\": [\n"
    "    {\"description\": \"...\", \"start\": <minute>, \"end\": <minute>, "
    "\"emoji\": \"...\", \"location\": \"...\", \"priority\": <0-10>}\n"
    "  ]\n"
    "}\n"
    "Times are minutes since midnight. Items must not overlap and must stay inside "
    "the window. emoji, location and priority are optional."
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="plan_day",
        system=_AGENT_CONTEXT,
        user=(
            "Relevant memories:\n{{memories_text}}\n\n"
            "Plan {{agent_name}}'s day in broad strokes: 5 to 8 activities covering the "
            "window {{window_start}} to {{window_end}} (minutes since midnight), in order.\n\n"
            + _PLAN_ITEM_SCHEMA
        ),
        description="Generates the DAY-level agenda.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="plan_decompose_hour",
        system=_AGENT_CONTEXT,
        user=(
            "{{agent_name}} plans to: {{parent_description}} "
            "(minutes {{window_start}} to {{window_end}}).\n"
            "{{replan_note}}\n"
            "Break this activity into hour-long (or shorter) segments covering the window.\n\n"
            + _PLAN_ITEM_SCHEMA
        ),
        description="Decomposes a DAY activity into HOUR segments.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="plan_decompose_minute",
        system=_AGENT_CONTEXT,
        user=(
            "{{agent_name}} is working on: {{parent_description}} "
            "(minutes {{window_start}} to {{window_end}}).\n"
            "{{replan_note}}\n"
            "Break this into concrete 5 to 15 minute steps covering the window.\n\n"
            + _PLAN_ITEM_SCHEMA
        ),
        description="Decomposes an HOUR segment into MINUTE steps.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="conversation",
        system=(
            "{{initiator_name}}'s background: {{initiator_background}}\n"
            "{{initiator_name}}'s current goal: {{initiator_goal}}\n"
            "{{target_name}}'s background: {{target_background}}\n"
            "{{target_name}}'s current goal: {{target_goal}}"
        ),
        user=(
            "You are {{initiator_name}} having a conversation with {{target_name}}. "
            "Generate a very brief, natural exchange (1-2 sentences each) considering both "
            "of your backgrounds and goals. Keep it concise and casual. Write "
            "{{initiator_name}}'s line, then a '|' character, then {{target_name}}'s reply."
        ),
        description="Short dialogue between two proximate agents.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="rumor",
        system=(
            "Your personality traits: {{innate_tendency}}\n"
            "Recent events and information you know about:\n{{known_facts}}"
        ),
        user=(
            "You are {{initiator_name}}, talking to {{target_name}}. Share a brief, "
            "interesting rumor or piece of gossip (1-2 sentences) based on what you know."
        ),
        description="Gossip line built from the initiator's cross-agent knowledge.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="reply",
        system=_AGENT_CONTEXT + "\n\nRelevant memories:\n{{memories_text}}\n\n{{extra_context}}",
        user="{{message}}",
        description="Free-form reply in character (chat surface).",
    )
)

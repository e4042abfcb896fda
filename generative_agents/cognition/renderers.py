"""Prompt rendering utilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from .prompts import PromptLibrary, PromptTemplate, DEFAULT_PROMPTS


@dataclass
class RenderedPrompt:
    system: str
    user: str


def resolve_template(name: str, library: PromptLibrary | None = None) -> PromptTemplate:
    """Look ``name`` up in ``library``, falling back to the defaults."""
    if library is not None:
        try:
            return library.get(name)
        except KeyError:
            pass
    return DEFAULT_PROMPTS.get(name)


def render_prompt(template: PromptTemplate, values: Mapping[str, object]) -> RenderedPrompt:
    """Render a prompt template by replacing ``{{key}}`` placeholders.

    Placeholders use double braces so JSON examples inside templates are left
    untouched. Placeholders without a value stay as-is; values are converted
    with ``str``.
    """

    system = template.system
    user = template.user
    for key, value in values.items():
        placeholder = "{{" + key + "}}"
        text = "" if value is None else str(value)
        system = system.replace(placeholder, text)
        user = user.replace(placeholder, text)
    return RenderedPrompt(system=system.strip(), user=user.strip())

"""Logging utilities for agent cognition.

Provides color-coded, tagged console output so deterministic work (retrieval,
reaction decisions, bookkeeping) is easy to tell apart from provider calls
(scoring, embedding, generation) when watching a simulation run.
"""

import os
from enum import Enum
from typing import Optional


class Color(Enum):
    """ANSI color codes for terminal output."""

    BLUE = "\033[94m"      # Deterministic operations (retrieval, reaction)
    YELLOW = "\033[93m"    # Provider calls (scoring, planning, reflection)
    RED = "\033[91m"       # Errors and fallbacks
    GREEN = "\033[92m"     # Success/completion
    CYAN = "\033[96m"      # Info/metadata

    BOLD = "\033[1m"
    RESET = "\033[0m"


# Markers for operation types (color-blind accessible)
LOG_TAG_DETERMINISTIC = "[•]"
LOG_TAG_LLM = "[AI]"
LOG_TAG_ERROR = "[!]"
LOG_TAG_SUCCESS = "[✓]"
LOG_TAG_INFO = "[i]"


def colored(text: str, color: Color, bold: bool = False) -> str:
    """Wrap text in ANSI color codes unless GENAGENTS_NO_COLOR is set."""
    if os.getenv("GENAGENTS_NO_COLOR"):
        return text

    prefix = color.value
    if bold:
        prefix = Color.BOLD.value + prefix

    return f"{prefix}{text}{Color.RESET.value}"


def _emit(tag: str, message: str, color: Color, scope: Optional[str]) -> None:
    if os.getenv("GENAGENTS_QUIET"):
        return
    prefix = f"{tag} [{scope}] " if scope else f"{tag} "
    print(colored(prefix + message, color))


def log_deterministic(message: str, *, scope: Optional[str] = None) -> None:
    """Log a deterministic operation (blue)."""
    _emit(LOG_TAG_DETERMINISTIC, message, Color.BLUE, scope)


def log_llm(message: str, *, scope: Optional[str] = None) -> None:
    """Log a provider call (yellow)."""
    _emit(LOG_TAG_LLM, message, Color.YELLOW, scope)


def log_error(message: str, *, scope: Optional[str] = None) -> None:
    """Log an error or fallback (red)."""
    _emit(LOG_TAG_ERROR, message, Color.RED, scope)


def log_success(message: str, *, scope: Optional[str] = None) -> None:
    """Log a success (green)."""
    _emit(LOG_TAG_SUCCESS, message, Color.GREEN, scope)


def log_info(message: str, *, scope: Optional[str] = None) -> None:
    """Log metadata/info (cyan)."""
    _emit(LOG_TAG_INFO, message, Color.CYAN, scope)


def debug_llm_enabled() -> bool:
    return os.getenv("DEBUG_LLM", "").lower() in ("1", "true", "yes")


def dump_prompt(label: str, system: str, user: str) -> None:
    """Print a rendered prompt when DEBUG_LLM is enabled."""
    if not debug_llm_enabled():
        return
    print(f"\n{'='*80}")
    print(f"[{label}]")
    print(f"{'='*80}")
    print("\n[SYSTEM PROMPT]")
    print(f"{'-'*80}")
    print(system)
    print("\n[USER PROMPT]")
    print(f"{'-'*80}")
    print(user)
    print(f"{'='*80}\n")

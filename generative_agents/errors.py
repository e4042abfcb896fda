"""
Error kinds and result types for the agent core.

Every error here is recoverable at the boundary of the operation that raised
it. Callers decide whether to retry, skip, or surface a degraded state.

- ScoringUnavailable: importance/embedding call failed, nothing was appended
- GenerationUnavailable: text generation failed, operation-specific fallback
- InconsistentInteraction: a two-agent append would be applied to one side only
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class GenerativeAgentsError(Exception):
    """Base class for all recoverable core errors."""


class ScoringUnavailable(GenerativeAgentsError):
    """Raised when the importance scorer or embedder cannot produce a value.

    The append that triggered the call is aborted; no partial memory exists.
    """

    def __init__(
        self,
        *,
        agent_id: Optional[str],
        text: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.agent_id = agent_id
        self.text = text
        self.cause = cause
        preview = text if len(text) <= 60 else text[:57] + "..."
        message_lines = [
            f"Scoring unavailable for agent {agent_id or '(unowned)'}: \"{preview}\"",
        ]
        if cause is not None:
            message_lines.append(f"  cause: {type(cause).__name__}: {cause}")
        message_lines.extend(
            [
                "Remediation tips:",
                "  - Verify EMBEDDING_PROVIDER / EMBEDDING_MODEL and API keys",
                "  - Enable DEBUG_LLM=true to inspect the scoring prompt",
            ]
        )
        super().__init__("\n".join(message_lines))


class GenerationUnavailable(GenerativeAgentsError):
    """Raised when text generation fails or returns nothing usable."""

    def __init__(
        self,
        *,
        agent_id: Optional[str],
        purpose: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.agent_id = agent_id
        self.purpose = purpose
        self.cause = cause
        message = f"Text generation unavailable for {purpose} (agent: {agent_id or 'n/a'})"
        if cause is not None:
            message += f": {type(cause).__name__}: {cause}"
        super().__init__(message)


class InconsistentInteraction(GenerativeAgentsError):
    """Raised when a paired append could only be applied to one agent."""

    def __init__(self, *, initiator_id: str, target_id: str, reason: str) -> None:
        self.initiator_id = initiator_id
        self.target_id = target_id
        self.reason = reason
        super().__init__(
            f"Interaction {initiator_id} -> {target_id} would leave memory streams "
            f"inconsistent: {reason}"
        )


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of a content-generation call.

    ``ok`` is False when the provider failed; ``text`` then carries the
    placeholder the caller chose and ``error`` the underlying failure.
    """

    text: str
    ok: bool = True
    error: Optional[GenerationUnavailable] = None

    @classmethod
    def success(cls, text: str) -> "GenerationResult":
        return cls(text=text)

    @classmethod
    def failure(cls, placeholder: str, error: GenerationUnavailable) -> "GenerationResult":
        return cls(text=placeholder, ok=False, error=error)


__all__ = [
    "GenerativeAgentsError",
    "ScoringUnavailable",
    "GenerationUnavailable",
    "InconsistentInteraction",
    "GenerationResult",
]

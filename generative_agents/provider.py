"""
External collaborator contract.

The core never talks to a model vendor directly. It asks a
``CognitionProvider`` for three things:

- ``score_importance(text)``: salience of a memory description (0-10)
- ``embed(text)``: fixed-length embedding vector
- ``generate_text(prompt, context)``: free text for reflections, plans and
  interaction content

Any of these may raise. The memory stream and engines translate failures
into ScoringUnavailable / GenerationUnavailable and apply their own
fallbacks; the provider itself never fabricates values.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence, runtime_checkable

from openai import AsyncOpenAI

from .config import Config
from .llm_calls import complete_text, embed_text, rate_importance
from .logging_utils import log_llm


@runtime_checkable
class CognitionProvider(Protocol):
    """Protocol for importance scoring, embedding and text generation."""

    async def score_importance(self, text: str) -> float:
        ...

    async def embed(self, text: str) -> Sequence[float]:
        ...

    async def generate_text(self, prompt: str, context: str) -> str:
        ...


class LLMProvider:
    """CognitionProvider backed by mirascope (text/scoring) and an embedding API.

    Example:
        provider = LLMProvider(llm_provider="openai", llm_model="gpt-4o-mini")
        agent = Agent(agent_id="john", name="John Lin", provider=provider, ...)

    Args:
        llm_provider: mirascope provider name, or "ollama" for a local model
        llm_model: model identifier for scoring and generation
        embedding_provider: "openai" or "ollama"
        embedding_model: embedding model identifier
    """

    def __init__(
        self,
        *,
        llm_provider: Optional[str] = None,
        llm_model: Optional[str] = None,
        embedding_provider: Optional[str] = None,
        embedding_model: Optional[str] = None,
        openai_client: Optional[AsyncOpenAI] = None,
        verbose: bool = False,
    ) -> None:
        self.llm_provider = llm_provider or Config.LLM_PROVIDER
        self.llm_model = llm_model or Config.LLM_MODEL
        self.embedding_provider = embedding_provider or Config.EMBEDDING_PROVIDER
        self.embedding_model = embedding_model or Config.EMBEDDING_MODEL
        self._openai_client = openai_client
        self.verbose = verbose

    async def score_importance(self, text: str) -> float:
        if self.verbose:
            log_llm(f"Scoring importance with {self.llm_provider}/{self.llm_model}")
        return await rate_importance(text, self.llm_provider, self.llm_model)

    async def embed(self, text: str) -> Sequence[float]:
        if self.verbose:
            log_llm(f"Embedding with {self.embedding_provider}/{self.embedding_model}")
        if self.embedding_provider.lower() == "openai" and self._openai_client is None:
            self._openai_client = AsyncOpenAI(api_key=Config.OPENAI_API_KEY)
        return await embed_text(
            text,
            self.embedding_provider,
            self.embedding_model,
            client=self._openai_client,
        )

    async def generate_text(self, prompt: str, context: str) -> str:
        if self.verbose:
            log_llm(f"Generating text with {self.llm_provider}/{self.llm_model}")
        return await complete_text(prompt, context, self.llm_provider, self.llm_model)


__all__ = ["CognitionProvider", "LLMProvider"]

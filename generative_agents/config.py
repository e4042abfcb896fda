"""
Generative Agents Configuration

Loads configuration from environment variables with sensible defaults.
Every tunable heuristic (retrieval weights, recency decay, reflection
threshold scale, interaction spacing) is exposed here so scenarios can
adjust it without touching engine code.
"""

import os
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


def _float_env(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


class Config:
    """Application configuration loaded from environment variables."""

    # LLM Provider Configuration (text generation + importance scoring)
    LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "openai")
    LLM_MODEL: str = os.getenv("LLM_MODEL", "gpt-4o-mini")

    # Embedding provider ("openai" or "ollama")
    EMBEDDING_PROVIDER: str = os.getenv("EMBEDDING_PROVIDER", "openai")
    EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")

    # API Keys
    ANTHROPIC_API_KEY: str | None = os.getenv("ANTHROPIC_API_KEY")
    OPENAI_API_KEY: str | None = os.getenv("OPENAI_API_KEY")

    # Local models served by Ollama
    OLLAMA_BASE_URL: str | None = os.getenv("OLLAMA_BASE_URL")

    # Retrieval scoring
    RECENCY_DECAY: float = _float_env("RECENCY_DECAY", 0.995)
    RETRIEVAL_WEIGHT_RECENCY: float = _float_env("RETRIEVAL_WEIGHT_RECENCY", 1.0)
    RETRIEVAL_WEIGHT_IMPORTANCE: float = _float_env("RETRIEVAL_WEIGHT_IMPORTANCE", 1.0)
    RETRIEVAL_WEIGHT_RELEVANCE: float = _float_env("RETRIEVAL_WEIGHT_RELEVANCE", 1.0)

    # Reflection threshold = retention * IMPORTANCE_PER_RETENTION
    IMPORTANCE_PER_RETENTION: float = _float_env("IMPORTANCE_PER_RETENTION", 10.0)

    # Interaction spacing
    PROXIMITY_THRESHOLD: float = _float_env("PROXIMITY_THRESHOLD", 100.0)
    INTERACTION_COOLDOWN: float = _float_env("INTERACTION_COOLDOWN", 10.0)

    # Planning horizon in time units (one unit = one simulated minute)
    DAY_LENGTH: float = _float_env("DAY_LENGTH", 1440.0)

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors if required values are missing."""
        is_using_local = cls.LLM_PROVIDER == "ollama"

        if cls.LLM_PROVIDER == "anthropic" and not cls.ANTHROPIC_API_KEY:
            raise ValueError(
                "ANTHROPIC_API_KEY is required when using the 'anthropic' provider"
            )

        if cls.LLM_PROVIDER == "openai" and not cls.OPENAI_API_KEY and not is_using_local:
            raise ValueError(
                "OPENAI_API_KEY is required when using the 'openai' provider. "
                "For local models, set LLM_PROVIDER=ollama instead."
            )

        if cls.EMBEDDING_PROVIDER not in ("openai", "ollama"):
            raise ValueError(
                f"Unsupported EMBEDDING_PROVIDER '{cls.EMBEDDING_PROVIDER}' "
                "(expected 'openai' or 'ollama')"
            )

        if cls.EMBEDDING_PROVIDER == "openai" and not cls.OPENAI_API_KEY:
            raise ValueError(
                "OPENAI_API_KEY is required for OpenAI embeddings. "
                "Set EMBEDDING_PROVIDER=ollama to embed with a local model."
            )

        if not 0.0 < cls.RECENCY_DECAY <= 1.0:
            raise ValueError("RECENCY_DECAY must be in (0, 1]")

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        lines = [
            "Generative Agents Configuration:",
            f"  LLM Provider: {cls.LLM_PROVIDER}",
            f"  LLM Model: {cls.LLM_MODEL}",
            f"  Embeddings: {cls.EMBEDDING_PROVIDER}/{cls.EMBEDDING_MODEL}",
            f"  Recency Decay: {cls.RECENCY_DECAY}",
            (
                "  Retrieval Weights (R/I/S): "
                f"{cls.RETRIEVAL_WEIGHT_RECENCY}/{cls.RETRIEVAL_WEIGHT_IMPORTANCE}/"
                f"{cls.RETRIEVAL_WEIGHT_RELEVANCE}"
            ),
            f"  Proximity Threshold: {cls.PROXIMITY_THRESHOLD}",
            f"  Interaction Cooldown: {cls.INTERACTION_COOLDOWN}",
            f"  Day Length: {cls.DAY_LENGTH}",
        ]
        return "\n".join(lines)

"""
LLM call functions backing the external collaborator contract.

This module provides:
- Importance scoring (rate_importance)
- Free-form text generation (complete_text)
- Embeddings (embed_text) through OpenAI or a local Ollama model

All functions are stateless and accept provider/model as parameters.
No global state; configuration is passed in by LLMProvider.
"""

from typing import List, Optional

from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from .llm_utils import call_llm_with_retries
from .local_llm import call_ollama_embeddings
from .logging_utils import dump_prompt


# ============================================================================
# Response Models
# ============================================================================


class ImportanceRating(BaseModel):
    """Structured importance score for a single memory description."""

    score: int = Field(..., ge=0, le=10, description="0 = mundane, 10 = life-changing")
    reason: str = Field("", description="One short sentence justifying the score")


class TextCompletion(BaseModel):
    """Free-form text wrapped in JSON so every provider path validates alike."""

    text: str = Field(..., min_length=1)


IMPORTANCE_SYSTEM_PROMPT = (
    "You rate how poignant a memory is for the person who had it. "
    "Respond with JSON: {\"score\": <integer 0-10>, \"reason\": \"...\"}."
)

IMPORTANCE_USER_TEMPLATE = (
    "On the scale of 0 to 10, where 0 is purely mundane (e.g., brushing teeth, "
    "making bed) and 10 is extremely poignant (e.g., a break up, college "
    "acceptance), rate the likely poignancy of the following memory.\n\n"
    "Memory: {description}\n\n"
    "Respond with JSON only."
)

GENERATION_SYSTEM_TEMPLATE = (
    "You are simulating a character in a small town. Stay in character and "
    "follow the instructions exactly. Respond with JSON: {{\"text\": \"...\"}}.\n\n"
    "Context:\n{context}"
)


# ============================================================================
# LLM Call Functions
# ============================================================================


async def rate_importance(
    description: str,
    llm_provider: str,
    llm_model: str,
) -> float:
    """Ask the model for an importance score in [0, 10].

    Raises:
        Exception: If the LLM call fails after retries
    """
    user_prompt = IMPORTANCE_USER_TEMPLATE.format(description=description)
    dump_prompt("LLM IMPORTANCE", IMPORTANCE_SYSTEM_PROMPT, user_prompt)
    rating = await call_llm_with_retries(
        system_prompt=IMPORTANCE_SYSTEM_PROMPT,
        user_prompt=user_prompt,
        llm_provider=llm_provider,
        llm_model=llm_model,
        response_model=ImportanceRating,
    )
    return float(rating.score)


async def complete_text(
    prompt: str,
    context: str,
    llm_provider: str,
    llm_model: str,
) -> str:
    """Generate free-form text for ``prompt`` grounded in ``context``.

    Raises:
        Exception: If the LLM call fails after retries
    """
    system_prompt = GENERATION_SYSTEM_TEMPLATE.format(context=context.strip() or "(none)")
    dump_prompt("LLM GENERATION", system_prompt, prompt)
    completion = await call_llm_with_retries(
        system_prompt=system_prompt,
        user_prompt=prompt,
        llm_provider=llm_provider,
        llm_model=llm_model,
        response_model=TextCompletion,
    )
    return completion.text


async def embed_text(
    text: str,
    embedding_provider: str,
    embedding_model: str,
    *,
    client: Optional[AsyncOpenAI] = None,
) -> List[float]:
    """Return the embedding vector for ``text``.

    ``embedding_provider`` is "openai" (OpenAI embeddings API) or "ollama".

    Raises:
        ValueError: If the provider is unknown
        Exception: If the provider call fails
    """
    provider = embedding_provider.lower()
    if provider == "ollama":
        return await call_ollama_embeddings(text=text, model=embedding_model)
    if provider != "openai":
        raise ValueError(f"Unsupported embedding provider: {embedding_provider}")

    api = client or AsyncOpenAI()
    response = await api.embeddings.create(model=embedding_model, input=text)
    return [float(component) for component in response.data[0].embedding]

"""Utilities for calling locally hosted models through Ollama.

Both chat completions and embeddings go through the Ollama REST API with a
blocking ``urllib`` request executed in a worker thread, so a slow local
model only suspends the agent that asked for it.
"""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any, List
from urllib import error, request

DEFAULT_OLLAMA_BASE_URL = "http://127.0.0.1:11434"
_CHAT_ENDPOINT = "/api/chat"
_EMBEDDINGS_ENDPOINT = "/api/embeddings"


class LocalLLMError(RuntimeError):
    """Raised when a local model invocation fails."""


def _resolve_base_url(base_url: str | None) -> str:
    return (base_url or os.getenv("OLLAMA_BASE_URL") or DEFAULT_OLLAMA_BASE_URL).rstrip("/")


def _post_json(url: str, payload: dict[str, Any], timeout: float) -> dict[str, Any]:
    """Execute a blocking JSON POST against the Ollama REST API."""

    data = json.dumps(payload).encode("utf-8")
    req = request.Request(
        url,
        data=data,
        headers={"Content-Type": "application/json"},
        method="POST",
    )

    try:
        with request.urlopen(req, timeout=timeout) as resp:
            raw = resp.read().decode("utf-8")
    except error.HTTPError as exc:
        body = exc.read().decode("utf-8", errors="ignore") if exc.fp else ""
        raise LocalLLMError(
            f"Ollama request to {url} failed with status {exc.code}: {body or exc.reason}"
        ) from exc
    except error.URLError as exc:
        raise LocalLLMError(f"Could not reach Ollama at {url}: {exc.reason}") from exc

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise LocalLLMError("Ollama returned non-JSON response.") from exc
    if not isinstance(parsed, dict):
        raise LocalLLMError("Ollama returned an unexpected payload shape.")
    return parsed


def _perform_chat_request(payload: dict[str, Any], base_url: str, timeout: float) -> str:
    parsed = _post_json(f"{base_url}{_CHAT_ENDPOINT}", payload, timeout)
    content = (parsed.get("message") or {}).get("content")
    if not content:
        raise LocalLLMError("Ollama response did not include assistant content.")
    return content


def _perform_embeddings_request(
    payload: dict[str, Any], base_url: str, timeout: float
) -> List[float]:
    parsed = _post_json(f"{base_url}{_EMBEDDINGS_ENDPOINT}", payload, timeout)
    vector = parsed.get("embedding")
    if not isinstance(vector, list) or not vector:
        raise LocalLLMError("Ollama response did not include an embedding vector.")
    return [float(component) for component in vector]


async def call_ollama_chat(
    *,
    system_prompt: str,
    user_prompt: str,
    llm_model: str,
    base_url: str | None = None,
    timeout: float = 120.0,
) -> str:
    """Invoke a local Ollama chat model and return the assistant text."""

    system_prompt = system_prompt.strip()
    user_prompt = user_prompt.strip()
    if not user_prompt:
        raise LocalLLMError("Cannot call Ollama with an empty user prompt.")

    messages: list[dict[str, str]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": user_prompt})

    payload = {"model": llm_model, "messages": messages, "stream": False}
    return await asyncio.to_thread(
        _perform_chat_request, payload, _resolve_base_url(base_url), timeout
    )


async def call_ollama_embeddings(
    *,
    text: str,
    model: str,
    base_url: str | None = None,
    timeout: float = 60.0,
) -> List[float]:
    """Embed ``text`` with a local Ollama embedding model."""

    if not text.strip():
        raise LocalLLMError("Cannot embed an empty string.")
    payload = {"model": model, "prompt": text}
    return await asyncio.to_thread(
        _perform_embeddings_request, payload, _resolve_base_url(base_url), timeout
    )


__all__ = [
    "LocalLLMError",
    "call_ollama_chat",
    "call_ollama_embeddings",
    "DEFAULT_OLLAMA_BASE_URL",
]

import pytest

from generative_agents.local_llm import LocalLLMError, call_ollama_chat, call_ollama_embeddings


@pytest.mark.asyncio
async def test_call_ollama_chat_builds_payload(monkeypatch):
    captured: dict[str, object] = {}

    def fake_request(payload, base_url, timeout):
        captured["payload"] = payload
        captured["base_url"] = base_url
        captured["timeout"] = timeout
        return '{"content":"ok"}'

    monkeypatch.setattr("generative_agents.local_llm._perform_chat_request", fake_request)

    result = await call_ollama_chat(
        system_prompt="System context",
        user_prompt="User payload",
        llm_model="llama3.1",
        base_url="http://localhost:11434/",
        timeout=30,
    )

    assert result == '{"content":"ok"}'
    payload = captured["payload"]
    assert payload["model"] == "llama3.1"
    assert payload["stream"] is False
    assert payload["messages"][0] == {"role": "system", "content": "System context"}
    assert payload["messages"][1] == {"role": "user", "content": "User payload"}
    assert captured["base_url"] == "http://localhost:11434"
    assert captured["timeout"] == 30


@pytest.mark.asyncio
async def test_call_ollama_embeddings_uses_env_base_url(monkeypatch):
    captured: dict[str, object] = {}

    def fake_request(payload, base_url, timeout):
        captured["payload"] = payload
        captured["base_url"] = base_url
        return [0.1, 0.2]

    monkeypatch.setenv("OLLAMA_BASE_URL", "http://ollama.internal:11434")
    monkeypatch.setattr("generative_agents.local_llm._perform_embeddings_request", fake_request)

    vector = await call_ollama_embeddings(text="walked the dog", model="nomic-embed-text")

    assert vector == [0.1, 0.2]
    assert captured["payload"] == {"model": "nomic-embed-text", "prompt": "walked the dog"}
    assert captured["base_url"] == "http://ollama.internal:11434"


@pytest.mark.asyncio
async def test_empty_prompts_are_rejected():
    with pytest.raises(LocalLLMError):
        await call_ollama_chat(system_prompt="s", user_prompt="  ", llm_model="llama3.1")
    with pytest.raises(LocalLLMError):
        await call_ollama_embeddings(text="", model="nomic-embed-text")

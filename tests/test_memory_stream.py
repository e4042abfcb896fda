"""Tests for the memory stream: IDs, append failures and scored retrieval."""

import pytest

from generative_agents.errors import ScoringUnavailable
from generative_agents.memory import MemoryStream, RetrievalWeights, cosine_similarity
from generative_agents.schemas import Conversation, MemoryKind, Observation


@pytest.mark.asyncio
async def test_ids_are_sequential_per_kind(provider):
    stream = MemoryStream(provider, owner_id="john")

    first = await stream.append(MemoryKind.OBSERVATION, "walked the dog", 1.0)
    second = await stream.append(MemoryKind.OBSERVATION, "made coffee", 2.0)
    chat = await stream.append(MemoryKind.CONVERSATION, "said hello", 3.0, partner_id="maria")
    third = await stream.append("observation", "opened the cafe", 4.0)

    assert [first.id, second.id, third.id] == ["obs_1", "obs_2", "obs_3"]
    assert chat.id == "conv_1"
    assert isinstance(chat, Conversation) and chat.partner_id == "maria"
    assert stream.counts[MemoryKind.OBSERVATION] == 3
    assert stream.counts[MemoryKind.CONVERSATION] == 1
    assert len(stream) == 4
    assert stream.get("obs_2") is second
    assert [memory.id for memory in stream.recent(2)] == ["obs_3", "conv_1"]


@pytest.mark.asyncio
async def test_created_at_strictly_increases_with_frozen_clock(provider):
    stream = MemoryStream(provider)

    memories = [await stream.append(MemoryKind.OBSERVATION, f"tick {idx}", 5.0) for idx in range(3)]

    stamps = [memory.created_at for memory in memories]
    assert stamps[0] == 5.0
    assert stamps[0] < stamps[1] < stamps[2]
    assert all(memory.latest_access == memory.created_at for memory in memories)


@pytest.mark.asyncio
async def test_scoring_failure_appends_nothing(provider):
    stream = MemoryStream(provider, owner_id="john")
    await stream.append(MemoryKind.OBSERVATION, "walked the dog", 1.0)
    provider.fail_scoring = {"fire"}

    with pytest.raises(ScoringUnavailable) as excinfo:
        await stream.append(MemoryKind.OBSERVATION, "fire in the kitchen", 2.0)

    assert excinfo.value.agent_id == "john"
    assert len(stream) == 1
    assert stream.counts[MemoryKind.OBSERVATION] == 1

    provider.fail_scoring = set()
    retried = await stream.append(MemoryKind.OBSERVATION, "fire in the kitchen", 3.0)
    assert retried.id == "obs_2"


@pytest.mark.asyncio
async def test_embedding_length_mismatch_is_rejected(provider):
    stream = MemoryStream(provider)
    await stream.append(MemoryKind.OBSERVATION, "walked the dog", 1.0)
    provider.vocabulary = ("dog",)

    with pytest.raises(ScoringUnavailable):
        await stream.append(MemoryKind.OBSERVATION, "walked the dog again", 2.0)
    assert len(stream) == 1


async def _seeded_stream(provider, **kwargs):
    provider.importance = {"fire": 9.0, "coffee": 3.0, "dog": 1.0}
    stream = MemoryStream(provider, owner_id="john", **kwargs)
    await stream.append(MemoryKind.OBSERVATION, "bought coffee at the cafe", 0.0)
    await stream.append(MemoryKind.OBSERVATION, "fire in the kitchen", 1.0)
    await stream.append(MemoryKind.OBSERVATION, "walked the dog", 2.0)
    return stream


@pytest.mark.asyncio
async def test_retrieve_orders_by_combined_score(provider):
    stream = await _seeded_stream(provider)

    results = await stream.retrieve("coffee", 3, 10.0)

    assert [memory.description for memory in results] == [
        "bought coffee at the cafe",
        "fire in the kitchen",
        "walked the dog",
    ]


@pytest.mark.asyncio
async def test_retrieve_is_deterministic_and_only_touches_latest_access(provider):
    stream = await _seeded_stream(provider)
    before = {
        memory.id: (memory.importance, memory.embedding, memory.created_at, memory.latest_access)
        for memory in stream
    }

    first = await stream.retrieve("coffee", 2, 10.0)
    second = await stream.retrieve("coffee", 2, 10.0)

    assert [memory.id for memory in first] == [memory.id for memory in second]
    returned = {memory.id for memory in first}
    for memory in stream:
        importance, embedding, created_at, latest_access = before[memory.id]
        assert (memory.importance, memory.embedding, memory.created_at) == (
            importance,
            embedding,
            created_at,
        )
        if memory.id in returned:
            assert memory.latest_access == 10.0
        else:
            assert memory.latest_access == latest_access


@pytest.mark.asyncio
async def test_latest_access_never_moves_backwards(provider):
    stream = await _seeded_stream(provider)
    await stream.retrieve("coffee", 1, 50.0)

    await stream.retrieve("coffee", 1, 20.0)

    assert stream.get("obs_1").latest_access == 50.0


@pytest.mark.asyncio
async def test_ties_prefer_most_recent(provider):
    stream = MemoryStream(provider, weights=RetrievalWeights(decay=1.0))
    await stream.append(MemoryKind.OBSERVATION, "walked the dog", 0.0)
    await stream.append(MemoryKind.OBSERVATION, "walked the dog", 1.0)

    results = await stream.retrieve("dog", 2, 5.0)

    assert [memory.id for memory in results] == ["obs_2", "obs_1"]


@pytest.mark.asyncio
async def test_retrieve_is_capped_by_max_results(provider):
    stream = await _seeded_stream(provider, max_results=2)

    results = await stream.retrieve("coffee", 10, 10.0)

    assert len(results) == 2


@pytest.mark.asyncio
async def test_score_does_not_mutate(provider):
    stream = await _seeded_stream(provider)
    query = await provider.embed("fire")

    scored = stream.score(query, 100.0, kinds=[MemoryKind.OBSERVATION])

    assert scored[0].memory.description == "fire in the kitchen"
    assert all(item.memory.latest_access < 100.0 for item in scored)


@pytest.mark.asyncio
async def test_retrieve_on_empty_stream_skips_embedding(provider):
    stream = MemoryStream(provider)
    provider.fail_embedding = True

    assert await stream.retrieve("anything", 5, 1.0) == []
    assert provider.embed_calls == 0


@pytest.mark.asyncio
async def test_retrieve_embedding_failure_raises(provider):
    stream = await _seeded_stream(provider)
    provider.fail_embedding = True

    with pytest.raises(ScoringUnavailable):
        await stream.retrieve("coffee", 2, 10.0)


@pytest.mark.asyncio
async def test_commit_is_single_use(provider):
    stream = MemoryStream(provider)
    other = MemoryStream(provider)
    pending = await stream.prepare(MemoryKind.OBSERVATION, "walked the dog", 1.0)

    assert len(stream) == 0
    assert not other.can_commit(pending)
    memory = stream.commit(pending)
    assert isinstance(memory, Observation)
    assert not stream.can_commit(pending)
    with pytest.raises(RuntimeError):
        stream.commit(pending)


def test_cosine_similarity_edge_cases():
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
    with pytest.raises(ValueError):
        cosine_similarity([1.0], [1.0, 0.0])


def test_retrieval_weights_reject_bad_decay():
    with pytest.raises(ValueError):
        RetrievalWeights(decay=0.0)


@pytest.mark.asyncio
async def test_out_of_range_importance_is_rejected(provider):
    stream = MemoryStream(provider, owner_id="john")
    provider.importance = {"fire": 42.0}

    with pytest.raises(ScoringUnavailable) as excinfo:
        await stream.append(MemoryKind.OBSERVATION, "fire in the kitchen", 1.0)

    assert "outside" in str(excinfo.value.cause)
    assert len(stream) == 0

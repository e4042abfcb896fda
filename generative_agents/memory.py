"""
Memory stream: append-only per-agent log plus a scored retrieval index.

Based on the Stanford Generative Agents memory architecture:
- Memory Stream: sequential record of typed experiences
- Retrieval: recency + importance + relevance scoring
- Access refresh: every retrieval hit moves ``latest_access`` forward, so
  memories that keep being used decay more slowly

Each agent owns exactly one MemoryStream. Records are addressed by ID
("obs_3", "plan_12") and never removed or edited, apart from
``latest_access``.

Appends go through two phases so paired writes (one memory on each side of
an interaction) can be made atomic:

1. ``prepare`` awaits the provider for importance + embedding and validates
   the record. It may raise ScoringUnavailable and has no side effects.
2. ``commit`` assigns the ID and timestamp and appends. It cannot fail.

``append`` is simply ``prepare`` followed by ``commit``.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from .config import Config
from .errors import ScoringUnavailable
from .logging_utils import log_deterministic, log_error
from .provider import CognitionProvider
from .schemas import (
    IMPORTANCE_MAX,
    IMPORTANCE_MIN,
    MEMORY_CLASSES,
    MEMORY_ID_PREFIXES,
    Memory,
    MemoryKind,
)

# Smallest step used to keep created_at strictly increasing when the caller's
# clock does not advance between two appends.
CLOCK_EPSILON = 1e-6

_PENDING_ID = "__pending__"


@dataclass(frozen=True)
class RetrievalWeights:
    """Tunable retrieval scoring constants.

    ``score = recency * recency_score + importance * importance/10
    + relevance * cosine``, with ``recency_score = decay ** elapsed``.
    Equal weights are the default.
    """

    recency: float = Config.RETRIEVAL_WEIGHT_RECENCY
    importance: float = Config.RETRIEVAL_WEIGHT_IMPORTANCE
    relevance: float = Config.RETRIEVAL_WEIGHT_RELEVANCE
    decay: float = Config.RECENCY_DECAY

    def __post_init__(self) -> None:
        if not 0.0 < self.decay <= 1.0:
            raise ValueError("decay must be in (0, 1]")


def recency_score(now: float, latest_access: float, decay: float) -> float:
    """Exponential decay of elapsed time since last access (1.0 = just now)."""
    elapsed = max(now - latest_access, 0.0)
    return decay ** elapsed


def normalize_importance(importance: float) -> float:
    return min(max(importance, IMPORTANCE_MIN), IMPORTANCE_MAX) / IMPORTANCE_MAX


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two equal-length vectors (0.0 if either is zero)."""
    if len(a) != len(b):
        raise ValueError(f"vector length mismatch: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


@dataclass(frozen=True)
class ScoredMemory:
    """A retrieval candidate with its score breakdown."""

    memory: Memory
    score: float
    recency: float
    importance: float
    relevance: float


@dataclass
class PendingMemory:
    """A scored and embedded memory awaiting ``commit``."""

    kind: MemoryKind
    record: Memory
    requested_at: float
    stream_token: int
    committed: bool = field(default=False)


class MemoryStream:
    """Append-only memory log with recency/importance/relevance retrieval.

    Args:
        provider: CognitionProvider used for importance scores and embeddings
        owner_id: Agent ID for log messages and error context
        weights: Retrieval scoring constants
        max_results: Upper bound on any retrieval (the agent's attention)
    """

    def __init__(
        self,
        provider: CognitionProvider,
        *,
        owner_id: Optional[str] = None,
        weights: Optional[RetrievalWeights] = None,
        max_results: Optional[int] = None,
    ) -> None:
        self.provider = provider
        self.owner_id = owner_id
        self.weights = weights or RetrievalWeights()
        self.max_results = max_results
        self.counts: Dict[MemoryKind, int] = {kind: 0 for kind in MemoryKind}
        self._memories: List[Memory] = []
        self._index: Dict[str, Memory] = {}
        self._last_created_at: Optional[float] = None
        self._embedding_dim: Optional[int] = None

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._memories)

    def __iter__(self) -> Iterator[Memory]:
        return iter(tuple(self._memories))

    def __contains__(self, memory_id: object) -> bool:
        return memory_id in self._index

    def get(self, memory_id: str) -> Optional[Memory]:
        return self._index.get(memory_id)

    def by_kind(self, kind: Union[MemoryKind, str]) -> List[Memory]:
        kind = MemoryKind(kind)
        return [memory for memory in self._memories if memory.kind == kind]

    def recent(self, limit: int = 10, kind: Union[MemoryKind, str, None] = None) -> List[Memory]:
        """Most recently created memories first."""
        pool = self._memories if kind is None else self.by_kind(kind)
        return list(reversed(pool[-limit:])) if limit > 0 else []

    # ------------------------------------------------------------------
    # Append
    # ------------------------------------------------------------------

    async def prepare(
        self,
        kind: Union[MemoryKind, str],
        description: str,
        now: float,
        **fields: Any,
    ) -> PendingMemory:
        """Score and embed ``description`` without touching the stream.

        Raises:
            ScoringUnavailable: If the provider fails or returns unusable values
            ValueError: If ``fields`` do not form a valid record for ``kind``
        """

        kind = MemoryKind(kind)
        importance, embedding = await self._score_and_embed(description)

        record_cls = MEMORY_CLASSES[kind]
        record = record_cls(
            id=_PENDING_ID,
            created_at=now,
            latest_access=now,
            description=description,
            importance=importance,
            embedding=embedding,
            **fields,
        )
        return PendingMemory(
            kind=kind,
            record=record,
            requested_at=now,
            stream_token=id(self),
        )

    def can_commit(self, pending: PendingMemory) -> bool:
        return pending.stream_token == id(self) and not pending.committed

    def commit(self, pending: PendingMemory) -> Memory:
        """Assign the next ID for the kind and append the prepared record."""

        if not self.can_commit(pending):
            raise RuntimeError("pending memory belongs to another stream or was already committed")

        created_at = pending.requested_at
        if self._last_created_at is not None and created_at <= self._last_created_at:
            created_at = self._last_created_at + CLOCK_EPSILON

        next_number = self.counts[pending.kind] + 1
        memory_id = f"{MEMORY_ID_PREFIXES[pending.kind]}_{next_number}"
        memory = pending.record.model_copy(
            update={
                "id": memory_id,
                "created_at": created_at,
                "latest_access": created_at,
            }
        )

        self._memories.append(memory)
        self._index[memory_id] = memory
        self.counts[pending.kind] = next_number
        self._last_created_at = created_at
        if self._embedding_dim is None:
            self._embedding_dim = len(memory.embedding)
        pending.committed = True
        return memory

    async def append(
        self,
        kind: Union[MemoryKind, str],
        description: str,
        now: float,
        **fields: Any,
    ) -> Memory:
        """Score, embed and append a new memory.

        Raises:
            ScoringUnavailable: If importance or embedding cannot be produced;
                nothing is appended in that case
        """
        pending = await self.prepare(kind, description, now, **fields)
        return self.commit(pending)

    async def _score_and_embed(self, description: str) -> Tuple[float, Tuple[float, ...]]:
        results = await asyncio.gather(
            self.provider.score_importance(description),
            self.provider.embed(description),
            return_exceptions=True,
        )
        importance_result, embedding_result = results
        for result in results:
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                log_error(f"Scoring failed: {type(result).__name__}: {result}", scope=self.owner_id)
                raise ScoringUnavailable(agent_id=self.owner_id, text=description, cause=result)

        importance = self._coerce_importance(importance_result, description)
        embedding = self._coerce_embedding(embedding_result, description)
        return importance, embedding

    def _coerce_importance(self, value: Any, description: str) -> float:
        try:
            importance = float(value)
        except (TypeError, ValueError) as exc:
            raise ScoringUnavailable(agent_id=self.owner_id, text=description, cause=exc) from exc
        problem = None
        if not math.isfinite(importance):
            problem = f"non-finite importance {importance!r}"
        elif not IMPORTANCE_MIN <= importance <= IMPORTANCE_MAX:
            problem = f"importance {importance!r} outside [{IMPORTANCE_MIN:g}, {IMPORTANCE_MAX:g}]"
        if problem:
            log_error(f"Unusable importance score: {problem}", scope=self.owner_id)
            raise ScoringUnavailable(
                agent_id=self.owner_id, text=description, cause=ValueError(problem)
            )
        return importance

    def _coerce_embedding(self, value: Any, description: str) -> Tuple[float, ...]:
        try:
            embedding = tuple(float(component) for component in value)
        except (TypeError, ValueError) as exc:
            raise ScoringUnavailable(agent_id=self.owner_id, text=description, cause=exc) from exc
        problem = None
        if not embedding:
            problem = "empty embedding"
        elif any(not math.isfinite(component) for component in embedding):
            problem = "non-finite embedding component"
        elif self._embedding_dim is not None and len(embedding) != self._embedding_dim:
            problem = f"embedding length {len(embedding)} != stream length {self._embedding_dim}"
        if problem:
            raise ScoringUnavailable(
                agent_id=self.owner_id, text=description, cause=ValueError(problem)
            )
        return embedding

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def score(
        self,
        query_embedding: Sequence[float],
        now: float,
        *,
        kinds: Optional[Iterable[Union[MemoryKind, str]]] = None,
    ) -> List[ScoredMemory]:
        """Score every memory against the query without mutating anything.

        Sorted by score descending, ties broken by most recent ``created_at``.
        """

        allowed = None if kinds is None else {MemoryKind(kind) for kind in kinds}
        weights = self.weights
        scored: List[ScoredMemory] = []
        for memory in self._memories:
            if allowed is not None and memory.kind not in allowed:
                continue
            recency = recency_score(now, memory.latest_access, weights.decay)
            importance = normalize_importance(memory.importance)
            relevance = cosine_similarity(query_embedding, memory.embedding)
            total = (
                weights.recency * recency
                + weights.importance * importance
                + weights.relevance * relevance
            )
            scored.append(
                ScoredMemory(
                    memory=memory,
                    score=total,
                    recency=recency,
                    importance=importance,
                    relevance=relevance,
                )
            )
        scored.sort(key=lambda item: (-item.score, -item.memory.created_at))
        return scored

    def retrieve_by_embedding(
        self,
        query_embedding: Sequence[float],
        k: int,
        now: float,
        *,
        kinds: Optional[Iterable[Union[MemoryKind, str]]] = None,
    ) -> List[Memory]:
        """Return the top ``k`` memories and refresh their ``latest_access``."""

        limit = k if self.max_results is None else min(k, self.max_results)
        if limit <= 0 or not self._memories:
            return []
        if self._embedding_dim is not None and len(query_embedding) != self._embedding_dim:
            raise ValueError(
                f"query embedding length {len(query_embedding)} != stream length {self._embedding_dim}"
            )

        top = [item.memory for item in self.score(query_embedding, now, kinds=kinds)[:limit]]
        for memory in top:
            memory.latest_access = max(memory.latest_access, now)
        log_deterministic(f"Retrieved {len(top)}/{len(self._memories)} memories", scope=self.owner_id)
        return top

    async def retrieve(
        self,
        query: str,
        k: int,
        now: float,
        *,
        kinds: Optional[Iterable[Union[MemoryKind, str]]] = None,
    ) -> List[Memory]:
        """Embed ``query`` and return the top ``k`` memories.

        Raises:
            ScoringUnavailable: If the query cannot be embedded
        """

        if not self._memories:
            return []
        try:
            raw = await self.provider.embed(query)
        except Exception as exc:
            raise ScoringUnavailable(agent_id=self.owner_id, text=query, cause=exc) from exc
        query_embedding = self._coerce_embedding(raw, query)
        return self.retrieve_by_embedding(query_embedding, k, now, kinds=kinds)

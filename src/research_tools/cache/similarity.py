"""Similarity cache contract and implementations."""

from __future__ import annotations

import asyncio
import json
from math import sqrt
from typing import Any, Protocol, runtime_checkable

from research_tools.types import CacheQuery, SimilarityResult


@runtime_checkable
class SimilarityCache(Protocol):
    """Store of past (query, result) pairs searchable by embedding closeness.

    Implementations must be safe for concurrent use. `similarities` returns
    results ordered by descending score and an empty list, never an error,
    when nothing is cached.
    """

    async def store(self, query: CacheQuery) -> None:
        """Persist a query whose `results` are populated."""

    async def similarities(self, query: CacheQuery) -> list[SimilarityResult]:
        """Rank stored queries against the candidate."""


class PassthroughSimilarityCache:
    """Null cache: stores nothing and never reports a similar query."""

    async def store(self, query: CacheQuery) -> None:
        del query

    async def similarities(self, query: CacheQuery) -> list[SimilarityResult]:
        del query
        return []


class InMemorySimilarityCache:
    """Append-only cache ranked by cosine similarity.

    Used for tests and local runs; entries are lost with the process.
    """

    def __init__(self, *, k: int = 5, same_action_only: bool = True) -> None:
        if k < 1:
            raise ValueError("k must be >= 1")
        self._entries: list[CacheQuery] = []
        self._lock = asyncio.Lock()
        self.k = k
        self.same_action_only = same_action_only

    def __len__(self) -> int:
        return len(self._entries)

    async def store(self, query: CacheQuery) -> None:
        if query.results is None:
            raise ValueError("refusing to cache a query without results")
        async with self._lock:
            self._entries.append(query)

    async def similarities(self, query: CacheQuery) -> list[SimilarityResult]:
        async with self._lock:
            candidates = list(self._entries)

        if self.same_action_only:
            candidates = [entry for entry in candidates if entry.action == query.action]

        ranked = sorted(
            (
                SimilarityResult(
                    query=entry,
                    score=_cosine_similarity(query.embedding, entry.embedding),
                )
                for entry in candidates
            ),
            key=lambda item: item.score,
            reverse=True,
        )
        return ranked[: self.k]


def canonical_messages(messages: Any) -> str:
    """Stable text form of outbound messages used as the cache text."""
    return json.dumps(messages, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _cosine_similarity(a: list[float], b: list[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    numerator = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = sqrt(sum(x * x for x in a))
    norm_b = sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return max(0.0, min(1.0, numerator / (norm_a * norm_b)))

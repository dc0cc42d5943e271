"""Shared test doubles for the completion API and the similarity cache."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest

from research_tools.config import GatewayConfig
from research_tools.errors import CacheFailure
from research_tools.gateway.client import PerplexityGateway
from research_tools.types import CacheQuery, SimilarityResult


def completion_payload(
    content: str = "Python is a programming language.",
    *,
    citations: list[Any] | None = None,
    usage: dict[str, int] | None = None,
    model: str | None = "sonar-reasoning-pro",
    **extra: Any,
) -> dict[str, Any]:
    payload: dict[str, Any] = {"choices": [{"message": {"role": "assistant", "content": content}}]}
    if citations is not None:
        payload["citations"] = citations
    if usage is not None:
        payload["usage"] = usage
    if model is not None:
        payload["model"] = model
    payload.update(extra)
    return payload


@dataclass
class FakeCompletionAPI:
    """Stands in for the remote endpoint via `httpx.MockTransport`.

    With `echo_prompt` set, the answer is the last message's content, which
    lets concurrent callers check they received their own response.
    """

    payload: Any = field(default_factory=completion_payload)
    status_code: int = 200
    error: Exception | None = None
    echo_prompt: bool = False
    requests: list[httpx.Request] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.echo_prompt:
            body = json.loads(request.content)
            return httpx.Response(
                self.status_code,
                json=completion_payload(body["messages"][-1]["content"]),
            )
        return httpx.Response(self.status_code, json=self.payload)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def sent_bodies(self) -> list[dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests]


@dataclass
class RecordingCache:
    """Similarity cache double returning a fixed ranking."""

    ranked: list[SimilarityResult] = field(default_factory=list)
    fail_lookup: bool = False
    fail_store: bool = False
    lookups: list[CacheQuery] = field(default_factory=list)
    stored: list[CacheQuery] = field(default_factory=list)

    async def store(self, query: CacheQuery) -> None:
        if self.fail_store:
            raise CacheFailure("cache backend unavailable")
        self.stored.append(query)

    async def similarities(self, query: CacheQuery) -> list[SimilarityResult]:
        self.lookups.append(query)
        if self.fail_lookup:
            raise RuntimeError("cache backend unavailable")
        return list(self.ranked)


def cached_result(results: Any, score: float, **params: Any) -> SimilarityResult:
    return SimilarityResult(
        query=CacheQuery(
            action="perplexity_api_call",
            text="[]",
            embedding=[0.0],
            params=params or None,
            results=results,
        ),
        score=score,
    )


@pytest.fixture
def completion_api() -> FakeCompletionAPI:
    return FakeCompletionAPI()


@pytest.fixture
def cache() -> RecordingCache:
    return RecordingCache()


@pytest.fixture
def gateway_config() -> GatewayConfig:
    return GatewayConfig(api_key="test-key")


@pytest.fixture
def gateway(
    gateway_config: GatewayConfig,
    completion_api: FakeCompletionAPI,
    cache: RecordingCache,
) -> PerplexityGateway:
    return PerplexityGateway(gateway_config, cache=cache, transport=completion_api.transport)

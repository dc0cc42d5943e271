"""Outbound completion calls guarded by the similarity cache."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from research_tools.cache.embedder import Embedder, PlaceholderEmbedder
from research_tools.cache.similarity import (
    PassthroughSimilarityCache,
    SimilarityCache,
    canonical_messages,
)
from research_tools.config import API_KEY_ENV_VAR, GatewayConfig
from research_tools.errors import (
    MissingCredentialError,
    UpstreamUnavailableError,
)
from research_tools.types import CacheQuery, SimilarityResult

logger = logging.getLogger(__name__)


class PerplexityGateway:
    """Sends chat completion requests, reusing near-identical past answers.

    The gateway is stateless apart from its injected collaborators, so one
    instance serves concurrent tool calls. The HTTP client is created lazily
    unless one is supplied; a supplied client is never closed here.
    """

    def __init__(
        self,
        config: GatewayConfig,
        *,
        cache: SimilarityCache | None = None,
        embedder: Embedder | None = None,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.cache: SimilarityCache = (
            cache if cache is not None else PassthroughSimilarityCache()
        )
        self.embedder: Embedder = (
            embedder if embedder is not None else PlaceholderEmbedder()
        )
        self._client = client
        self._owns_client = client is None
        self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                transport=self._transport, timeout=self.config.timeout_seconds
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def build_query(
        self,
        model: str,
        messages: list[dict[str, Any]],
        recency_filter: str | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> CacheQuery:
        text = canonical_messages(messages)
        params: dict[str, Any] = {"model": model, "search_recency_filter": recency_filter}
        if extra:
            params.update(extra)
        return CacheQuery(
            action=self.config.cache_action,
            text=text,
            params=params,
            embedding=self.embedder.embed_query(text),
        )

    def build_request_body(
        self,
        model: str,
        messages: list[dict[str, Any]],
        recency_filter: str | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"model": model, "messages": messages}
        if extra:
            body.update(extra)
        if recency_filter is not None:
            logger.info("Applying search recency filter: %s", recency_filter)
            body["search_recency_filter"] = recency_filter
        return body

    async def call(
        self,
        model: str,
        messages: list[dict[str, Any]],
        *,
        recency_filter: str | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> Any:
        """Return the raw completion payload for *messages*.

        A cached payload is returned without any remote call when the best
        stored match scores above the configured threshold. The payload is not
        validated here; a missing answer surfaces when it is formatted.
        """
        logger.debug("Calling completion API with model: %s", model)
        candidate = self.build_query(model, messages, recency_filter, extra)

        hit = self._select_hit(candidate, await self._lookup(candidate))
        if hit is not None:
            logger.info("Found cached similar response with score: %.4f", hit.score)
            return hit.query.results

        api_key = self.config.api_key
        if not api_key:
            logger.error("%s not set in environment", API_KEY_ENV_VAR)
            raise MissingCredentialError(
                f"{API_KEY_ENV_VAR} not set in environment",
                hint=f"Export {API_KEY_ENV_VAR} before starting the server.",
            )

        body = self.build_request_body(model, messages, recency_filter, extra)
        payload = await self._post(body, api_key)

        await self._store(candidate.with_results(payload))
        return payload

    def _select_hit(
        self, candidate: CacheQuery, ranked: list[SimilarityResult]
    ) -> SimilarityResult | None:
        if not ranked:
            return None
        top = ranked[0]
        if top.score <= self.config.cache_hit_threshold or top.query.results is None:
            return None
        if self.config.match_params and top.query.params != candidate.params:
            logger.debug("Cache candidate rejected: params differ")
            return None
        return top

    async def _lookup(self, candidate: CacheQuery) -> list[SimilarityResult]:
        try:
            return list(await self.cache.similarities(candidate))
        except Exception as exc:
            logger.warning("Similarity lookup failed: %s", exc, exc_info=exc)
            return []

    async def _store(self, query: CacheQuery) -> None:
        try:
            await self.cache.store(query)
        except Exception as exc:
            logger.warning("Cache store failed: %s", exc, exc_info=exc)

    async def _post(self, body: dict[str, Any], api_key: str) -> Any:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = await self._get_client().post(
                self.config.endpoint, json=body, headers=headers
            )
        except httpx.HTTPError as exc:
            logger.error("Completion request failed: %s", exc)
            raise UpstreamUnavailableError(
                f"Completion request failed: {exc}",
                hint="Check network connectivity to the completion API.",
            ) from exc

        if response.is_error:
            logger.error("Completion API returned HTTP %d", response.status_code)
            raise UpstreamUnavailableError(
                f"Completion API returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            logger.error("Failed to parse API response: %s", exc)
            raise UpstreamUnavailableError(
                "Completion API returned a non-JSON body",
                status_code=response.status_code,
            ) from exc


def recency_from_time_constraint(time_constraint: str) -> str | None:
    """Derive a search recency filter from a free-text time constraint."""
    if "recent" in time_constraint or "latest" in time_constraint:
        return "week"
    if "year" in time_constraint:
        return "month"
    return None

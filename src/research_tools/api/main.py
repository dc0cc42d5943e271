"""FastAPI entrypoint exposing tool discovery and tool calls.

Run with ``uvicorn --factory research_tools.api.main:create_app``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

import httpx
from fastapi import Body, FastAPI, HTTPException

from research_tools.agent.registry import ToolRegistry
from research_tools.agent.tools import register_builtin_tools
from research_tools.cache.embedder import Embedder
from research_tools.cache.similarity import SimilarityCache
from research_tools.config import GatewayConfig, load_gateway_config
from research_tools.errors import ToolNotFoundError
from research_tools.gateway.client import PerplexityGateway
from research_tools.obs.usage import UsageLedger, UsageReporter


def create_app(
    config: GatewayConfig | None = None,
    *,
    cache: SimilarityCache | None = None,
    embedder: Embedder | None = None,
    usage_reporter: UsageReporter | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Wire the registry, gateway and collaborators into an app.

    Without an explicit *config* the environment is read and a missing API
    key aborts app creation.
    """
    config = config if config is not None else load_gateway_config()
    reporter = usage_reporter if usage_reporter is not None else UsageLedger()
    gateway = PerplexityGateway(config, cache=cache, embedder=embedder, transport=transport)
    registry = ToolRegistry()
    register_builtin_tools(registry, gateway, usage_reporter=reporter)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        await gateway.aclose()

    app = FastAPI(title="Research Tools", version="0.1.0", lifespan=lifespan)
    app.state.registry = registry
    app.state.gateway = gateway
    app.state.usage_reporter = reporter

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "tool_count": len(registry.list_tools()),
            "cache": type(gateway.cache).__name__,
        }

    @app.get("/tools")
    def list_tools() -> dict[str, Any]:
        return {"tools": [asdict(descriptor) for descriptor in registry.list_tools()]}

    @app.post("/tools/{name}")
    async def call_tool(
        name: str, arguments: dict[str, Any] | None = Body(default=None)
    ) -> dict[str, Any]:
        try:
            registry.get(name)
        except ToolNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

        result = await registry.call_tool(name, arguments)
        return {
            "content": [block.to_dict() for block in result.content],
            "is_error": result.is_error,
        }

    @app.get("/usage")
    def usage() -> dict[str, Any]:
        if not isinstance(reporter, UsageLedger):
            raise HTTPException(status_code=404, detail="Usage ledger not configured")
        return reporter.summary()

    return app

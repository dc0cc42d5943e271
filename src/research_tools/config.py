"""Configuration models for the research tool server."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from research_tools.errors import MissingCredentialError

logger = logging.getLogger(__name__)

API_KEY_ENV_VAR = "PERPLEXITY_API_KEY"
DEFAULT_ENDPOINT = "https://api.perplexity.ai/chat/completions"

DEEP_RESEARCH_SYSTEM_PROMPT = (
    "You are a Deep Research agent capable of conducting comprehensive research "
    "by performing multiple searches. Your goal is to create an in-depth report "
    "that combines information from hundreds of sources, analyzes contradictions, "
    "and presents a complete picture of the topic."
)


class GatewayConfig(BaseModel):
    """Configures the outbound completion call and the cache hit policy."""

    model_config = ConfigDict(frozen=True)

    # Checked per call by the gateway; `load_gateway_config` fails fast instead.
    api_key: str | None = None
    endpoint: str = DEFAULT_ENDPOINT
    default_model: str = "sonar-reasoning-pro"
    research_model: str = "sonar-deep-research"
    cache_hit_threshold: float = Field(default=0.95, ge=0.0, le=1.0)
    cache_action: str = "perplexity_api_call"
    # Also require equal params (model, recency filter) for a cache hit.
    match_params: bool = False
    # Transport timeout for the HTTP client; None waits indefinitely.
    timeout_seconds: float | None = Field(default=None, gt=0.0)

    def __repr__(self) -> str:
        return (
            f"GatewayConfig(endpoint={self.endpoint!r}, "
            f"default_model={self.default_model!r}, api_key='[REDACTED]')"
        )

    __str__ = __repr__


class DeepResearchConfig(BaseModel):
    """Fixed sampling parameters for the deep research variant."""

    model_config = ConfigDict(frozen=True)

    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4000, ge=1)
    search_iterations: int = Field(default=10, ge=1)
    system_prompt: str = DEEP_RESEARCH_SYSTEM_PROMPT


def load_gateway_config(env: Mapping[str, str] | None = None) -> GatewayConfig:
    """Build a `GatewayConfig` from the environment.

    Reads a local `.env` first when *env* is not given. Raises
    `MissingCredentialError` when no API key is available so a server can
    refuse to start instead of failing on the first tool call.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    api_key = (env.get(API_KEY_ENV_VAR) or "").strip()
    if not api_key:
        logger.error("%s not set in environment", API_KEY_ENV_VAR)
        raise MissingCredentialError(
            f"{API_KEY_ENV_VAR} not set in environment",
            hint=f"Export {API_KEY_ENV_VAR} or add it to a .env file.",
        )

    overrides: dict[str, object] = {}
    if model := env.get("PERPLEXITY_MODEL"):
        overrides["default_model"] = model
    if threshold := env.get("PERPLEXITY_CACHE_THRESHOLD"):
        overrides["cache_hit_threshold"] = float(threshold)
    return GatewayConfig(api_key=api_key, **overrides)

"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Literal


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    """Capability metadata a dispatcher uses for discovery and help text."""

    name: str
    description: str
    input_schema: dict[str, Any]


@dataclass(frozen=True, slots=True)
class TextContent:
    """A single text block of a tool result."""

    text: str
    kind: Literal["text"] = "text"

    def to_dict(self) -> dict[str, str]:
        return {"type": self.kind, "text": self.text}


@dataclass(frozen=True, slots=True)
class CallToolResult:
    """Outcome of a dispatched tool call."""

    content: list[TextContent]
    is_error: bool = False


@dataclass(frozen=True, slots=True)
class CacheQuery:
    """One cacheable outbound call: identity, embedding, and stored payload."""

    action: str
    text: str
    embedding: list[float]
    params: dict[str, Any] | None = None
    results: Any = None

    def with_results(self, results: Any) -> CacheQuery:
        return replace(self, results=results)


@dataclass(frozen=True, slots=True)
class SimilarityResult:
    """A previously stored query and its similarity to a candidate."""

    query: CacheQuery
    score: float


@dataclass(frozen=True, slots=True)
class UsageMetrics:
    completion_tokens: int
    prompt_tokens: int
    total_tokens: int


@dataclass(frozen=True, slots=True)
class UsageReport:
    model: str
    usage: UsageMetrics


@dataclass(slots=True)
class ToolTrace:
    """Trace record for an executed tool call."""

    name: str
    input_payload: dict[str, Any]
    output_preview: str
    latency_ms: float
    is_error: bool = False

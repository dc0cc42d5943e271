"""Render raw completion payloads as human-readable text with citations.

Both renderings are pure projections of the payload: the upstream content is
never rewritten, and identical payloads always produce identical text.
"""

from __future__ import annotations

import logging
from typing import Any

from research_tools.errors import MalformedResponseError

logger = logging.getLogger(__name__)

CONTENT_FIELD = "choices[0].message.content"


def extract_content(payload: Any) -> str:
    """Return `choices[0].message.content` or raise `MalformedResponseError`."""
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise MalformedResponseError(CONTENT_FIELD) from exc
    if not isinstance(content, str):
        raise MalformedResponseError(CONTENT_FIELD)
    return content


def extract_citations(payload: Any) -> list[Any]:
    citations = payload.get("citations") if isinstance(payload, dict) else None
    if not isinstance(citations, list):
        return []
    return citations


def format_with_references(payload: Any) -> str:
    """Content followed by a numbered `References:` list, if any citations."""
    logger.debug("Formatting response with references")
    content = extract_content(payload)
    citations = extract_citations(payload)
    if not citations:
        logger.info("No citations found in response")
        return content

    logger.info("Found %d citations", len(citations))
    references = "\n".join(
        f"[{idx}]: {_citation_url(citation)}" for idx, citation in enumerate(citations, start=1)
    )
    return f"{content}\n\nReferences:\n{references}"


def format_deep_research(payload: Any, citation_style: str) -> str:
    """Content followed by a style-aware bibliography and a source assessment.

    `apa` renders one paragraph per citation; every other style falls back to
    a numbered `## Sources` list of URLs.
    """
    content = extract_content(payload)
    citations = extract_citations(payload)
    if not citations:
        return content

    logger.info("Formatting %d citations as %s", len(citations), citation_style)
    if citation_style == "apa":
        sections = ["## References", *_apa_entries(citations)]
    else:
        sections = [
            "## Sources",
            "\n".join(
                f"[{idx}]: {_citation_url(citation)}"
                for idx, citation in enumerate(citations, start=1)
            ),
        ]
    sections.append(_source_assessment(payload, len(citations)))
    return content + "\n\n" + "\n\n".join(sections)


def _apa_entries(citations: list[Any]) -> list[str]:
    entries: list[str] = []
    for idx, citation in enumerate(citations, start=1):
        title = _string_field(citation, "title")
        url = _string_field(citation, "url")
        if title is None or url is None:
            fallback = citation if isinstance(citation, str) else "Unknown source"
            entries.append(f"[{idx}] {fallback}")
            continue

        parts: list[str] = []
        authors = citation.get("authors")
        if isinstance(authors, list):
            names = [name for name in authors if isinstance(name, str) and name]
            if names:
                parts.append(f"{', '.join(names)}.")
        if date := _string_field(citation, "date"):
            parts.append(f"({date}).")
        if publisher := _string_field(citation, "publisher"):
            parts.append(f"{publisher}.")
        parts.append(f"*{title}*.")
        parts.append(url)
        entries.append(f"[{idx}] " + " ".join(parts))
    return entries


def _source_assessment(payload: dict[str, Any], total: int) -> str:
    rows = [
        "## Source Assessment",
        "",
        "| Category | Metrics |",
        "|----------|---------|",
        f"| Total Sources | {total} |",
    ]
    search_info = payload.get("search_info")
    if isinstance(search_info, dict):
        iterations = search_info.get("iterations")
        if isinstance(iterations, int) and not isinstance(iterations, bool):
            rows.append(f"| Search Iterations | {iterations} |")
    return "\n".join(rows)


def _citation_url(citation: Any) -> str:
    if isinstance(citation, str):
        return citation
    return _string_field(citation, "url") or "Unknown URL"


def _string_field(citation: Any, name: str) -> str | None:
    if not isinstance(citation, dict):
        return None
    value = citation.get(name)
    if isinstance(value, str) and value:
        return value
    return None

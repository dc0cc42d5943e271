"""Prompt builders, one per tool variant.

Each builder is a pure function of its validated arguments.
"""

from __future__ import annotations

from textwrap import dedent

_SEARCH_TEMPLATES = {
    "brief": "Provide a brief, concise answer to: {query}",
    "detailed": (
        "Provide a comprehensive, detailed analysis of: {query}. Include relevant "
        "examples, context, and supporting information where applicable."
    ),
}
_SEARCH_DEFAULT = (
    "Provide a clear, balanced answer to: {query}. Include key points and relevant context."
)


def build_search_prompt(query: str, detail_level: str = "normal") -> str:
    # Unrecognised detail levels get the balanced answer.
    template = _SEARCH_TEMPLATES.get(detail_level, _SEARCH_DEFAULT)
    return template.format(query=query)


def build_documentation_prompt(query: str, context: str | None = None) -> str:
    focus = f" Focus on: {context}." if context else ""
    return dedent(
        """\
        Provide comprehensive documentation and usage examples for {query}.{focus} Include:
        1. Basic overview and purpose
        2. Key features and capabilities
        3. Installation/setup if applicable
        4. Common usage examples
        5. Best practices
        6. Common pitfalls to avoid
        7. Links to official documentation if available"""
    ).format(query=query, focus=focus)


def build_find_apis_prompt(requirement: str, context: str | None = None) -> str:
    extra = f" Context: {context}." if context else ""
    return dedent(
        """\
        Find and evaluate APIs that could be used for: {requirement}.{extra} For each API, provide:
        1. Name and brief description
        2. Key features and capabilities
        3. Pricing model (if available)
        4. Integration complexity
        5. Documentation quality
        6. Community support and popularity
        7. Any potential limitations or concerns
        8. Code example of basic usage"""
    ).format(requirement=requirement, extra=extra)


def build_deprecation_prompt(code: str, technology: str | None = None) -> str:
    scope = f" in {technology}" if technology else ""
    header = f"Analyze this code for deprecated features or patterns{scope}:"
    instructions = dedent(
        """\
        Please provide:
        1. Identification of any deprecated features, methods, or patterns
        2. Current recommended alternatives
        3. Migration steps if applicable
        4. Impact of the deprecation
        5. Timeline of deprecation if known
        6. Code examples showing how to update to current best practices"""
    )
    # The snippet is inserted verbatim, outside of the dedented template.
    return f"{header}\n\n{code}\n\n{instructions}"


def build_deep_research_prompt(
    topic: str,
    depth: str = "comprehensive",
    focus: str | None = None,
    time_constraint: str | None = None,
    citation_style: str = "apa",
) -> str:
    scope = depth
    if focus:
        scope += f", focused on {focus}"
    if time_constraint:
        scope += f". Consider the time period: {time_constraint}"
    return dedent(
        """\
        Conduct a deep research investigation on: {topic}

        Please approach this as an expert researcher would, conducting multiple searches and analyzing diverse sources to provide comprehensive information. Your research should be {scope}

        When preparing your report:
        1. Start with an executive summary of key findings
        2. Organize information in a logical structure with headings and subheadings
        3. Include critical analysis and multiple perspectives
        4. Cite all sources using {citation_style} format
        5. Prioritize recent, peer-reviewed, and authoritative sources
        6. Identify any gaps in existing research
        7. Conclude with practical implications and future directions"""
    ).format(topic=topic, scope=scope, citation_style=citation_style)

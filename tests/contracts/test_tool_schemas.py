from research_tools.agent.registry import ToolRegistry
from research_tools.agent.tools import register_builtin_tools
from research_tools.config import GatewayConfig
from research_tools.gateway.client import PerplexityGateway


def _schemas() -> dict[str, dict]:
    registry = ToolRegistry()
    register_builtin_tools(registry, PerplexityGateway(GatewayConfig(api_key="k")))
    return {descriptor.name: descriptor.input_schema for descriptor in registry.list_tools()}


def test_required_fields_per_tool() -> None:
    schemas = _schemas()

    assert {name: schema["required"] for name, schema in schemas.items()} == {
        "search": ["query"],
        "get_documentation": ["query"],
        "find_apis": ["requirement"],
        "check_deprecated_code": ["code"],
        "deep_research": ["topic"],
    }


def test_enumerated_values_are_declared() -> None:
    schemas = _schemas()

    search = schemas["search"]["properties"]
    research = schemas["deep_research"]["properties"]
    assert search["detail_level"]["enum"] == ["brief", "normal", "detailed"]
    assert search["search_recency_filter"]["enum"] == ["month", "week", "day", "hour"]
    assert research["depth"]["enum"] == ["brief", "comprehensive", "exhaustive"]
    assert research["citation_style"]["enum"] == ["apa", "mla", "chicago", "ieee"]
    assert set(research) == {"topic", "depth", "focus", "time_constraint", "citation_style"}


def test_every_property_is_a_described_string() -> None:
    for schema in _schemas().values():
        assert schema["type"] == "object"
        for prop in schema["properties"].values():
            assert prop["type"] == "string"
            assert prop["description"]

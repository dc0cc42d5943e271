import pytest
from pydantic import ValidationError

from research_tools.config import DeepResearchConfig, GatewayConfig, load_gateway_config
from research_tools.errors import MissingCredentialError


def test_load_gateway_config_reads_key_and_overrides() -> None:
    config = load_gateway_config(
        {
            "PERPLEXITY_API_KEY": " pplx-secret ",
            "PERPLEXITY_MODEL": "sonar-pro",
            "PERPLEXITY_CACHE_THRESHOLD": "0.9",
        }
    )

    assert config.api_key == "pplx-secret"
    assert config.default_model == "sonar-pro"
    assert config.cache_hit_threshold == 0.9
    assert config.endpoint == "https://api.perplexity.ai/chat/completions"


@pytest.mark.parametrize("env", [{}, {"PERPLEXITY_API_KEY": "   "}])
def test_load_gateway_config_fails_fast_without_key(env: dict[str, str]) -> None:
    with pytest.raises(MissingCredentialError) as excinfo:
        load_gateway_config(env)

    assert excinfo.value.hint is not None


def test_gateway_config_redacts_key() -> None:
    config = GatewayConfig(api_key="pplx-secret")

    assert "pplx-secret" not in repr(config)
    assert "pplx-secret" not in str(config)


def test_gateway_config_validates_threshold() -> None:
    with pytest.raises(ValidationError):
        GatewayConfig(api_key="k", cache_hit_threshold=1.5)


def test_deep_research_defaults() -> None:
    config = DeepResearchConfig()

    assert (config.temperature, config.max_tokens, config.search_iterations) == (0.2, 4000, 10)
    assert config.system_prompt.startswith("You are a Deep Research agent")

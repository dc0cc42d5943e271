"""Research tools package."""

from .config import DeepResearchConfig, GatewayConfig

__all__ = ["DeepResearchConfig", "GatewayConfig"]

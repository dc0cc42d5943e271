"""Built-in research tools backed by the completion gateway."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar

from pydantic import BaseModel, Field, ValidationError

from research_tools.agent import prompts
from research_tools.agent.registry import ToolRegistry, input_schema_for
from research_tools.config import DeepResearchConfig
from research_tools.errors import InvalidArgumentError
from research_tools.formatting.response import format_deep_research, format_with_references
from research_tools.gateway.client import PerplexityGateway, recency_from_time_constraint
from research_tools.obs.usage import NoopUsageReporter, UsageReporter, report_usage
from research_tools.types import TextContent, ToolDescriptor

logger = logging.getLogger(__name__)


def _enum(*values: str) -> dict[str, Any]:
    return {"enum": list(values)}


class SearchToolInput(BaseModel):
    query: str = Field(min_length=1, description="The search query or question")
    detail_level: str = Field(
        default="normal",
        description="Optional: Desired level of detail (brief, normal, detailed)",
        json_schema_extra=_enum("brief", "normal", "detailed"),
    )
    search_recency_filter: str | None = Field(
        default=None,
        description="Optional: Filter for search results recency (month, week, day, hour)",
        json_schema_extra=_enum("month", "week", "day", "hour"),
    )


class DocumentationToolInput(BaseModel):
    query: str = Field(
        min_length=1,
        description="The technology, library, or API to get documentation for",
    )
    context: str | None = Field(
        default=None,
        description="Additional context or specific aspects to focus on",
    )


class FindApisToolInput(BaseModel):
    requirement: str = Field(
        min_length=1,
        description="The functionality or requirement you're looking to fulfill",
    )
    context: str | None = Field(
        default=None,
        description="Additional context about the project or specific needs",
    )


class DeprecatedCodeToolInput(BaseModel):
    code: str = Field(min_length=1, description="The code snippet or dependency to check")
    technology: str | None = Field(
        default=None,
        description="The technology or framework context (e.g., 'React', 'Node.js')",
    )


class DeepResearchToolInput(BaseModel):
    topic: str = Field(
        min_length=1,
        description="The research topic or question to investigate in depth",
    )
    depth: str = Field(
        default="comprehensive",
        description="Desired research depth (brief, comprehensive, exhaustive)",
        json_schema_extra=_enum("brief", "comprehensive", "exhaustive"),
    )
    focus: str | None = Field(
        default=None,
        description="Optional focus area (academic, business, technical, historical, etc.)",
    )
    time_constraint: str | None = Field(
        default=None,
        description="Optional time period to focus on (recent, last year, historical, etc.)",
    )
    citation_style: str = Field(
        default="apa",
        description="Citation style for references (apa, mla, chicago, ieee)",
        json_schema_extra=_enum("apa", "mla", "chicago", "ieee"),
    )


class CompletionTool(ABC):
    """Shared execution flow: validate, prompt, call, meter, format.

    Variants only describe their arguments and how to shape the prompt; they
    hold no per-call state, so one instance serves concurrent calls.
    """

    name: ClassVar[str]
    description: ClassVar[str]
    args_schema: ClassVar[type[BaseModel]]

    def __init__(
        self,
        gateway: PerplexityGateway,
        *,
        usage_reporter: UsageReporter | None = None,
    ) -> None:
        self.gateway = gateway
        self.usage_reporter: UsageReporter = (
            usage_reporter if usage_reporter is not None else NoopUsageReporter()
        )

    def describe(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            input_schema=input_schema_for(self.args_schema),
        )

    def parse(self, arguments: Mapping[str, Any] | None) -> Any:
        if not isinstance(arguments, Mapping):
            raise InvalidArgumentError("arguments", "Missing arguments")
        try:
            return self.args_schema.model_validate(dict(arguments))
        except ValidationError as exc:
            error = exc.errors()[0]
            field = str(error["loc"][0]) if error["loc"] else "arguments"
            raise InvalidArgumentError(
                field, f"Missing or invalid {field}: {error['msg']}"
            ) from exc

    @property
    def model(self) -> str:
        return self.gateway.config.default_model

    def build_messages(self, args: Any) -> list[dict[str, str]]:
        return [{"role": "user", "content": self.build_prompt(args)}]

    @abstractmethod
    def build_prompt(self, args: Any) -> str:
        """Render the user prompt for validated *args*."""

    def recency_filter(self, args: Any) -> str | None:
        del args
        return None

    def request_extra(self, args: Any) -> dict[str, Any] | None:
        del args
        return None

    def format(self, payload: Any, args: Any) -> str:
        del args
        return format_with_references(payload)

    async def execute(self, arguments: Mapping[str, Any] | None) -> list[TextContent]:
        logger.debug("Executing %s", self.name)
        args = self.parse(arguments)
        messages = self.build_messages(args)
        payload = await self.gateway.call(
            self.model,
            messages,
            recency_filter=self.recency_filter(args),
            extra=self.request_extra(args),
        )
        report_usage(self.usage_reporter, payload)
        return [TextContent(text=self.format(payload, args))]


class SearchTool(CompletionTool):
    name = "search"
    description = "Perform a general search query to get comprehensive information on any topic"
    args_schema = SearchToolInput

    def build_prompt(self, args: SearchToolInput) -> str:
        logger.info("Prepared search prompt with detail level: %s", args.detail_level)
        return prompts.build_search_prompt(args.query, args.detail_level)

    def recency_filter(self, args: SearchToolInput) -> str | None:
        return args.search_recency_filter


class GetDocumentationTool(CompletionTool):
    name = "get_documentation"
    description = "Get documentation and usage examples for a specific technology, library, or API"
    args_schema = DocumentationToolInput

    def build_prompt(self, args: DocumentationToolInput) -> str:
        return prompts.build_documentation_prompt(args.query, args.context)


class FindApisTool(CompletionTool):
    name = "find_apis"
    description = "Find and evaluate APIs that could be integrated into a project"
    args_schema = FindApisToolInput

    def build_prompt(self, args: FindApisToolInput) -> str:
        return prompts.build_find_apis_prompt(args.requirement, args.context)


class CheckDeprecatedCodeTool(CompletionTool):
    name = "check_deprecated_code"
    description = "Check if code or dependencies might be using deprecated features"
    args_schema = DeprecatedCodeToolInput

    def build_prompt(self, args: DeprecatedCodeToolInput) -> str:
        return prompts.build_deprecation_prompt(args.code, args.technology)


class DeepResearchTool(CompletionTool):
    name = "deep_research"
    description = "Conduct in-depth research on complex topics by analyzing hundreds of sources"
    args_schema = DeepResearchToolInput

    def __init__(
        self,
        gateway: PerplexityGateway,
        *,
        usage_reporter: UsageReporter | None = None,
        config: DeepResearchConfig | None = None,
    ) -> None:
        super().__init__(gateway, usage_reporter=usage_reporter)
        self.config = config if config is not None else DeepResearchConfig()

    @property
    def model(self) -> str:
        return self.gateway.config.research_model

    def build_prompt(self, args: DeepResearchToolInput) -> str:
        return prompts.build_deep_research_prompt(
            args.topic,
            depth=args.depth,
            focus=args.focus,
            time_constraint=args.time_constraint,
            citation_style=args.citation_style,
        )

    def build_messages(self, args: DeepResearchToolInput) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.config.system_prompt},
            {"role": "user", "content": self.build_prompt(args)},
        ]

    def recency_filter(self, args: DeepResearchToolInput) -> str | None:
        return recency_from_time_constraint(args.time_constraint or "")

    def request_extra(self, args: DeepResearchToolInput) -> dict[str, Any]:
        del args
        return {
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "search_iterations": self.config.search_iterations,
        }

    def format(self, payload: Any, args: DeepResearchToolInput) -> str:
        return format_deep_research(payload, args.citation_style)


def register_builtin_tools(
    registry: ToolRegistry,
    gateway: PerplexityGateway,
    *,
    usage_reporter: UsageReporter | None = None,
    research_config: DeepResearchConfig | None = None,
) -> None:
    """Register the default tool set.

    Tools:
    - `search`: balanced, brief or detailed answer to a question.
    - `get_documentation`: structured documentation for a technology.
    - `find_apis`: evaluation of candidate APIs for a requirement.
    - `check_deprecated_code`: deprecation analysis of a snippet.
    - `deep_research`: multi-source report with a styled bibliography.
    """
    registry.register(SearchTool(gateway, usage_reporter=usage_reporter))
    registry.register(GetDocumentationTool(gateway, usage_reporter=usage_reporter))
    registry.register(FindApisTool(gateway, usage_reporter=usage_reporter))
    registry.register(CheckDeprecatedCodeTool(gateway, usage_reporter=usage_reporter))
    registry.register(
        DeepResearchTool(gateway, usage_reporter=usage_reporter, config=research_config)
    )

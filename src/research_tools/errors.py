"""Exception hierarchy for research tools."""

from __future__ import annotations


class ResearchToolsError(Exception):
    """Base exception for all research tool errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class InvalidArgumentError(ResearchToolsError):
    """Tool input is missing or malformed; correctable by the caller."""

    def __init__(self, field: str, message: str | None = None, *, hint: str | None = None) -> None:
        super().__init__(message or f"Missing or invalid argument: {field}", hint=hint)
        self.field = field


class ToolNotFoundError(ResearchToolsError):
    """No registered tool matches the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class MissingCredentialError(ResearchToolsError):
    """The remote API credential is not configured."""


class UpstreamUnavailableError(ResearchToolsError):
    """The remote completion API could not be reached or refused the call."""

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code


class MalformedResponseError(ResearchToolsError):
    """The remote payload lacks a required field."""

    def __init__(self, field: str) -> None:
        super().__init__(f"Malformed response: missing {field}")
        self.field = field


class CacheFailure(ResearchToolsError):
    """Similarity cache lookup or store failed. Never fatal."""


class ReportingFailure(ResearchToolsError):
    """Usage reporting failed. Never fatal."""


_USER_FACING = (
    InvalidArgumentError,
    ToolNotFoundError,
    MissingCredentialError,
    UpstreamUnavailableError,
    MalformedResponseError,
)


def is_user_facing(exc: BaseException) -> bool:
    """Whether *exc* should reach the dispatcher as a failed tool call."""
    return isinstance(exc, _USER_FACING)

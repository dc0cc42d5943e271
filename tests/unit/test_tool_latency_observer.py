import pytest

from research_tools.agent.registry import ToolRegistry
from research_tools.errors import InvalidArgumentError

from test_tool_registry import EchoTool


@pytest.mark.asyncio
async def test_tool_observer_captures_latency_and_payload() -> None:
    registry = ToolRegistry()
    registry.register(EchoTool())

    observed = []
    registry.set_observer(observed.append)
    result = await registry.dispatch("echo", {"text": "hello"})
    registry.set_observer(None)

    assert result[0].text == "HELLO"
    assert len(observed) == 1
    assert observed[0].name == "echo"
    assert observed[0].input_payload == {"text": "hello"}
    assert observed[0].output_preview == "HELLO"
    assert observed[0].latency_ms >= 0.0
    assert not observed[0].is_error


@pytest.mark.asyncio
async def test_tool_observer_marks_failed_calls() -> None:
    registry = ToolRegistry()
    registry.register(EchoTool())

    observed = []
    registry.set_observer(observed.append)
    with pytest.raises(InvalidArgumentError):
        await registry.dispatch("echo", {})

    assert observed[0].is_error
    assert observed[0].output_preview == ""


@pytest.mark.asyncio
async def test_failing_observer_does_not_change_tool_outcome() -> None:
    registry = ToolRegistry()
    registry.register(EchoTool())

    def broken_observer(trace) -> None:
        raise RuntimeError("trace sink offline")

    registry.set_observer(broken_observer)

    result = await registry.dispatch("echo", {"text": "hello"})
    assert result[0].text == "HELLO"
    with pytest.raises(InvalidArgumentError):
        await registry.dispatch("echo", {})

# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the tool base classes and the tool registry."""
import asyncio
import pytest
from pydantic import BaseModel

from agent_runtime.tools.base_tool import BaseTool, FunctionTool, ToolArgumentError
from agent_runtime.tools.registry import ToolRegistry


class EchoTool(BaseTool):
    TOOL_NAME = "echo"
    TOOL_DESCRIPTION = "Echoes its message"

    class Arguments(BaseModel):
        message: str
        times: int = 1

    async def run(self, args, cancellation=None):
        return args.message * args.times


class RawTool(BaseTool):
    TOOL_NAME = "raw"

    async def run(self, args, cancellation=None):
        return args


class TestBaseTool:
    """Test suite for BaseTool class."""

    @pytest.mark.asyncio
    async def test_arguments_are_validated(self):
        assert await EchoTool().invoke({"message": "ab", "times": 2}) == "abab"

    @pytest.mark.asyncio
    async def test_invalid_arguments_raise(self):
        with pytest.raises(ToolArgumentError) as exc_info:
            await EchoTool().invoke({"times": "many"})
        assert "echo" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_without_arguments_model_passes_dict_through(self):
        assert await RawTool().invoke({"anything": [1, 2]}) == {"anything": [1, 2]}

    def test_parameters_schema(self):
        schema = EchoTool.parameters_schema()
        assert set(schema["properties"]) == {"message", "times"}
        assert RawTool.parameters_schema() == {"type": "object", "properties": {}}

    def test_name_and_description(self):
        tool = EchoTool()
        assert tool.name == "echo"
        assert tool.description == "Echoes its message"
        assert RawTool().description == ""


class TestFunctionTool:
    @pytest.mark.asyncio
    async def test_wraps_callable(self):
        seen = {}

        async def fn(arguments, cancellation):
            seen["cancellation"] = cancellation
            return arguments["x"] + 1

        signal = asyncio.Event()
        tool = FunctionTool("inc", fn, description="Adds one")
        assert await tool.invoke({"x": 1}, signal) == 2
        assert seen["cancellation"] is signal
        assert tool.name == "inc"
        assert tool.description == "Adds one"
        assert repr(tool) == "FunctionTool('inc')"


async def _noop(arguments, cancellation):
    return None


class TestToolRegistry:
    def test_register_and_lookup(self):
        registry = ToolRegistry([EchoTool()])
        registry.register(FunctionTool("noop", _noop))

        assert "echo" in registry
        assert "noop" in registry
        assert "missing" not in registry
        assert registry.get("missing") is None
        assert registry.names() == ["echo", "noop"]
        assert len(registry) == 2
        assert [t.name for t in registry] == ["echo", "noop"]

    def test_duplicate_names_rejected(self):
        registry = ToolRegistry([EchoTool()])
        with pytest.raises(ValueError):
            registry.register(EchoTool())

    def test_replace(self):
        registry = ToolRegistry([FunctionTool("noop", _noop)])
        replacement = FunctionTool("noop", _noop, description="new")
        registry.register(replacement, replace=True)
        assert registry.get("noop") is replacement

    def test_unregister(self):
        registry = ToolRegistry([EchoTool()])
        assert registry.unregister("echo").name == "echo"
        assert registry.unregister("echo") is None
        assert len(registry) == 0

    def test_registries_are_independent(self):
        first = ToolRegistry([EchoTool()])
        second = ToolRegistry()
        assert "echo" in first
        assert "echo" not in second

    def test_nameless_tool_rejected(self):
        with pytest.raises(ValueError):
            ToolRegistry([FunctionTool("", _noop)])

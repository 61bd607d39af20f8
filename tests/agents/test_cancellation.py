# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the per-session cancellation registry and the system prompt."""
from agent_runtime.agents.cancellation import RunCancellationRegistry
from agent_runtime.agents.prompts import build_system_prompt
from agent_runtime.tools.base_tool import FunctionTool
from agent_runtime.tools.calculator import Calculator
from agent_runtime.tools.registry import ToolRegistry


class TestRunCancellationRegistry:
    def test_register_and_cancel(self):
        registry = RunCancellationRegistry()
        signal = registry.register("s1")

        assert registry.is_running("s1")
        assert registry.cancel("s1") is True
        assert signal.is_set()
        assert not registry.is_running("s1")

    def test_cancel_unknown_session(self):
        assert RunCancellationRegistry().cancel("missing") is False

    def test_reregister_signals_previous_run(self):
        registry = RunCancellationRegistry()
        first = registry.register("s1")
        second = registry.register("s1")

        assert first.is_set()
        assert not second.is_set()
        assert registry.is_running("s1")

    def test_complete_only_removes_own_signal(self):
        registry = RunCancellationRegistry()
        first = registry.register("s1")
        second = registry.register("s1")

        registry.complete("s1", first)
        assert registry.is_running("s1")

        registry.complete("s1", second)
        assert not registry.is_running("s1")
        assert registry.cancel("s1") is False

    def test_complete_without_signal(self):
        registry = RunCancellationRegistry()
        registry.register("s1")
        registry.complete("s1")
        registry.complete("s1")
        assert not registry.is_running("s1")


async def _noop(arguments, cancellation):
    return None


class TestSystemPrompt:
    def test_lists_registered_tools(self):
        registry = ToolRegistry([Calculator(), FunctionTool("ping", _noop)])
        prompt = build_system_prompt(registry)

        assert "- calculate: A calculator tool" in prompt
        assert "- ping: No description." in prompt
        assert '{"tool": "<tool name>", "args": {<arguments>}}' in prompt

    def test_empty_registry(self):
        assert "(none)" in build_system_prompt(ToolRegistry())

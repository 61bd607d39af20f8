# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for routing completion requests between backends."""
import pytest
from unittest.mock import AsyncMock

from agent_runtime.llm.base import ChatBackend
from agent_runtime.llm.router import BackendRouter, choose_route
from agent_runtime.types.llm_types import ChatMessage, ModelResponse


def history(n: int) -> list[ChatMessage]:
    return [ChatMessage(role="user", content=str(i)) for i in range(n)]


@pytest.mark.parametrize(
    "prompt, turns, expected",
    [
        ("Write a Python function", 0, "code"),
        ("Review this CODE please", 0, "code"),
        ("Search for flights", 0, "reasoning"),
        ("Analyze the quarterly report", 0, "reasoning"),
        ("browse the docs", 20, "reasoning"),
        ("Tell me a joke", 11, "long_context"),
        ("Tell me a joke", 10, "cheap"),
        ("Hello", 0, "cheap"),
    ],
)
def test_choose_route(prompt, turns, expected):
    assert choose_route(prompt, history(turns)) == expected


def backend(text: str) -> AsyncMock:
    mock = AsyncMock(spec=ChatBackend)
    mock.complete.return_value = ModelResponse(text=text)
    return mock


class TestBackendRouter:
    @pytest.mark.asyncio
    async def test_delegates_to_selected_backend(self):
        cheap, code = backend("cheap"), backend("code")
        router = BackendRouter({"cheap": cheap, "code": code})

        response = await router.complete("sys", "write code", [], None)

        assert response.text == "code"
        code.complete.assert_awaited_once_with("sys", "write code", [], None)
        cheap.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_route_falls_back_to_first_backend(self):
        first, second = backend("first"), backend("second")
        router = BackendRouter()
        router.register("first", first)
        router.register("second", second)

        response = await router.complete("sys", "search the web", [], None)
        assert response.text == "first"

    def test_no_backends(self):
        with pytest.raises(RuntimeError):
            BackendRouter().select("hello", [])

# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""OpenAI chat completions backend."""

import json
import asyncio
import logging

from typing import Any
from datetime import datetime
from openai import AsyncOpenAI

from ..base import ChatBackend
from ...config import settings
from ...tools.registry import ToolRegistry
from ...tools.base_tool import BaseTool
from ...types.llm_types import ChatMessage, ModelResponse
from ...types.tool_types import ToolCall

logger = logging.getLogger(__name__)


class OpenAIChatBackend(ChatBackend):
    """Backend for OpenAI (or OpenAI-compatible) chat completion endpoints.

    When a registry is given, its tools are exposed as native function tools
    and returned tool calls become `proposed_calls`.
    """

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        registry: ToolRegistry | None = None,
        temperature: float = 0.2,
    ):
        self.client = client or AsyncOpenAI()
        self.model = model or settings.openai_model
        self.registry = registry
        self.temperature = temperature

    def _prepare_messages(
        self, system_prompt: str, user_prompt: str, history: list[ChatMessage]
    ) -> list[dict]:
        messages: list[dict] = [{"role": "system", "content": system_prompt}]
        if not history:
            messages.append({"role": "user", "content": user_prompt})
        for msg in history:
            if msg.role == "tool":
                # Native tool messages need a call id we do not keep, so tool
                # results are replayed as user turns.
                messages.append({"role": "user", "content": f"Tool result: {msg.content}"})
            else:
                messages.append({"role": msg.role, "content": msg.content})
        return messages

    def _native_tools(self) -> list[dict]:
        if self.registry is None:
            return []
        tools = []
        for tool in self.registry:
            if isinstance(tool, BaseTool):
                parameters = tool.parameters_schema()
            else:
                parameters = {"type": "object", "properties": {}}
            tools.append(
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": parameters,
                    },
                }
            )
        return tools

    @staticmethod
    def _decode_arguments(raw: str | None) -> dict[str, Any]:
        if not raw:
            return {}
        try:
            args = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Undecodable tool arguments: {raw[:200]}")
            return {}
        return args if isinstance(args, dict) else {}

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        history: list[ChatMessage],
        cancellation: asyncio.Event | None = None,
    ) -> ModelResponse:
        start_time = datetime.now()

        args: dict[str, Any] = {
            "model": self.model,
            "messages": self._prepare_messages(system_prompt, user_prompt, history),
            "temperature": self.temperature,
        }
        tools = self._native_tools()
        if tools:
            args["tools"] = tools

        response = await self.client.chat.completions.create(**args)
        logger.debug(
            f"{self.model} completion in {(datetime.now() - start_time).total_seconds():.2f}s"
        )

        message = response.choices[0].message
        proposed = []
        for tc in message.tool_calls or []:
            proposed.append(
                ToolCall(
                    name=tc.function.name,
                    arguments=self._decode_arguments(tc.function.arguments),
                )
            )
        return ModelResponse(text=message.content or "", proposed_calls=proposed)

# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Model backend contract used by the agent loop."""

import asyncio

from abc import ABC, abstractmethod

from ..types.llm_types import ChatMessage, ModelResponse


class ChatBackend(ABC):
    """A language model service that turns a conversation into a response."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        history: list[ChatMessage],
        cancellation: asyncio.Event | None = None,
    ) -> ModelResponse:
        """Produce the next response for the conversation.

        Args:
            system_prompt: Instructions describing the agent and its tools
            user_prompt: The task that started the run
            history: Prior turns of the session, oldest first
            cancellation: Cooperative cancellation signal for the run

        Returns:
            The model's text, plus any natively structured tool calls.
        """
        pass

# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Conversation history storage used by the agent loop."""

from abc import ABC, abstractmethod
from collections import defaultdict

from ..types.llm_types import ChatMessage


class ChatStore(ABC):
    """Ordered per-session conversation history."""

    @abstractmethod
    async def load_history(self, session_id: str) -> list[ChatMessage]:
        pass

    @abstractmethod
    async def append_user(self, session_id: str, content: str) -> None:
        pass

    @abstractmethod
    async def append_assistant(self, session_id: str, content: str) -> None:
        pass

    @abstractmethod
    async def append_tool_result(self, session_id: str, tool_name: str, content: str) -> None:
        pass


class InMemoryChatStore(ChatStore):
    """Process-local chat store. Each instance owns its own sessions."""

    def __init__(self):
        self._chats: dict[str, list[ChatMessage]] = defaultdict(list)

    async def load_history(self, session_id: str) -> list[ChatMessage]:
        # Return a copy so callers never observe later appends
        return list(self._chats.get(session_id, []))

    async def append_user(self, session_id: str, content: str) -> None:
        self._chats[session_id].append(ChatMessage(role="user", content=content))

    async def append_assistant(self, session_id: str, content: str) -> None:
        self._chats[session_id].append(ChatMessage(role="assistant", content=content))

    async def append_tool_result(self, session_id: str, tool_name: str, content: str) -> None:
        # Tag the output with the tool name for traceability
        if tool_name.strip():
            content = f"[{tool_name}] {content}"
        self._chats[session_id].append(ChatMessage(role="tool", content=content))

    def clear(self, session_id: str | None = None) -> None:
        if session_id is None:
            self._chats.clear()
        else:
            self._chats.pop(session_id, None)

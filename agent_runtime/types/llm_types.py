# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from typing import Literal
from pydantic import BaseModel, Field

from .tool_types import ToolCall


class ChatMessage(BaseModel):
    """One turn of a session's conversation history."""

    role: Literal["system", "user", "assistant", "tool"]
    content: str

    def __str__(self) -> str:
        return f"{self.role}: {self.content}"


class ModelResponse(BaseModel):
    """A completion returned by a model backend.

    `proposed_calls` holds natively structured tool calls, when the backend
    supports them. The raw text is always present (possibly empty).
    """

    text: str = ""
    proposed_calls: list[ToolCall] = Field(default_factory=list)

# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import asyncio

from abc import ABC, abstractmethod
from typing import Any, ClassVar
from pydantic import BaseModel, Field


class ToolCall(BaseModel):
    """A single tool invocation requested by the model."""

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)

    def __str__(self):
        return f"{self.name}({self.arguments})"


class ToolInterface(ABC):
    """Abstract interface for all tools"""

    TOOL_NAME: ClassVar[str]
    TOOL_DESCRIPTION: ClassVar[str] = ""

    @property
    def name(self) -> str:
        return self.TOOL_NAME

    @property
    def description(self) -> str:
        return self.TOOL_DESCRIPTION

    @abstractmethod
    async def invoke(
        self, arguments: dict[str, Any], cancellation: asyncio.Event | None = None
    ) -> Any:
        """Execute the tool with model- or plan-provided arguments.

        The result may be any shape (dict, list, scalar, string or pydantic
        model). Tools are free to raise; callers treat exceptions as tool
        failures.
        """
        pass

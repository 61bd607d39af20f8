# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import time
import asyncio
import logging

from typing import Any, Awaitable, Callable, ClassVar
from pydantic import BaseModel, ValidationError

from ..types.tool_types import ToolInterface

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class ToolArgumentError(ValueError):
    """Raised when a tool receives arguments it cannot validate."""


class BaseTool(ToolInterface):
    """Base class for tools with pydantic-validated arguments.

    Subclasses set `TOOL_NAME`, `TOOL_DESCRIPTION` and optionally an
    `Arguments` model, and implement `run`. `invoke` validates the raw
    argument dict against `Arguments` before dispatching.
    """

    TOOL_NAME: ClassVar[str]
    TOOL_DESCRIPTION: ClassVar[str] = ""
    Arguments: ClassVar[type[BaseModel] | None] = None

    async def invoke(
        self, arguments: dict[str, Any], cancellation: asyncio.Event | None = None
    ) -> Any:
        args: Any = arguments
        if self.Arguments is not None:
            try:
                args = self.Arguments.model_validate(arguments)
            except ValidationError as e:
                raise ToolArgumentError(
                    f"Invalid arguments for {self.TOOL_NAME}: {e.error_count()} error(s)\n{e}"
                ) from e

        start = time.perf_counter()
        result = await self.run(args, cancellation)
        logger.debug(f"{self.TOOL_NAME} finished in {time.perf_counter() - start:.3f}s")
        return result

    async def run(self, args: Any, cancellation: asyncio.Event | None = None) -> Any:
        raise NotImplementedError

    @classmethod
    def parameters_schema(cls) -> dict:
        """JSON schema of the tool arguments, for native function calling."""
        if cls.Arguments is None:
            return {"type": "object", "properties": {}}
        return cls.Arguments.model_json_schema()


class FunctionTool(ToolInterface):
    """Adapts a plain async callable `fn(arguments, cancellation)` to a tool."""

    def __init__(
        self,
        name: str,
        fn: Callable[[dict[str, Any], asyncio.Event | None], Awaitable[Any]],
        description: str = "",
    ):
        self._name = name
        self._fn = fn
        self._description = description

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    async def invoke(
        self, arguments: dict[str, Any], cancellation: asyncio.Event | None = None
    ) -> Any:
        return await self._fn(arguments, cancellation)

    def __repr__(self) -> str:
        return f"FunctionTool({self._name!r})"

# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Name-to-tool lookup shared by the agent loop and the chain scheduler."""

import logging

from typing import Iterable, Iterator, Optional

from ..types.tool_types import ToolInterface

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Explicit collection of invocable tools, keyed by tool name.

    Registries are plain values: build one and hand it to each AgentLoop or
    ToolChainScheduler that should see those tools.
    """

    def __init__(self, tools: Iterable[ToolInterface] = ()):
        self._tools: dict[str, ToolInterface] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: ToolInterface, replace: bool = False) -> ToolInterface:
        """Add a tool. Registering a second tool under a taken name is an error
        unless `replace` is set."""
        name = tool.name
        if not name:
            raise ValueError(f"Tool {tool!r} has no name")
        if name in self._tools and not replace:
            raise ValueError(f"A tool named {name!r} is already registered")
        self._tools[name] = tool
        logger.debug(f"Registered tool {name}")
        return tool

    def unregister(self, name: str) -> Optional[ToolInterface]:
        return self._tools.pop(name, None)

    def get(self, name: str) -> Optional[ToolInterface]:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolInterface]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

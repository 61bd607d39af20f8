# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from ..tools.registry import ToolRegistry

SYSTEM_PROMPT_TEMPLATE = """You are an autonomous assistant that completes tasks by calling tools.

At each step, either call exactly one tool or give your final answer.

To call a tool, reply with a single JSON object and nothing else before it:
{{"tool": "<tool name>", "args": {{<arguments>}}}}

When the task is done, reply in plain text without any JSON object. That text
is your final answer.

Never repeat a tool call that already succeeded. If a tool reports that a file
was created, the task is complete.

Available tools:
{tool_list}
"""


def format_tool_list(registry: ToolRegistry) -> str:
    if not len(registry):
        return "(none)"
    lines = []
    for tool in registry:
        description = " ".join(tool.description.split()) or "No description."
        lines.append(f"- {tool.name}: {description}")
    return "\n".join(lines)


def build_system_prompt(registry: ToolRegistry) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(tool_list=format_tool_list(registry))

# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Extracts the single tool call (if any) from a model response."""

import copy
import json
import logging

from ..utils.parsing import extract_after_first
from ..types.llm_types import ModelResponse
from ..types.tool_types import ToolCall

logger = logging.getLogger(__name__)

_decoder = json.JSONDecoder()


def parse_tool_call(response: ModelResponse) -> ToolCall | None:
    """Return the first tool call carried by `response`, or None.

    Structured proposals win. Otherwise the text is sniffed for an inline
    object of the form {"tool": "<name>", "args": {...}} starting at the first
    '{'. None means "no tool call: the text is the final answer". Never raises.
    """
    try:
        if response.proposed_calls:
            first = response.proposed_calls[0]
            return ToolCall(name=first.name, arguments=copy.deepcopy(first.arguments))

        return _sniff_inline_call(response.text or "")
    except Exception as e:
        logger.debug(f"Ignoring unparsable tool call: {e}")
        return None


def _sniff_inline_call(text: str) -> ToolCall | None:
    candidate = extract_after_first(text, "{", keep_pattern=True)
    if not candidate:
        return None

    try:
        # raw_decode stops at the end of the first JSON value, so trailing
        # prose after the object is tolerated.
        root, _ = _decoder.raw_decode(candidate)
    except json.JSONDecodeError:
        return None

    if not isinstance(root, dict):
        return None
    name = root.get("tool")
    args = root.get("args")
    if isinstance(name, str) and isinstance(args, dict):
        return ToolCall(name=name, arguments=copy.deepcopy(args))
    return None

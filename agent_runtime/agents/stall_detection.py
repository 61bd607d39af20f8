# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Repetition detection over the recent tool calls of a run.

Two patterns are recognised:

- an exact repeat: the last three call signatures are identical;
- an alternation: the last six signatures read A, B, A, B, A, B with A != B.

Only period two is checked for alternation, and only over exactly six
entries. Longer cycles go undetected and are left to the step limit.
"""

import json

from enum import Enum
from typing import Optional
from collections import deque
from pydantic_core import to_jsonable_python

from ..types.tool_types import ToolCall

REPEAT_THRESHOLD = 3
ALTERNATION_LENGTH = 6


class StallKind(str, Enum):
    EXACT_REPEAT = "exact_repeat"
    ALTERNATION = "alternation"


def make_call_signature(call: ToolCall) -> str:
    """Canonical text form of a call. Argument key order does not matter.

    Arguments are first brought to plain JSON types, so non-string keys are
    compared by their text form.
    """
    arguments = to_jsonable_python(call.arguments, fallback=str)
    return json.dumps(
        {"name": call.name, "arguments": arguments},
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )


class StallDetector:
    """Rolling window of call signatures owned by a single run."""

    def __init__(self, window: int = 15):
        if window < ALTERNATION_LENGTH:
            raise ValueError(f"window must hold at least {ALTERNATION_LENGTH} signatures")
        self._signatures: deque[str] = deque(maxlen=window)

    @property
    def signatures(self) -> list[str]:
        return list(self._signatures)

    def push(self, call: ToolCall) -> Optional[StallKind]:
        """Record `call` and report whether the window now shows a stall."""
        self._signatures.append(make_call_signature(call))
        return self.check()

    def check(self) -> Optional[StallKind]:
        recent = self._signatures
        if len(recent) >= REPEAT_THRESHOLD:
            last = recent[-1]
            if all(recent[-i] == last for i in range(2, REPEAT_THRESHOLD + 1)):
                return StallKind.EXACT_REPEAT

        if len(recent) >= ALTERNATION_LENGTH:
            tail = list(recent)[-ALTERNATION_LENGTH:]
            a, b = tail[0], tail[1]
            if a != b and tail == [a, b] * (ALTERNATION_LENGTH // 2):
                return StallKind.ALTERNATION

        return None

    def clear(self) -> None:
        self._signatures.clear()


def describe_stall(kind: StallKind, call: ToolCall) -> str:
    """User-facing explanation used as the forced final answer."""
    if kind == StallKind.EXACT_REPEAT:
        return (
            f"⚠️ Detected stuck behavior: {call.name} called {REPEAT_THRESHOLD} times "
            "consecutively with identical arguments. Stopping to prevent an infinite loop.\n\n"
            "This usually means:\n"
            "- The tool is not returning the expected result\n"
            "- The task may already be complete\n"
            "- The request needs clarification or a different approach"
        )
    return (
        "⚠️ Detected repetitive pattern: Agent is cycling between the same two tool "
        "calls repeatedly. Stopping to prevent an infinite loop.\n\n"
        "The task may already be complete, or it may need a different approach."
    )

# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from .agent_loop import AgentLoop
from .cancellation import RunCancellationRegistry
from .stall_detection import StallDetector, StallKind, make_call_signature

__all__ = [
    "AgentLoop",
    "RunCancellationRegistry",
    "StallDetector",
    "StallKind",
    "make_call_signature",
]

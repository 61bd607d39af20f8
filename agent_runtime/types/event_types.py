# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from enum import Enum
from datetime import datetime
from dataclasses import field, dataclass


class EventType(Enum):
    STEP_START = "step_start"
    RAW_MODEL_OUTPUT = "raw_model_output"
    TOOL_START = "tool_start"
    TOOL_END = "tool_end"
    FINAL_ANSWER = "final_answer"
    FILE_CREATED = "file_created"
    TIMELINE = "timeline"  # free-form run timeline entries


@dataclass
class Event:
    """Base class for all events in the stream"""

    type: EventType
    content: str
    step: int = 0
    metadata: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def session_id(self) -> str | None:
        return self.metadata.get("session_id")

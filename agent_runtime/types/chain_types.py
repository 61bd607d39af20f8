# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from enum import Enum
from uuid import uuid4
from typing import Any, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class ToolChainStatus(str, Enum):
    """Lifecycle of a tool chain."""

    CREATED = "created"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ToolChainStepStatus(str, Enum):
    """Lifecycle of a single step. Transitions only move forward."""

    PENDING = "pending"
    READY = "ready"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


ACTIVE_STEP_STATUSES = frozenset(
    {ToolChainStepStatus.PENDING, ToolChainStepStatus.READY, ToolChainStepStatus.RUNNING}
)


class ToolChainStep(BaseModel):
    """A single tool invocation within a chain."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    depends_on: set[str] = Field(default_factory=set)
    output_variable: Optional[str] = None
    status: ToolChainStepStatus = ToolChainStepStatus.PENDING
    result: Any = None
    error: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def duration_ms(self) -> Optional[float]:
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds() * 1000
        return None


class ToolChain(BaseModel):
    """A declarative, dependency-ordered set of tool invocations."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str = ""
    status: ToolChainStatus = ToolChainStatus.CREATED
    steps: list[ToolChainStep] = Field(default_factory=list)
    variables: dict[str, Any] = Field(default_factory=dict)
    execution_log: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def get_step(self, step_id: str) -> Optional[ToolChainStep]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def has_active_steps(self) -> bool:
        return any(s.status in ACTIVE_STEP_STATUSES for s in self.steps)

    @property
    def is_terminal(self) -> bool:
        return self.status in (
            ToolChainStatus.COMPLETED,
            ToolChainStatus.FAILED,
            ToolChainStatus.CANCELLED,
        )

    @property
    def execution_seconds(self) -> float:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return 0.0

    def log(self, message: str) -> None:
        self.execution_log.append(f"[{datetime.now():%H:%M:%S}] {message}")

# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Data models for agent runs.

These dataclasses represent the core entities stored in the database.
"""

import json

from enum import Enum
from uuid import uuid4
from typing import Any, Optional
from datetime import datetime
from dataclasses import dataclass, field
from pydantic_core import to_jsonable_python

from ..types.common import LogLevel


class RunStatus(str, Enum):
    """Possible states of an agent run."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"  # cancellation signal observed by the loop


@dataclass
class Run:
    """
    One execution of the agent loop for a session.

    Mutated only by the loop that owns it; terminal once the status leaves
    IN_PROGRESS.
    """
    session_id: str
    id: str = field(default_factory=lambda: uuid4().hex)
    status: RunStatus = RunStatus.IN_PROGRESS
    started_at: datetime = field(default_factory=datetime.now)
    ended_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != RunStatus.IN_PROGRESS

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'session_id': self.session_id,
            'status': self.status.value,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'ended_at': self.ended_at.isoformat() if self.ended_at else None,
        }


@dataclass(frozen=True)
class StepRecord:
    """
    Append-only log entry for one loop iteration or tool invocation.

    Frozen: a record is never mutated after creation.
    """
    run_id: str
    step: int
    message: str
    level: LogLevel = LogLevel.INFO
    payload: Optional[str] = None  # JSON text
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'run_id': self.run_id,
            'step': self.step,
            'message': self.message,
            'level': self.level.value,
            'payload': json.loads(self.payload) if self.payload else None,
            'created_at': self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class Artifact:
    """A file produced by a tool during a run."""
    run_id: str
    file_name: str
    file_path: str
    mime_type: str = "application/octet-stream"
    size_bytes: int = 0
    download_url: Optional[str] = None
    kind: str = "file"
    id: str = field(default_factory=lambda: uuid4().hex)
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'run_id': self.run_id,
            'kind': self.kind,
            'file_name': self.file_name,
            'file_path': self.file_path,
            'download_url': self.download_url,
            'mime_type': self.mime_type,
            'size_bytes': self.size_bytes,
            'created_at': self.created_at.isoformat(),
        }


def payload_to_json(payload: Any) -> Optional[str]:
    """Serialise an arbitrary step payload, falling back to its repr."""
    if payload is None:
        return None
    try:
        return json.dumps(to_jsonable_python(payload, fallback=str))
    except (TypeError, ValueError):
        return json.dumps(str(payload))

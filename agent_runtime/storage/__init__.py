# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Run storage and conversation history.

This module provides persistent storage for runs, their step records and the
artifacts captured from tool results, plus the session history store.
"""

from .models import Run, RunStatus, StepRecord, Artifact
from .run_repository import RunRepository
from .chat_store import ChatStore, InMemoryChatStore

__all__ = [
    'Run',
    'RunStatus',
    'StepRecord',
    'Artifact',
    'RunRepository',
    'ChatStore',
    'InMemoryChatStore',
]

# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import asyncio
import logging

logger = logging.getLogger(__name__)


class RunCancellationRegistry:
    """Tracks one cancellation signal per running session.

    Registering a session that already has a live signal signals the old one
    first, so at most one run per session keeps going.
    """

    def __init__(self):
        self._signals: dict[str, asyncio.Event] = {}

    def register(self, session_id: str) -> asyncio.Event:
        previous = self._signals.get(session_id)
        if previous is not None:
            logger.info(f"Cancelling previous run of session {session_id}")
            previous.set()

        signal = asyncio.Event()
        self._signals[session_id] = signal
        return signal

    def cancel(self, session_id: str) -> bool:
        """Signal the session's run. Returns False when nothing is running."""
        signal = self._signals.get(session_id)
        if signal is None:
            return False
        signal.set()
        logger.info(f"Cancellation requested for session {session_id}")
        return True

    def complete(self, session_id: str, signal: asyncio.Event | None = None) -> None:
        """Forget the session's signal.

        When `signal` is given, only that exact signal is removed, so a
        finishing run does not drop a newer run's signal.
        """
        current = self._signals.get(session_id)
        if current is None:
            return
        if signal is None or current is signal:
            del self._signals[session_id]

    def is_running(self, session_id: str) -> bool:
        signal = self._signals.get(session_id)
        return signal is not None and not signal.is_set()

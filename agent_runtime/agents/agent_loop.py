# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
The single-session agent loop.

Each iteration asks the model backend what to do next, parses the response
into either a final answer or one tool call, and executes that call. The loop
ends on a final answer, a detected stall, the step limit, cancellation or an
unexpected error. Whatever the ending, the run is finalised exactly once.
"""

import json
import asyncio
import logging

from typing import Any, Iterable, Optional
from datetime import datetime
from pydantic_core import to_jsonable_python

from .prompts import build_system_prompt
from .stall_detection import StallDetector, describe_stall
from ..config import settings
from ..events import EventBus
from ..llm.base import ChatBackend
from ..storage.chat_store import ChatStore
from ..storage.models import Artifact, Run, RunStatus, StepRecord, payload_to_json
from ..storage.run_repository import RunRepository
from ..tools.artifact_extraction import extract_file_descriptors
from ..tools.registry import ToolRegistry
from ..tools.tool_call_parser import parse_tool_call
from ..types.common import LogLevel
from ..types.event_types import EventType
from ..types.tool_types import ToolCall
from ..utils.parsing import truncate

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

COMPLETION_HINT_TOOL = "SYSTEM_COMPLETION_HINT"
COMPLETION_MARKERS = ("filename", "downloadurl", "created")

COMPLETION_HINT = (
    "⚠️ The file was created SUCCESSFULLY. You must now:\n"
    "1. Briefly confirm which file was created\n"
    "2. Include the download link from the tool result\n"
    "3. Stop: do NOT call the creation tool again or try to improve the file\n"
    "Respond with plain text (not JSON) to complete the task."
)


def result_to_text(result: Any) -> str:
    """Textual form of a tool result, as stored in the chat history."""
    if result is None:
        return ""
    if isinstance(result, str):
        return result
    try:
        return json.dumps(to_jsonable_python(result, fallback=str))
    except (TypeError, ValueError):
        return str(result)


class AgentLoop:
    """
    Drives one session's model/tool conversation until it terminates.

    The loop is sequential: at most one tool call is in flight per run. A
    loop instance keeps no per-run state between calls to `run`, so one
    instance may serve many sessions one after another or concurrently.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        backend: ChatBackend,
        chat_store: ChatStore,
        repository: RunRepository,
        event_bus: Optional[EventBus] = None,
        max_steps: Optional[int] = None,
        creation_tools: Optional[Iterable[str]] = None,
        signature_window: Optional[int] = None,
        raw_output_limit: Optional[int] = None,
    ):
        self.registry = registry
        self.backend = backend
        self.chat_store = chat_store
        self.repository = repository
        self.event_bus = event_bus
        self.max_steps = max_steps if max_steps is not None else settings.max_steps
        self.creation_tools = frozenset(
            creation_tools if creation_tools is not None else settings.creation_tools
        )
        self.signature_window = signature_window or settings.signature_window
        self.raw_output_limit = raw_output_limit or settings.raw_output_limit

        if self.max_steps < 1:
            raise ValueError("max_steps must be at least 1")

    async def run(
        self,
        session_id: str,
        user_prompt: str,
        cancellation: Optional[asyncio.Event] = None,
    ) -> Run:
        """Execute a full run for `session_id` and return the finalised Run.

        Tool failures, stalls and the step limit never raise; an unexpected
        error marks the run FAILED instead of propagating. If the task running
        the loop is cancelled, the run is stored as CANCELLED and the
        CancelledError is re-raised.
        """
        bus = self.event_bus or await EventBus.get_instance()
        run = Run(session_id=session_id)
        await asyncio.to_thread(self.repository.create_run, run)
        logger.info(f"Run {run.id} started for session {session_id}")

        step = 0
        try:
            await self._timeline(bus, run, step, f"Run started: {run.id}", "info")
            await self.chat_store.append_user(session_id, user_prompt)

            system_prompt = build_system_prompt(self.registry)
            detector = StallDetector(self.signature_window)

            while run.status == RunStatus.IN_PROGRESS:
                if cancellation is not None and cancellation.is_set():
                    await self._cancel(bus, run, step)
                    break

                step += 1
                await self._iterate(bus, run, step, system_prompt, user_prompt, detector, cancellation)

                if run.status == RunStatus.IN_PROGRESS and step >= self.max_steps:
                    await self._limit_exceeded(bus, run, step)

        except asyncio.CancelledError:
            logger.warning(f"Run {run.id} interrupted at step {step}")
            run.status = RunStatus.CANCELLED
            await self._safe_record(run, step, "Run cancelled", LogLevel.WARNING)
            await self._safely(self._timeline(bus, run, step, "Run cancelled", "warning"))
            raise

        except Exception as e:
            logger.error(f"Run {run.id} failed: {e}", exc_info=True)
            run.status = RunStatus.FAILED
            message = f"Agent error: {e}"
            await self._safely(bus.emit(EventType.FINAL_ANSWER, session_id, step, message))
            await self._safely(self._timeline(bus, run, step, message, "error"))
            await self._safe_record(run, step, message, LogLevel.ERROR)

        finally:
            await self._finalise(bus, run, step)

        return run

    async def _iterate(
        self,
        bus: EventBus,
        run: Run,
        step: int,
        system_prompt: str,
        user_prompt: str,
        detector: StallDetector,
        cancellation: Optional[asyncio.Event],
    ) -> None:
        session_id = run.session_id
        history = await self.chat_store.load_history(session_id)

        await bus.emit(EventType.STEP_START, session_id, step, f"Step {step}")
        await self._record(run, step, f"Starting step {step}")

        logger.info(f"Requesting completion (run {run.id}, step {step})")
        response = await self.backend.complete(system_prompt, user_prompt, history, cancellation)
        logger.info(
            f"Received completion: {len(response.text)} chars, "
            f"{len(response.proposed_calls)} proposed call(s)"
        )

        if response.text.strip():
            await bus.emit(
                EventType.RAW_MODEL_OUTPUT,
                session_id,
                step,
                truncate(response.text, self.raw_output_limit),
            )

        call = parse_tool_call(response)
        if call is None:
            await self._finish(bus, run, step, response.text, LogLevel.SUCCESS)
            return

        stall = detector.push(call)
        if stall is not None:
            logger.warning(f"Stall detected in run {run.id}: {stall.value} on {call.name}")
            await self._finish(bus, run, step, describe_stall(stall, call), LogLevel.WARNING)
            return

        result = await self._execute_tool(bus, run, step, call, cancellation)
        result_text = result_to_text(result)

        await self.chat_store.append_assistant(session_id, response.text)
        await self.chat_store.append_tool_result(session_id, call.name, result_text)

        if result is not None and call.name in self.creation_tools:
            lowered = result_text.lower()
            if any(marker in lowered for marker in COMPLETION_MARKERS):
                logger.info(f"{call.name} created a file, injecting completion hint")
                await self.chat_store.append_tool_result(
                    session_id, COMPLETION_HINT_TOOL, COMPLETION_HINT
                )

    async def _execute_tool(
        self,
        bus: EventBus,
        run: Run,
        step: int,
        call: ToolCall,
        cancellation: Optional[asyncio.Event],
    ) -> Any:
        """Invoke one tool call. Returns None for unknown or failing tools."""
        session_id = run.session_id
        await self._record(run, step, f"Executing tool: {call.name}", payload=call.arguments)

        tool = self.registry.get(call.name)
        if tool is None:
            logger.warning(f"Model requested unknown tool {call.name}")
            await self._record(run, step, f"Unknown tool: {call.name}", LogLevel.ERROR)
            return None

        try:
            await bus.emit(
                EventType.TOOL_START,
                session_id,
                step,
                call.name,
                tool=call.name,
                arguments=call.arguments,
            )
            result = await tool.invoke(call.arguments, cancellation)
            await bus.emit(
                EventType.TOOL_END,
                session_id,
                step,
                truncate(result_to_text(result), self.raw_output_limit),
                tool=call.name,
            )
            await self._record(run, step, f"Tool executed: {call.name}", payload=result)
            await self._timeline(bus, run, step, f"Tool executed: {call.name}", "tool")
        except Exception as e:
            logger.error(f"Tool {call.name} failed: {e}", exc_info=True)
            await self._record(run, step, f"Tool failed: {call.name}: {e}", LogLevel.ERROR)
            return None

        await self._capture_artifacts(bus, run, step, call.name, result)
        return result

    async def _capture_artifacts(
        self, bus: EventBus, run: Run, step: int, tool_name: str, result: Any
    ) -> list[Artifact]:
        artifacts = []
        for descriptor in extract_file_descriptors(result):
            download_url = descriptor.download_url or f"/api/files/{descriptor.file_name}"
            artifact = Artifact(
                run_id=run.id,
                file_name=descriptor.file_name,
                file_path=descriptor.file_path,
                mime_type=descriptor.mime_type,
                size_bytes=descriptor.size_bytes,
                download_url=download_url,
            )
            await asyncio.to_thread(self.repository.create_artifact, artifact)
            artifacts.append(artifact)

            await self._record(
                run,
                step,
                f"Created artifact from {tool_name}: {artifact.file_name}",
                payload=artifact.to_dict(),
            )
            await bus.emit(
                EventType.FILE_CREATED,
                run.session_id,
                step,
                artifact.file_name,
                download_url=download_url,
                size_bytes=artifact.size_bytes,
                mime_type=artifact.mime_type,
                tool=tool_name,
            )
            await self._timeline(bus, run, step, f"Created {artifact.file_name}", "artifact")
        return artifacts

    async def _finish(
        self, bus: EventBus, run: Run, step: int, answer: str, level: LogLevel
    ) -> None:
        """Emit `answer` as the final answer and complete the run."""
        await bus.emit(EventType.FINAL_ANSWER, run.session_id, step, answer)
        await self.chat_store.append_assistant(run.session_id, answer)

        if level == LogLevel.SUCCESS:
            await self._record(run, step, f"Final Answer: {answer}", level)
            await self._timeline(bus, run, step, answer, "final")
        else:
            await self._record(run, step, answer, level)
            await self._timeline(bus, run, step, answer, "warning")
        run.status = RunStatus.COMPLETED

    async def _limit_exceeded(self, bus: EventBus, run: Run, step: int) -> None:
        logger.warning(f"Run {run.id} reached the step limit of {self.max_steps}")
        message = (
            f"⚠️ LIMIT EXCEEDED: Maximum steps ({self.max_steps}) reached. "
            "Task may be incomplete."
        )
        await self._finish(bus, run, step, message, LogLevel.WARNING)

    async def _cancel(self, bus: EventBus, run: Run, step: int) -> None:
        logger.info(f"Run {run.id} cancelled")
        await self._record(run, step, "Run cancelled", LogLevel.WARNING)
        await self._timeline(bus, run, step, "Run cancelled", "warning")
        run.status = RunStatus.CANCELLED

    async def _finalise(self, bus: EventBus, run: Run, step: int) -> None:
        run.ended_at = datetime.now()
        try:
            await asyncio.to_thread(self.repository.update_run, run)
        except Exception as e:
            logger.error(f"Could not persist final state of run {run.id}: {e}", exc_info=True)
        await self._safely(
            self._timeline(bus, run, step, f"Run ended: {run.status.value}", "info")
        )
        logger.info(f"Run {run.id} ended: {run.status.value}")

    async def _timeline(self, bus: EventBus, run: Run, step: int, message: str, kind: str) -> None:
        await bus.emit(EventType.TIMELINE, run.session_id, step, message, kind=kind)

    async def _record(
        self,
        run: Run,
        step: int,
        message: str,
        level: LogLevel = LogLevel.INFO,
        payload: Any = None,
    ) -> None:
        """Persist one step record. SQLite writes run off the event loop."""
        record = StepRecord(
            run_id=run.id,
            step=step,
            message=message,
            level=level,
            payload=payload_to_json(payload),
        )
        await asyncio.to_thread(self.repository.append_step_record, record)

    async def _safe_record(self, run: Run, step: int, message: str, level: LogLevel) -> None:
        try:
            await self._record(run, step, message, level)
        except Exception as e:
            logger.error(f"Could not record step for run {run.id}: {e}")

    @staticmethod
    async def _safely(awaitable) -> None:
        try:
            await awaitable
        except Exception as e:
            logger.error(f"Could not publish run event: {e}")

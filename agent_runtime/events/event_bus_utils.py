# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Utility functions for reading run views back off the event bus.

Note: these iterate over the full per-session event list. Runs are capped at a
few dozen steps, so this is not a concern.
"""

from .event_bus import EventBus
from ..types.event_types import EventType, Event


async def log_to_stdout(event: Event):
    """Print run events to stdout with compact formatting."""

    max_content_len = 60
    prefix_width = 16

    def truncate(text: str, length: int = max_content_len) -> str:
        text = text.replace("\n", " ")
        return f"{text[:length]}..." if len(text) > length else text

    def format_output(prefix: str, content: str, metadata: str = "") -> None:
        print(
            f"{prefix:<{prefix_width}s} => {content}{' | ' + metadata if metadata else ''}"
        )

    prefix = f"[{event.step:02d}] {event.type.value}"
    if event.type == EventType.TOOL_START:
        name = event.metadata.get("tool", "unknown tool")
        args = truncate(str(event.metadata.get("arguments", {})))
        format_output(prefix, f"{name}, {args}")
    elif event.type == EventType.FILE_CREATED:
        size = event.metadata.get("size_bytes", 0)
        format_output(prefix, event.content, f"{size} bytes, {event.metadata.get('download_url')}")
    elif event.type == EventType.TIMELINE:
        format_output(prefix, truncate(event.content), event.metadata.get("kind", ""))
    else:
        format_output(prefix, truncate(str(event.content)))


async def get_final_answers(session_id: str, bus: EventBus | None = None) -> list[str]:
    """Get every final answer emitted for a session, oldest first."""
    if bus is None:
        bus = await EventBus.get_instance()
    return [e.content for e in bus.get_events_by_type(EventType.FINAL_ANSWER, session_id)]


async def get_created_files(session_id: str, bus: EventBus | None = None) -> list[dict]:
    """Get the files announced for a session as name / url / size records."""
    if bus is None:
        bus = await EventBus.get_instance()
    return [
        {
            "file_name": e.content,
            "download_url": e.metadata.get("download_url"),
            "size_bytes": e.metadata.get("size_bytes", 0),
            "step": e.step,
        }
        for e in bus.get_events_by_type(EventType.FILE_CREATED, session_id)
    ]


async def get_timeline(session_id: str, bus: EventBus | None = None) -> list[tuple[str, str]]:
    """Get the (kind, message) timeline entries of a session."""
    if bus is None:
        bus = await EventBus.get_instance()
    return [
        (e.metadata.get("kind", ""), e.content)
        for e in bus.get_events_by_type(EventType.TIMELINE, session_id)
    ]

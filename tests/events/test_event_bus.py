# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Tests for the event bus module.

These tests verify the EventBus singleton, its publish/subscribe behaviour,
its per-session storage and the read-back helpers in event_bus_utils.
"""
import json
import pytest
from pathlib import Path
from unittest.mock import AsyncMock

from agent_runtime.events.event_bus import EventBus, EventEncoder
from agent_runtime.events.event_bus_utils import (
    get_created_files,
    get_final_answers,
    get_timeline,
    log_to_stdout,
)
from agent_runtime.types.event_types import EventType, Event

# Mark all tests as asyncio tests
pytestmark = pytest.mark.asyncio


async def test_singleton_pattern(event_bus):
    """Test that EventBus follows the singleton pattern."""
    instance1 = await EventBus.get_instance()
    instance2 = await EventBus.get_instance()

    assert instance1 is instance2
    assert instance1 is event_bus

    # Direct instantiation is prevented
    with pytest.raises(TypeError):
        EventBus()


async def test_publish_subscribe(event_bus):
    """Test basic publish and subscribe functionality."""
    mock_callback = AsyncMock()
    event_bus.subscribe(EventType.FINAL_ANSWER, mock_callback)

    event = Event(type=EventType.FINAL_ANSWER, content="Done")
    await event_bus.publish(event, "session-1")

    mock_callback.assert_called_once()
    called_event = mock_callback.call_args[0][0]
    assert called_event.type == EventType.FINAL_ANSWER
    assert called_event.content == "Done"

    # The session id is stamped onto the event
    assert called_event.session_id == "session-1"


async def test_subscribe_multiple_types(event_bus):
    """Test subscribing to multiple event types at once."""
    mock_callback = AsyncMock()
    event_types = {EventType.TOOL_START, EventType.TOOL_END}
    event_bus.subscribe(event_types, mock_callback)

    for event_type in event_types:
        await event_bus.emit(event_type, "session-1", 1, f"Test for {event_type.value}")

    assert mock_callback.call_count == len(event_types)


async def test_unsubscribe(event_bus):
    """Test unsubscribing from events."""
    mock_callback = AsyncMock()
    event_bus.subscribe(EventType.FINAL_ANSWER, mock_callback)
    event_bus.unsubscribe(EventType.FINAL_ANSWER, mock_callback)

    await event_bus.emit(EventType.FINAL_ANSWER, "session-1", 1, "Done")

    mock_callback.assert_not_called()


async def test_subscriber_failure_does_not_reach_publisher(event_bus):
    """A failing subscriber is logged and skipped; later subscribers still run."""
    failing = AsyncMock(side_effect=RuntimeError("subscriber exploded"))
    healthy = AsyncMock()
    event_bus.subscribe(EventType.TIMELINE, failing)
    event_bus.subscribe(EventType.TIMELINE, healthy)

    event = await event_bus.emit(EventType.TIMELINE, "session-1", 0, "Run started")

    failing.assert_called_once()
    healthy.assert_called_once()
    assert event_bus.get_events("session-1") == [event]


async def test_get_events_by_session(event_bus):
    """Events are stored per session in publication order."""
    await event_bus.emit(EventType.STEP_START, "s1", 1, "Step 1")
    await event_bus.emit(EventType.FINAL_ANSWER, "s1", 1, "Answer 1")
    await event_bus.emit(EventType.FINAL_ANSWER, "s2", 1, "Answer 2")

    s1_events = event_bus.get_events("s1")
    assert [e.content for e in s1_events] == ["Step 1", "Answer 1"]
    assert event_bus.get_events("unknown") == []


async def test_get_events_by_type(event_bus):
    """Test retrieving events by event type, across or within sessions."""
    await event_bus.emit(EventType.FINAL_ANSWER, "s1", 1, "Answer 1")
    await event_bus.emit(EventType.TOOL_START, "s1", 1, "calculate")
    await event_bus.emit(EventType.FINAL_ANSWER, "s2", 1, "Answer 2")

    answers = event_bus.get_events_by_type(EventType.FINAL_ANSWER)
    assert {e.content for e in answers} == {"Answer 1", "Answer 2"}

    s2_answers = event_bus.get_events_by_type(EventType.FINAL_ANSWER, "s2")
    assert [e.content for e in s2_answers] == ["Answer 2"]


async def test_event_encoder():
    """Test the custom JSON encoder for events."""
    event = Event(
        type=EventType.FILE_CREATED,
        content="report.md",
        step=3,
        metadata={"path": Path("/tmp/report.md"), "tags": {"b", "a"}},
    )

    data = json.loads(json.dumps(event, cls=EventEncoder))

    assert data["type"] == "file_created"
    assert data["content"] == "report.md"
    assert data["step"] == 3
    assert data["metadata"]["path"] == "/tmp/report.md"
    assert data["metadata"]["tags"] == ["a", "b"]


async def test_save_and_load_state(event_bus, tmp_path):
    """Test saving and loading event bus state."""
    await event_bus.emit(EventType.FINAL_ANSWER, "s1", 2, "Answer", kind="final")
    await event_bus.save_state(tmp_path)

    assert (tmp_path / "s1" / "events.json").exists()

    event_bus.clear()
    assert event_bus.get_events("s1") == []

    loaded = await EventBus.load_state(tmp_path)
    events = loaded.get_events("s1")
    assert len(events) == 1
    assert events[0].type == EventType.FINAL_ANSWER
    assert events[0].step == 2
    assert events[0].metadata["kind"] == "final"


async def test_read_back_helpers(event_bus):
    """The event_bus_utils helpers return session-scoped views."""
    await event_bus.emit(EventType.FINAL_ANSWER, "s1", 1, "The answer is 5")
    await event_bus.emit(
        EventType.FILE_CREATED,
        "s1",
        2,
        "report.md",
        download_url="/api/files/report.md",
        size_bytes=12,
    )
    await event_bus.emit(EventType.TIMELINE, "s1", 2, "Created report.md", kind="artifact")
    await event_bus.emit(EventType.FINAL_ANSWER, "s2", 1, "Other session")

    assert await get_final_answers("s1") == ["The answer is 5"]
    assert await get_created_files("s1", event_bus) == [
        {
            "file_name": "report.md",
            "download_url": "/api/files/report.md",
            "size_bytes": 12,
            "step": 2,
        }
    ]
    assert await get_timeline("s1") == [("artifact", "Created report.md")]


async def test_log_to_stdout(capsys):
    """Test the stdout logging subscriber formats tool calls compactly."""
    event = Event(
        type=EventType.TOOL_START,
        content="calculate",
        step=4,
        metadata={"tool": "calculate", "arguments": {"expression": "2 + 3"}},
    )
    await log_to_stdout(event)

    out = capsys.readouterr().out
    assert "[04] tool_start" in out
    assert "calculate" in out
    assert "2 + 3" in out

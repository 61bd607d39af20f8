# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Event bus module for run event emission."""

import json
import asyncio
import logging

from collections import defaultdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Any, ClassVar
from pydantic import BaseModel, PrivateAttr

from ..types.event_types import EventType, Event

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class EventEncoder(json.JSONEncoder):
    """JSON encoder for handling special types in event serialization."""
    def default(self, obj: Any) -> Any:
        if isinstance(obj, Event):
            return {
                "type": obj.type.value,
                "content": obj.content,
                "step": obj.step,
                "metadata": obj.metadata,
                "timestamp": obj.timestamp.isoformat(),
            }
        elif hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json")
        elif hasattr(obj, "to_dict"):
            return obj.to_dict()
        elif isinstance(obj, Enum):
            return obj.value
        elif isinstance(obj, datetime):
            return obj.isoformat()
        elif isinstance(obj, Path):
            return str(obj)
        elif isinstance(obj, set):
            return sorted(obj, key=str)
        return str(obj)


class EventBus(BaseModel):
    """
    Event sink for agent runs and tool chains.

    Features:
    - Publish/subscribe by event type
    - Per-session event storage
    - Event querying capabilities
    - State persistence

    Publishing never fails because of a subscriber: subscriber errors are
    logged and dropped, and the publisher receives no acknowledgement.
    """

    _instance: ClassVar[Optional["EventBus"]] = None
    _lock: ClassVar[Optional[asyncio.Lock]] = None

    _subscribers: Dict[EventType, List[Callable]] = PrivateAttr(
        default_factory=lambda: defaultdict(list)
    )
    _event_store: Dict[str, List[Event]] = PrivateAttr(default_factory=dict)

    class Config:
        arbitrary_types_allowed = True

    def __new__(cls) -> "EventBus":
        raise TypeError(
            "EventBus should not be instantiated directly. "
            "Use 'await EventBus.get_instance()' instead."
        )

    @classmethod
    async def get_instance(cls) -> "EventBus":
        """Get or create the process-wide default instance.

        Returns:
            The global EventBus instance.
        """
        if not cls._lock:
            cls._lock = asyncio.Lock()

        async with cls._lock:
            if not cls._instance:
                instance = super(EventBus, cls).__new__(cls)
                instance.__init__()
                cls._instance = instance
            return cls._instance

    async def publish(self, event: Event, session_id: str) -> None:
        """Publish an event to the bus.

        Args:
            event: The event to publish
            session_id: The session (or chain) the event belongs to
        """
        logger.debug(f"New event for {session_id}: {event.type} (step {event.step})")
        event.metadata["session_id"] = session_id

        if session_id not in self._event_store:
            self._event_store[session_id] = []
        self._event_store[session_id].append(event)

        for callback in list(self._subscribers[event.type]):
            try:
                await callback(event)
            except Exception as e:
                logger.error(f"Error in event subscriber {callback}: {e}")

    async def emit(
        self,
        event_type: EventType,
        session_id: str,
        step: int,
        content: str = "",
        **metadata: Any,
    ) -> Event:
        """Build and publish an event in one call."""
        event = Event(type=event_type, content=content, step=step, metadata=dict(metadata))
        await self.publish(event, session_id)
        return event

    def subscribe(
        self,
        event_type: EventType | set[EventType] | list[EventType] | tuple[EventType],
        callback: Callable,
    ) -> None:
        """Subscribe to events of a specific type.

        Args:
            event_type: Single EventType or collection of EventTypes to subscribe to
            callback: Async callback function for event handling
        """
        if isinstance(event_type, (set, list, tuple)):
            for et in event_type:
                self._subscribers[et].append(callback)
        else:
            self._subscribers[event_type].append(callback)

    def unsubscribe(
        self,
        event_type: EventType | set[EventType] | list[EventType] | tuple[EventType],
        callback: Callable,
    ) -> None:
        """Unsubscribe from events of a specific type."""
        event_types = event_type if isinstance(event_type, (set, list, tuple)) else [event_type]
        for et in event_types:
            if callback in self._subscribers[et]:
                self._subscribers[et].remove(callback)

    def get_events(self, session_id: str) -> List[Event]:
        """Get all events published for a session, in publication order."""
        return self._event_store.get(session_id, [])

    def get_events_by_type(
        self, event_type: EventType, session_id: str | None = None
    ) -> List[Event]:
        """Get all events of a specific type, across sessions unless one is given."""
        if session_id is not None:
            return [e for e in self.get_events(session_id) if e.type == event_type]
        events = []
        for session_events in self._event_store.values():
            events.extend([e for e in session_events if e.type == event_type])
        return events

    def clear(self) -> None:
        """Clear all events and subscribers (mainly for testing)."""
        self._event_store.clear()
        self._subscribers.clear()

    async def save_state(self, directory: Path) -> None:
        """Write each session's events to `<directory>/<session_id>/events.json`."""
        directory.mkdir(parents=True, exist_ok=True)
        for session_id, events in self._event_store.items():
            session_dir = directory / session_id
            session_dir.mkdir(exist_ok=True)
            (session_dir / "events.json").write_text(
                json.dumps(events, indent=2, cls=EventEncoder)
            )

    @staticmethod
    def _deserialize_event(data: dict) -> Event:
        return Event(
            type=EventType(data["type"]),
            content=data["content"],
            step=data.get("step", 0),
            metadata=data["metadata"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )

    @classmethod
    async def load_state(cls, directory: Path) -> "EventBus":
        """Load events previously written by `save_state` into the default instance."""
        instance = await cls.get_instance()
        if directory.exists():
            for session_dir in directory.iterdir():
                events_file = session_dir / "events.json"
                if session_dir.is_dir() and events_file.exists():
                    events_data = json.loads(events_file.read_text())
                    instance._event_store[session_dir.name] = [
                        cls._deserialize_event(e) for e in events_data
                    ]
        return instance

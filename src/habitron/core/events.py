"""Event bus for loose-coupled extensibility.

Provides a lightweight publish/subscribe system that lets the ingestion
pipeline report progress to a UI (or CLI) without a direct dependency on
it. Hooks can be sync or async.

Usage::

    from habitron.core.events import EventBus, Event, SYNC_PROGRESS

    bus = EventBus()

    def show_progress(event: Event) -> None:
        print(f"{event.payload['percent']}%")

    bus.on(SYNC_PROGRESS, show_progress)
    bus.emit_sync(Event(name=SYNC_PROGRESS, payload={"percent": 40}, source="resync"))
"""

from __future__ import annotations

import asyncio
import inspect
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from time import time
from typing import Any

from loguru import logger

# ---------------------------------------------------------------------------
# Well-known event names
# ---------------------------------------------------------------------------

SYNC_START = "sync-start"
SYNC_PROGRESS = "sync-progress"
SYNC_COMPLETE = "sync-complete"
FILE_INGESTED = "journal.file.ingested"
FILE_FAILED = "journal.file.failed"
WATCHER_STARTED = "watcher.started"
WATCHER_STOPPED = "watcher.stopped"
STARTUP = "startup"
SHUTDOWN = "shutdown"

# Type alias for hook callables (sync or async)
Hook = Any  # Callable[[Event], None] | Callable[[Event], Awaitable[None]]


# ---------------------------------------------------------------------------
# Event model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Event:
    """An immutable event that flows through the bus."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time)
    source: str = ""


# ---------------------------------------------------------------------------
# EventBus
# ---------------------------------------------------------------------------


class EventBus:
    """Simple pub/sub event bus supporting sync and async hooks.

    Registration is guarded by a lock because pipeline threads emit while
    the UI thread may still be subscribing.
    """

    def __init__(self) -> None:
        self._hooks: dict[str, list[Hook]] = defaultdict(list)
        self._wildcard_hooks: list[Hook] = []
        self._lock = threading.Lock()
        self._background_tasks: set[asyncio.Task] = set()  # prevent GC of fire-and-forget tasks

    def on(self, event_name: str, hook: Hook) -> None:
        """Register *hook* for a specific event name."""
        with self._lock:
            self._hooks[event_name].append(hook)

    def on_all(self, hook: Hook) -> None:
        """Register *hook* for all events (wildcard)."""
        with self._lock:
            self._wildcard_hooks.append(hook)

    def off(self, event_name: str, hook: Hook) -> None:
        """Unregister *hook* from a specific event name."""
        with self._lock:
            try:
                self._hooks[event_name].remove(hook)
            except ValueError:
                pass

    def _hooks_for(self, event_name: str) -> list[Hook]:
        with self._lock:
            hooks = list(self._hooks.get(event_name, []))
            hooks.extend(self._wildcard_hooks)
        return hooks

    async def emit(self, event: Event) -> None:
        """Emit an event, running all matching hooks (async)."""
        for hook in self._hooks_for(event.name):
            try:
                if inspect.iscoroutinefunction(hook):
                    await hook(event)
                else:
                    hook(event)
            except Exception as exc:
                logger.warning(f"Event hook failed for {event.name}: {exc}")

    def emit_sync(self, event: Event) -> None:
        """Emit from a sync context (pipeline threads).

        If a running event loop exists, schedules async hooks as tasks.
        Otherwise, only runs sync hooks (async hooks are skipped).
        """
        loop: asyncio.AbstractEventLoop | None = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            pass

        for hook in self._hooks_for(event.name):
            try:
                if inspect.iscoroutinefunction(hook):
                    if loop is not None:
                        task = loop.create_task(hook(event))
                        self._background_tasks.add(task)
                        task.add_done_callback(self._background_tasks.discard)
                    else:
                        logger.debug(f"Skipping async hook {hook!r}: no running event loop")
                else:
                    hook(event)
            except Exception as exc:
                logger.warning(f"Event hook failed for {event.name}: {exc}")

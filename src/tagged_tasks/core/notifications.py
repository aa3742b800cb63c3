"""Change notifications emitted after a successful store commit.

Listeners are plain callables registered on a ``ChangeNotifier``. Delivery is
fire-and-forget: a listener that raises is logged and skipped, and never
affects the outcome of the commit that triggered it. Debouncing is left to
the consumer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    TASKS_UPDATED = "TASKS_UPDATED"
    TASK_FILE_ADDED = "TASK_FILE_ADDED"
    TASK_FILE_DELETED = "TASK_FILE_DELETED"


@dataclass(frozen=True)
class ChangeEvent:
    """A single change notification.

    ``kind`` and ``path`` are always present; the remaining fields describe
    the operation that caused a ``TASKS_UPDATED`` event.
    """

    kind: ChangeKind
    path: str
    tag: Optional[str] = None
    operation: Optional[str] = None
    affected_ids: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind.value, "path": self.path}
        if self.tag is not None:
            data["tag"] = self.tag
        if self.operation is not None:
            data["operation"] = self.operation
        if self.affected_ids:
            data["affected_ids"] = list(self.affected_ids)
        return data


ChangeListener = Callable[[ChangeEvent], None]


class ChangeNotifier:
    """Registry of change listeners.

    Usage::

        notifier = ChangeNotifier()
        unsubscribe = notifier.register(lambda event: print(event.to_dict()))
        notifier.emit(ChangeEvent(ChangeKind.TASKS_UPDATED, "tasks.json"))
        unsubscribe()
    """

    def __init__(self, listeners: Optional[Sequence[ChangeListener]] = None) -> None:
        self._listeners: List[ChangeListener] = list(listeners or [])

    def register(self, listener: ChangeListener) -> Callable[[], None]:
        """Add a listener; returns a callable that removes it again."""
        self._listeners.append(listener)

        def _unregister() -> None:
            self.unregister(listener)

        return _unregister

    def unregister(self, listener: ChangeListener) -> bool:
        try:
            self._listeners.remove(listener)
            return True
        except ValueError:
            return False

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def emit(self, event: ChangeEvent) -> int:
        """Deliver ``event`` to every listener.

        Returns:
            Number of listeners that handled the event without raising
        """
        delivered = 0
        for listener in list(self._listeners):
            try:
                listener(event)
                delivered += 1
            except Exception:
                logger.warning(
                    "Change listener %r failed for %s event on %s",
                    listener,
                    event.kind.value,
                    event.path,
                    exc_info=True,
                )
        return delivered

    def emit_all(self, events: Sequence[ChangeEvent]) -> int:
        return sum(self.emit(event) for event in events)

"""Event bus recorder for tests."""

from typing import Any, Optional

from paymirror.core.events import EventBus
from paymirror.core.shared_models import EntityKind, Transition


class EventRecorder:
    """Subscribes to every kind and transition and keeps what it receives."""

    def __init__(self, bus: EventBus):
        self.events: list[tuple[EntityKind, Transition, tuple[Any, ...]]] = []
        for kind in EntityKind:
            for transition in Transition:
                bus.subscribe(kind, transition, self._recorder(kind, transition))

    def _recorder(self, kind: EntityKind, transition: Transition):
        def record(*args: Any) -> None:
            self.events.append((kind, transition, args))

        return record

    def of(
        self, kind: Optional[EntityKind] = None, transition: Optional[Transition] = None
    ) -> list[tuple[Any, ...]]:
        """Arguments of the recorded notifications matching the filters."""
        return [
            args
            for k, t, args in self.events
            if (kind is None or k == kind) and (transition is None or t == transition)
        ]

    def clear(self) -> None:
        """Forget everything recorded so far."""
        self.events.clear()

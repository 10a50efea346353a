"""In-process notifications about mirror changes."""

import inspect
from collections import defaultdict
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel

from paymirror.core.logging import LoggerConfigurator
from paymirror.core.shared_models import EntityKind, Transition

logger = LoggerConfigurator.configure_logger(__name__, dimensions={"component": "event_bus"})

AddedCallback = Callable[[BaseModel], Union[None, Awaitable[None]]]
UpdatedCallback = Callable[[BaseModel, BaseModel], Union[None, Awaitable[None]]]
RemovedCallback = Callable[[BaseModel], Union[None, Awaitable[None]]]
Callback = Callable[..., Union[None, Awaitable[None]]]


class EventBus:
    """Observer registry keyed by entity kind and transition.

    Callbacks run inline, in registration order, when the mirror commits a
    change. ``added`` and ``removed`` callbacks receive one snapshot, ``updated``
    callbacks receive the previous and the new snapshot. Coroutine functions are
    awaited. A callback that raises is logged and skipped; it never affects the
    write that triggered it or the other callbacks.

    Examples:
    --------
    ```python
    bus = EventBus()
    unsubscribe = bus.on_removed(EntityKind.SUBSCRIPTION, revoke_access)
    ```

    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._callbacks: dict[tuple[EntityKind, Transition], list[Callback]] = defaultdict(list)

    def subscribe(
        self, kind: EntityKind, transition: Transition, callback: Callback
    ) -> Callable[[], None]:
        """Register a callback and return a function that unregisters it."""
        key = (kind, transition)
        self._callbacks[key].append(callback)

        def unsubscribe() -> None:
            try:
                self._callbacks[key].remove(callback)
            except ValueError:
                pass

        return unsubscribe

    def on_added(self, kind: EntityKind, callback: AddedCallback) -> Callable[[], None]:
        """Subscribe to rows of ``kind`` being inserted."""
        return self.subscribe(kind, Transition.ADDED, callback)

    def on_updated(self, kind: EntityKind, callback: UpdatedCallback) -> Callable[[], None]:
        """Subscribe to rows of ``kind`` changing; called with (previous, new)."""
        return self.subscribe(kind, Transition.UPDATED, callback)

    def on_removed(self, kind: EntityKind, callback: RemovedCallback) -> Callable[[], None]:
        """Subscribe to rows of ``kind`` being deleted; called with the last snapshot."""
        return self.subscribe(kind, Transition.REMOVED, callback)

    def subscriber_count(self, kind: EntityKind, transition: Optional[Transition] = None) -> int:
        """Number of callbacks registered for ``kind`` (and ``transition`` if given)."""
        transitions = [transition] if transition else list(Transition)
        return sum(len(self._callbacks.get((kind, t), [])) for t in transitions)

    async def publish_added(self, kind: EntityKind, snapshot: BaseModel) -> None:
        """Notify that a row was inserted."""
        await self._publish(kind, Transition.ADDED, snapshot)

    async def publish_updated(
        self, kind: EntityKind, previous: BaseModel, current: BaseModel
    ) -> None:
        """Notify that a row changed."""
        await self._publish(kind, Transition.UPDATED, previous, current)

    async def publish_removed(self, kind: EntityKind, snapshot: BaseModel) -> None:
        """Notify that a row was deleted."""
        await self._publish(kind, Transition.REMOVED, snapshot)

    async def _publish(self, kind: EntityKind, transition: Transition, *args: Any) -> None:
        # Copy so callbacks may unsubscribe while being notified
        for callback in list(self._callbacks.get((kind, transition), [])):
            try:
                result = callback(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.with_context(entity_kind=kind.value, transition=transition.value).error(
                    f"Event callback {getattr(callback, '__qualname__', callback)!r} failed: {e}",
                    exc_info=True,
                )

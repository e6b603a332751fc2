"""
Background refresh triggers: a recurring interval and window-focus events.

Both are explicit subscriptions owned by the fetcher or aggregate that
started them and are torn down when it is disposed.
"""

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Set

from shared.logging import get_logger


class Refreshable(Protocol):
    """What a trigger needs from the thing it refreshes."""

    async def refetch(self, hard: bool = False) -> Any: ...

    def is_stale(self) -> bool: ...


class Subscription:
    """Handle returned by :meth:`FocusEventSource.subscribe`."""

    def __init__(self, source: "FocusEventSource", callback: Callable[[], None]):
        self._source = source
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._source._remove(self)


class FocusEventSource:
    """Window focus events, emitted by the display layer."""

    def __init__(self):
        self.logger = get_logger("dashboard.triggers.focus")
        self._subscriptions: List[Subscription] = []

    def subscribe(self, callback: Callable[[], None]) -> Subscription:
        subscription = Subscription(self, callback)
        self._subscriptions.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def emit(self) -> int:
        """Notify every current subscriber. Returns how many were notified."""
        notified = 0
        for subscription in list(self._subscriptions):
            try:
                subscription.callback()
                notified += 1
            except Exception as e:
                self.logger.error("Focus handler failed", error=str(e))
        return notified


class IntervalTrigger:
    """Runs ``callback`` every ``interval`` seconds until stopped."""

    def __init__(self, interval: float, callback: Callable[[], Awaitable[Any]], name: str = "interval"):
        self.interval = interval
        self.callback = callback
        self.name = name
        self.logger = get_logger(f"dashboard.triggers.{name}")

        self.task: Optional[asyncio.Task] = None
        self.running = False
        self.runs = 0

    async def start(self):
        if self.running:
            return
        self.running = True
        self.task = asyncio.create_task(self._loop())
        self.logger.debug("Interval trigger started", interval=self.interval)

    async def stop(self):
        self.running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
            self.task = None

    async def _loop(self):
        while self.running:
            try:
                await asyncio.sleep(self.interval)
                self.runs += 1
                await self.callback()
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.logger.error("Error in interval refresh", error=str(e))


class AutoRefresh:
    """Interval and focus refresh for one :class:`Refreshable`.

    The interval refetches unconditionally. Focus only refetches when the
    target reports stale data.
    """

    def __init__(
        self,
        target: Refreshable,
        *,
        name: str,
        focus_source: Optional[FocusEventSource] = None,
        refetch_interval: Optional[float] = None,
        refetch_on_focus: bool = True,
    ):
        self.target = target
        self.name = name
        self.focus_source = focus_source
        self.refetch_interval = refetch_interval
        self.refetch_on_focus = refetch_on_focus
        self.logger = get_logger("dashboard.triggers.auto_refresh")

        self.interval: Optional[IntervalTrigger] = None
        self.subscription: Optional[Subscription] = None
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def in_flight(self) -> Set[asyncio.Task]:
        """Focus-triggered refetches that have not finished yet."""
        return set(self._in_flight)

    async def start(self):
        if self.refetch_interval and self.interval is None:
            self.interval = IntervalTrigger(self.refetch_interval, self.target.refetch, name=self.name)
            await self.interval.start()

        if self.focus_source is not None and self.refetch_on_focus and self.subscription is None:
            self.subscription = self.focus_source.subscribe(self._on_focus)

    async def stop(self):
        if self.subscription is not None:
            self.subscription.unsubscribe()
            self.subscription = None

        if self.interval is not None:
            await self.interval.stop()
            self.interval = None

    def _on_focus(self) -> None:
        if not self.target.is_stale():
            self.logger.debug("Focus refetch skipped, data is fresh", target=self.name)
            return

        self.logger.debug("Focus refetch scheduled", target=self.name)
        task = asyncio.create_task(self.target.refetch())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

from __future__ import annotations

import asyncio
import collections.abc
import enum
import typing

from loguru import logger

from php_sniffer import config, domain
from php_sniffer.events import Disposable, EditorEvents

T = typing.TypeVar("T")


class DebouncerState(enum.Enum):
    IDLE = enum.auto()
    PENDING = enum.auto()


class Debouncer(typing.Generic[T]):
    """
    Collapses a burst of pushed payloads into one call of `callback` with the latest
    payload after `delay_ms` without new pushes.

    IDLE --push--> PENDING(deadline) --push--> PENDING(new deadline)
    PENDING --deadline--> IDLE (callback is called)
    PENDING --cancel--> IDLE
    """

    def __init__(
        self, delay_ms: int, callback: collections.abc.Callable[[T], typing.Any]
    ) -> None:
        self.delay_ms = delay_ms
        self._callback = callback
        self._timer: asyncio.TimerHandle | None = None
        self._payload: T | None = None
        self._deadline: float | None = None

    @property
    def state(self) -> DebouncerState:
        return DebouncerState.IDLE if self._timer is None else DebouncerState.PENDING

    @property
    def pending(self) -> T | None:
        return self._payload

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def push(self, payload: T) -> None:
        if self._timer is not None:
            self._timer.cancel()

        loop = asyncio.get_running_loop()
        delay_sec = self.delay_ms / 1000
        self._payload = payload
        self._deadline = loop.time() + delay_sec
        self._timer = loop.call_later(delay_sec, self._fire)

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._reset()

    def _fire(self) -> None:
        payload = self._payload
        self._reset()
        self._callback(typing.cast(T, payload))

    def _reset(self) -> None:
        self._timer = None
        self._payload = None
        self._deadline = None


class TriggerScheduler:
    """
    Decides when documents are validated: directly after save or after a quiet
    period of typing. Exactly one subscription is installed at a time.
    """

    def __init__(
        self,
        events: EditorEvents,
        settings_provider: config.SettingsProvider,
        on_trigger: collections.abc.Callable[[domain.DocumentSnapshot], typing.Any],
    ) -> None:
        self._events = events
        self._settings_provider = settings_provider
        self._on_trigger = on_trigger

        self._subscription: Disposable | None = None
        # one debouncer per document: typing in one document doesn't postpone
        # validation of another one
        self._debouncers: dict[domain.DocumentIdentity, Debouncer[domain.DocumentSnapshot]] = {}
        self.mode: config.TriggerMode | None = None
        self.delay_ms: int = 0

    async def reconfigure(self) -> None:
        settings = await self._settings_provider.get_settings(None)
        run_config = settings.run_config()

        # no suspension points below: concurrent reconfigure calls must not leave
        # two subscriptions installed
        self._teardown()
        self.mode = run_config.trigger_mode
        self.delay_ms = run_config.debounce_delay_ms
        if run_config.trigger_mode == config.TriggerMode.ON_TYPE:
            self._subscription = self._events.did_change.subscribe(self._on_change)
        else:
            self._subscription = self._events.did_save.subscribe(self._on_trigger)

        logger.debug(f"Validate {self.mode.value}, delay: {self.delay_ms} ms")

    def forget(self, uri: domain.DocumentIdentity) -> None:
        debouncer = self._debouncers.pop(uri, None)
        if debouncer is not None:
            debouncer.cancel()

    def dispose(self) -> None:
        self._teardown()
        self.mode = None

    def _on_change(self, snapshot: domain.DocumentSnapshot) -> None:
        debouncer = self._debouncers.get(snapshot.uri)
        if debouncer is None:
            debouncer = Debouncer(self.delay_ms, self._on_trigger)
            self._debouncers[snapshot.uri] = debouncer
        debouncer.push(snapshot)

    def _teardown(self) -> None:
        if self._subscription is not None:
            self._subscription.dispose()
            self._subscription = None

        for debouncer in self._debouncers.values():
            debouncer.cancel()
        self._debouncers.clear()


__all__ = ["DebouncerState", "Debouncer", "TriggerScheduler"]

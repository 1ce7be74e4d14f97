from __future__ import annotations

import collections.abc
import typing

from loguru import logger

from php_sniffer import domain

T = typing.TypeVar("T")


class Disposable:
    def __init__(self, release: collections.abc.Callable[[], None] | None = None) -> None:
        self._release = release

    @property
    def disposed(self) -> bool:
        return self._release is None

    def dispose(self) -> None:
        release, self._release = self._release, None
        if release is not None:
            release()


class EventEmitter(typing.Generic[T]):
    """
    Explicit registration of listeners. Each subscription returns a Disposable owned
    by the subscriber, there are no ambient global listeners.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._listeners: list[collections.abc.Callable[[T], typing.Any]] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: collections.abc.Callable[[T], typing.Any]) -> Disposable:
        self._listeners.append(listener)

        def release() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                logger.trace(f"Listener of {self.name} was already removed")

        return Disposable(release)

    def fire(self, value: T) -> None:
        # copy: listeners can unsubscribe or subscribe while event is delivered
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception as exception:
                logger.error(f"Listener of {self.name} failed")
                logger.exception(exception)


class EditorEvents:
    def __init__(self) -> None:
        self.did_open: EventEmitter[domain.DocumentSnapshot] = EventEmitter("did_open")
        self.did_change: EventEmitter[domain.DocumentSnapshot] = EventEmitter(
            "did_change"
        )
        self.did_save: EventEmitter[domain.DocumentSnapshot] = EventEmitter("did_save")
        self.did_close: EventEmitter[domain.DocumentSnapshot] = EventEmitter(
            "did_close"
        )
        self.did_change_configuration: EventEmitter[
            domain.ConfigurationChangeEvent
        ] = EventEmitter("did_change_configuration")
        self.did_change_workspace_folders: EventEmitter[None] = EventEmitter(
            "did_change_workspace_folders"
        )


class DisposableStack:
    def __init__(self) -> None:
        self._disposables: list[Disposable] = []

    def push(self, disposable: Disposable) -> None:
        self._disposables.append(disposable)

    def dispose(self) -> None:
        while self._disposables:
            self._disposables.pop().dispose()


__all__ = ["Disposable", "DisposableStack", "EventEmitter", "EditorEvents"]

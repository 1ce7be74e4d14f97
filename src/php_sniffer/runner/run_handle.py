from __future__ import annotations

import collections.abc

from loguru import logger

from php_sniffer import domain
from php_sniffer.events import Disposable


class CancellationToken:
    def __init__(self) -> None:
        self._cancellation_requested = False
        self._callbacks: list[collections.abc.Callable[[], None]] = []

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancellation_requested

    def on_cancellation_requested(
        self, callback: collections.abc.Callable[[], None]
    ) -> Disposable:
        if self._cancellation_requested:
            # too late to register, cancellation already happened
            callback()
            return Disposable()

        self._callbacks.append(callback)

        def release() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return Disposable(release)

    def _cancel(self) -> None:
        if self._cancellation_requested:
            return
        self._cancellation_requested = True

        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as exception:
                logger.error("Cancellation callback failed")
                logger.exception(exception)

    def _drop_callbacks(self) -> None:
        self._callbacks = []


class RunHandle:
    """
    Ownership and cancellation token of one validation run of one document.

    Disposing doesn't reset cancellation: a cancelled run stays cancelled and its
    results are discarded.
    """

    def __init__(self, uri: domain.DocumentIdentity) -> None:
        self.uri = uri
        self.token = CancellationToken()
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def cancelled(self) -> bool:
        return self.token.is_cancellation_requested

    def cancel(self) -> None:
        if self._disposed:
            return
        logger.trace(f"Cancel run of {self.uri}")
        self.token._cancel()

    def dispose(self) -> None:
        self._disposed = True
        self.token._drop_callbacks()

    def __repr__(self) -> str:
        return (
            f'RunHandle(uri="{self.uri}", cancelled={self.cancelled},'
            f" disposed={self._disposed})"
        )


__all__ = ["CancellationToken", "RunHandle"]

from __future__ import annotations

import collections.abc

from loguru import logger

from php_sniffer import domain
from php_sniffer.report import Diagnostic

# rendering surface: gets full list of diagnostics of the document, empty list
# means no diagnostics anymore
DiagnosticsPublisher = collections.abc.Callable[
    [domain.DocumentIdentity, list[Diagnostic]], None
]


class DiagnosticStore:
    def __init__(self, publisher: DiagnosticsPublisher | None = None) -> None:
        self._publisher = publisher
        self._diagnostics_by_uri: dict[domain.DocumentIdentity, list[Diagnostic]] = {}

    def set(self, uri: domain.DocumentIdentity, diagnostics: list[Diagnostic]) -> None:
        # replace, never merge
        self._diagnostics_by_uri[uri] = list(diagnostics)
        logger.trace(f"Set {len(diagnostics)} diagnostics of {uri}")
        self._publish(uri, self._diagnostics_by_uri[uri])

    def clear(self, uri: domain.DocumentIdentity) -> None:
        try:
            del self._diagnostics_by_uri[uri]
        except KeyError:
            return
        logger.trace(f"Cleared diagnostics of {uri}")
        self._publish(uri, [])

    def clear_all(self) -> None:
        uris = list(self._diagnostics_by_uri.keys())
        self._diagnostics_by_uri.clear()
        for uri in uris:
            self._publish(uri, [])

    def get(self, uri: domain.DocumentIdentity) -> list[Diagnostic] | None:
        diagnostics = self._diagnostics_by_uri.get(uri)
        return list(diagnostics) if diagnostics is not None else None

    def __contains__(self, uri: object) -> bool:
        return uri in self._diagnostics_by_uri

    def __iter__(self) -> collections.abc.Iterator[domain.DocumentIdentity]:
        return iter(list(self._diagnostics_by_uri.keys()))

    def __len__(self) -> int:
        return len(self._diagnostics_by_uri)

    def _publish(
        self, uri: domain.DocumentIdentity, diagnostics: list[Diagnostic]
    ) -> None:
        if self._publisher is None:
            return

        try:
            self._publisher(uri, list(diagnostics))
        except Exception as exception:
            logger.error(f"Failed to publish diagnostics of {uri}")
            logger.exception(exception)


__all__ = ["DiagnosticStore", "DiagnosticsPublisher"]

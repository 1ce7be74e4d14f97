from __future__ import annotations

import asyncio
import collections.abc
import typing
from typing import TYPE_CHECKING, Any

from loguru import logger
from lsprotocol import types

from php_sniffer import config, domain
from php_sniffer.events import EditorEvents

if TYPE_CHECKING:
    from pygls.lsp.server import LanguageServer
    from pygls.workspace import TextDocument

# lsp client requests have no timeout, add own one
CONFIGURATION_REQUEST_TIMEOUT: typing.Final[float] = 10


def document_to_snapshot(document: TextDocument) -> domain.DocumentSnapshot:
    return domain.DocumentSnapshot(
        uri=document.uri,
        language_id=document.language_id or "",
        text=document.source,
        version=document.version,
    )


class LspEditor:
    """Documents, workspace folders and events of the LSP client."""

    def __init__(self, server: LanguageServer) -> None:
        self._server = server
        self.events = EditorEvents()

    def snapshot(self, uri: str) -> domain.DocumentSnapshot:
        return document_to_snapshot(self._server.workspace.get_text_document(uri))

    def open_documents(self) -> list[domain.DocumentSnapshot]:
        return [
            document_to_snapshot(document)
            for document in self._server.workspace.text_documents.values()
        ]

    def workspace_folder_uris(self) -> list[str]:
        folder_uris = [folder.uri for folder in self._server.workspace.folders.values()]
        if len(folder_uris) == 0 and self._server.workspace.root_uri is not None:
            folder_uris.append(self._server.workspace.root_uri)
        return folder_uris


class LspSettingsProvider:
    def __init__(self, server: LanguageServer) -> None:
        self._server = server
        # settings from `workspace/didChangeConfiguration`, used if client doesn't
        # support `workspace/configuration` request
        self.pushed_settings: Any = None

    @property
    def supports_configuration_request(self) -> bool:
        workspace_capabilities = self._server.client_capabilities.workspace
        return (
            workspace_capabilities is not None
            and workspace_capabilities.configuration is True
        )

    def update_pushed_settings(self, settings: Any) -> None:
        if isinstance(settings, collections.abc.Mapping) and config.SECTION in settings:
            self.pushed_settings = settings[config.SECTION]

    async def get_raw_settings(self, scope_uri: str | None = None) -> Any:
        if not self.supports_configuration_request:
            return self.pushed_settings

        params = types.ConfigurationParams(
            items=[types.ConfigurationItem(scope_uri=scope_uri, section=config.SECTION)]
        )
        try:
            result = await asyncio.wait_for(
                self._server.workspace_configuration_async(params),
                CONFIGURATION_REQUEST_TIMEOUT,
            )
        except TimeoutError:
            logger.error(f"Client didn't send {config.SECTION} settings in time")
            return self.pushed_settings
        except Exception as exception:
            logger.error(f"Failed to get {config.SECTION} settings: {exception}")
            return self.pushed_settings

        if not result:
            return None
        return result[0]

    async def get_settings(self, scope_uri: str | None = None) -> config.SnifferSettings:
        raw_settings = await self.get_raw_settings(scope_uri)
        return config.SnifferSettings.from_raw(raw_settings)


__all__ = ["LspEditor", "LspSettingsProvider", "document_to_snapshot"]

# wrap all endpoint handlers in try/except because pygls only sends errors to client
# and don't log it locally
from __future__ import annotations

import asyncio
import typing
import uuid
from functools import partial

from loguru import logger
from lsprotocol import types
from pygls.lsp.server import LanguageServer

from php_sniffer import __version__, config, domain, report, user_messages
from php_sniffer.diagnostics_store import DiagnosticStore
from php_sniffer.server import global_state
from php_sniffer.server.editor import LspEditor, LspSettingsProvider
from php_sniffer.validator import Validator


def create_lsp_server() -> LanguageServer:
    server = LanguageServer("PHP_Sniffer_Server", f"v{__version__}")

    register_initialized_feature = server.feature(types.INITIALIZED)
    register_initialized_feature(_on_initialized)

    register_workspace_dirs_feature = server.feature(
        types.WORKSPACE_DID_CHANGE_WORKSPACE_FOLDERS
    )
    register_workspace_dirs_feature(_workspace_did_change_workspace_folders)

    register_configuration_feature = server.feature(
        types.WORKSPACE_DID_CHANGE_CONFIGURATION
    )
    register_configuration_feature(_workspace_did_change_configuration)

    # linting
    register_document_did_open_feature = server.feature(types.TEXT_DOCUMENT_DID_OPEN)
    register_document_did_open_feature(_document_did_open)

    register_document_did_change_feature = server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
    register_document_did_change_feature(_document_did_change)

    register_document_did_save_feature = server.feature(types.TEXT_DOCUMENT_DID_SAVE)
    register_document_did_save_feature(_document_did_save)

    register_document_did_close_feature = server.feature(types.TEXT_DOCUMENT_DID_CLOSE)
    register_document_did_close_feature(_document_did_close)

    register_shutdown_feature = server.feature(types.SHUTDOWN)
    register_shutdown_feature(_on_shutdown)

    return server


# lsp client requests have no timeout, add own one
STATUS_CREATE_TIMEOUT: typing.Final[float] = 10


LOG_LEVEL_MAP = {
    "DEBUG": types.MessageType.Debug,
    "INFO": types.MessageType.Info,
    "SUCCESS": types.MessageType.Info,
    "WARNING": types.MessageType.Warning,
    "ERROR": types.MessageType.Error,
    "CRITICAL": types.MessageType.Error,
}


def map_diagnostic_to_lsp(diagnostic: report.Diagnostic) -> types.Diagnostic:
    return types.Diagnostic(
        range=types.Range(
            start=types.Position(
                line=diagnostic.range.start.line,
                character=diagnostic.range.start.character,
            ),
            end=types.Position(
                line=diagnostic.range.end.line,
                character=diagnostic.range.end.character,
            ),
        ),
        message=diagnostic.message,
        severity=types.DiagnosticSeverity(int(diagnostic.severity)),
        source="phpcs",
    )


def publish_diagnostics(
    ls: LanguageServer, uri: str, diagnostics: list[report.Diagnostic]
) -> None:
    ls.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(
            uri=uri,
            diagnostics=[map_diagnostic_to_lsp(diagnostic) for diagnostic in diagnostics],
        )
    )


def send_user_message_notification(
    ls: LanguageServer, message: str, message_type: str
) -> None:
    ls.window_show_message(
        types.ShowMessageParams(
            type=types.MessageType[message_type.capitalize()], message=message
        )
    )


def _client_supports_work_done_progress(ls: LanguageServer) -> bool:
    window_capabilities = ls.client_capabilities.window
    return (
        window_capabilities is not None
        and window_capabilities.work_done_progress is True
    )


async def begin_status(ls: LanguageServer, message: str) -> str | None:
    if not _client_supports_work_done_progress(ls):
        return None

    token = str(uuid.uuid4())
    try:
        await asyncio.wait_for(
            ls.work_done_progress.create_async(token), STATUS_CREATE_TIMEOUT
        )
    except TimeoutError:
        logger.warning(f"Client didn't create progress '{message}' in time")
        _forget_progress_token(ls, token)
        return None
    except BaseException:
        _forget_progress_token(ls, token)
        raise

    ls.work_done_progress.begin(token, types.WorkDoneProgressBegin(title=message))
    return token


async def end_status(ls: LanguageServer, token: str | int) -> None:
    ls.work_done_progress.end(token, types.WorkDoneProgressEnd())
    _forget_progress_token(ls, token)


def _forget_progress_token(ls: LanguageServer, token: str | int) -> None:
    # pygls keeps every created token until it is removed explicitly
    ls.work_done_progress.tokens.pop(token, None)


async def _on_initialized(ls: LanguageServer, params: types.InitializedParams):
    def pass_log_to_ls_client(log) -> None:
        # disabling and enabling logging of pygls package is required to avoid logging
        # loop, because there are logs inside of log_trace and window_log_message
        logger.disable("pygls")
        if log.record["level"].no < 10:
            # trace
            ls.log_trace(types.LogTraceParams(message=log.record["message"]))
        else:
            level = LOG_LEVEL_MAP.get(log.record["level"].name, types.MessageType.Info)
            ls.window_log_message(
                types.LogMessageParams(type=level, message=log.record["message"])
            )
        logger.enable("pygls")

    # loguru doesn't support passing partial with ls parameter, use nested function
    logger.add(sink=pass_log_to_ls_client)

    user_messages._lsp_notification_send = partial(send_user_message_notification, ls)
    user_messages._lsp_status_begin = partial(begin_status, ls)
    user_messages._lsp_status_end = partial(end_status, ls)

    try:
        editor = LspEditor(ls)
        settings_provider = LspSettingsProvider(ls)
        store = DiagnosticStore(publisher=partial(publish_diagnostics, ls))
        validator = Validator(
            events=editor.events,
            workspace=editor,
            settings_provider=settings_provider,
            store=store,
        )
        global_state.editor = editor
        global_state.settings_provider = settings_provider
        global_state.validator = validator

        settings = await settings_provider.get_settings()
        global_state.last_raw_settings = settings.to_raw()

        await validator.start()
    except Exception as error:
        logger.exception(error)
        raise error

    global_state.server_initialized.set()
    logger.info("PHP Sniffer initialized")


async def _workspace_did_change_workspace_folders(
    ls: LanguageServer, params: types.DidChangeWorkspaceFoldersParams
):
    logger.trace(f"Workspace dirs were changed: {params}")
    await global_state.server_initialized.wait()
    assert global_state.editor is not None
    global_state.editor.events.did_change_workspace_folders.fire(None)


async def _workspace_did_change_configuration(
    ls: LanguageServer, params: types.DidChangeConfigurationParams
):
    logger.trace(f"Configuration was changed: {params}")
    await global_state.server_initialized.wait()
    assert global_state.editor is not None
    assert global_state.settings_provider is not None

    try:
        global_state.settings_provider.update_pushed_settings(params.settings)
        settings = await global_state.settings_provider.get_settings()
        new_raw_settings = settings.to_raw()
        # only workspace scope is diffed, folder settings can change as well, so
        # the section always counts as changed
        event = domain.ConfigurationChangeEvent(
            section=config.SECTION,
            changed_keys=config.changed_keys(
                global_state.last_raw_settings, new_raw_settings
            ),
            section_changed=True,
        )
        global_state.last_raw_settings = new_raw_settings
        logger.debug(f"Changed settings: {sorted(event.changed_keys)}")
        global_state.editor.events.did_change_configuration.fire(event)
    except Exception as exception:
        logger.exception(exception)


async def _document_did_open(ls: LanguageServer, params: types.DidOpenTextDocumentParams):
    logger.trace(f"Document did open: {params.text_document.uri}")
    await global_state.server_initialized.wait()
    assert global_state.editor is not None

    try:
        snapshot = global_state.editor.snapshot(params.text_document.uri)
        global_state.editor.events.did_open.fire(snapshot)
    except Exception as exception:
        logger.exception(exception)


async def _document_did_change(
    ls: LanguageServer, params: types.DidChangeTextDocumentParams
):
    logger.trace(f"Document did change: {params.text_document.uri}")
    await global_state.server_initialized.wait()
    assert global_state.editor is not None

    try:
        # pygls applies changes to the workspace document before calling this handler
        snapshot = global_state.editor.snapshot(params.text_document.uri)
        global_state.editor.events.did_change.fire(snapshot)
    except Exception as exception:
        logger.exception(exception)


async def _document_did_save(ls: LanguageServer, params: types.DidSaveTextDocumentParams):
    logger.trace(f"Document did save: {params.text_document.uri}")
    await global_state.server_initialized.wait()
    assert global_state.editor is not None

    try:
        snapshot = global_state.editor.snapshot(params.text_document.uri)
        global_state.editor.events.did_save.fire(snapshot)
    except Exception as exception:
        logger.exception(exception)


async def _document_did_close(
    ls: LanguageServer, params: types.DidCloseTextDocumentParams
):
    logger.trace(f"Document did close: {params.text_document.uri}")
    await global_state.server_initialized.wait()
    assert global_state.editor is not None

    try:
        # document is already removed from the workspace, only identity is needed
        snapshot = domain.DocumentSnapshot(
            uri=params.text_document.uri, language_id="", text=""
        )
        global_state.editor.events.did_close.fire(snapshot)
    except Exception as exception:
        logger.exception(exception)


async def _on_shutdown(ls: LanguageServer, params):
    logger.info("on shutdown handler")
    if global_state.validator is not None:
        global_state.validator.dispose()


__all__ = ["create_lsp_server"]

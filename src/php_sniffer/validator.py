from __future__ import annotations

import asyncio
import functools
import typing
from typing import Protocol

from loguru import logger

from php_sniffer import config, domain, report, user_messages
from php_sniffer.diagnostics_store import DiagnosticStore
from php_sniffer.events import DisposableStack, EditorEvents
from php_sniffer.runner import process_runner as process_runner_module
from php_sniffer.runner.run_handle import CancellationToken, RunHandle
from php_sniffer.scheduler import TriggerScheduler

STATUS_MESSAGE: typing.Final[str] = "PHP Sniffer: validating…"


class Workspace(Protocol):
    def open_documents(self) -> list[domain.DocumentSnapshot]: ...

    def workspace_folder_uris(self) -> list[str]: ...


class ProcessRunner(Protocol):
    async def run(
        self,
        snapshot: domain.DocumentSnapshot,
        options: process_runner_module.RunOptions,
        token: CancellationToken,
        cwd: str | None = None,
    ) -> domain.ProcessResult: ...


def task_done_log_callback(future: asyncio.Future[typing.Any], task_id: str = "") -> None:
    if future.cancelled():
        logger.debug(f"task cancelled: {task_id}")
    else:
        exc = future.exception()
        if exc is not None:
            logger.error(f"exception in task: {task_id}")
            logger.exception(exc)
        else:
            logger.trace(f"{task_id} done")


class Validator:
    """
    Runs phpcs on PHP documents and keeps their diagnostics up to date.

    Per document there is at most one live run. A new run of the document cancels
    the previous one and only the latest run can write diagnostics.
    """

    def __init__(
        self,
        events: EditorEvents,
        workspace: Workspace,
        settings_provider: config.SettingsProvider,
        store: DiagnosticStore,
        process_runner: ProcessRunner | None = None,
    ) -> None:
        self._workspace = workspace
        self._settings_provider = settings_provider
        self._store = store
        self._process_runner: ProcessRunner = (
            process_runner
            if process_runner is not None
            else process_runner_module.ProcessRunner()
        )

        self._runs: dict[domain.DocumentIdentity, RunHandle] = {}
        # keep references, otherwise tasks can be garbage collected while running
        self._tasks: set[asyncio.Task[typing.Any]] = set()

        self.scheduler = TriggerScheduler(
            events=events, settings_provider=settings_provider, on_trigger=self.validate
        )
        self._subscriptions = DisposableStack()
        self._subscriptions.push(events.did_open.subscribe(self.validate))
        self._subscriptions.push(events.did_close.subscribe(self.clear))
        self._subscriptions.push(
            events.did_change_workspace_folders.subscribe(lambda _: self.refresh())
        )
        self._subscriptions.push(
            events.did_change_configuration.subscribe(self.on_config_change)
        )

    async def start(self) -> None:
        self.refresh()
        await self.scheduler.reconfigure()

    def dispose(self) -> None:
        self._subscriptions.dispose()
        self.scheduler.dispose()

        for handle in self._runs.values():
            handle.cancel()
            handle.dispose()
        self._runs.clear()

        self._store.clear_all()

    def run_handle(self, uri: domain.DocumentIdentity) -> RunHandle | None:
        return self._runs.get(uri)

    def on_config_change(
        self, event: domain.ConfigurationChangeEvent
    ) -> asyncio.Task[None] | None:
        if not event.affects_configuration(config.SECTION):
            return None

        return self._create_task(
            self._apply_config_change(event), task_id="apply_config_change"
        )

    def refresh(self) -> list[asyncio.Task[domain.ValidationResult]]:
        self._store.clear_all()

        tasks: list[asyncio.Task[domain.ValidationResult]] = []
        for document in self._workspace.open_documents():
            task = self.validate(document)
            if task is not None:
                tasks.append(task)
        return tasks

    def validate(
        self, document: domain.DocumentSnapshot
    ) -> asyncio.Task[domain.ValidationResult] | None:
        if document.language_id != config.LANGUAGE_ID:
            return None

        # replace and cancel without suspension between, so that two triggers of
        # the same document cannot both stay live
        previous_run = self._runs.pop(document.uri, None)
        if previous_run is not None:
            previous_run.cancel()
            previous_run.dispose()

        handle = RunHandle(document.uri)
        self._runs[document.uri] = handle
        logger.trace(f"Validate {document}")
        return self._create_task(
            self._run(document, handle), task_id=f"validate|{document.uri}"
        )

    def clear(self, document: domain.DocumentSnapshot) -> None:
        self.scheduler.forget(document.uri)

        run = self._runs.pop(document.uri, None)
        if run is not None:
            run.cancel()
            run.dispose()

        self._store.clear(document.uri)

    async def _apply_config_change(self, event: domain.ConfigurationChangeEvent) -> None:
        if event.affects_configuration(
            f"{config.SECTION}.run"
        ) or event.affects_configuration(f"{config.SECTION}.onTypeDelay"):
            await self.scheduler.reconfigure()

        self.refresh()

    async def _run(
        self, document: domain.DocumentSnapshot, handle: RunHandle
    ) -> domain.ValidationResult:
        try:
            async with user_messages.status(STATUS_MESSAGE):
                result = await self._run_and_parse(document, handle)

            if isinstance(result, domain.ValidationParsed):
                if handle.cancelled or self._runs.get(document.uri) is not handle:
                    # superseded or closed while parsing, newer state wins
                    logger.debug(f"Discard outdated diagnostics of {document.uri}")
                    return domain.ValidationCancelled()
                self._store.set(document.uri, result.diagnostics)

            return result
        finally:
            if self._runs.get(document.uri) is handle:
                del self._runs[document.uri]
            handle.dispose()

    async def _run_and_parse(
        self, document: domain.DocumentSnapshot, handle: RunHandle
    ) -> domain.ValidationResult:
        # settings are read on every run, changes apply to the next run directly
        settings = await self._settings_provider.get_settings(document.uri)
        run_config = settings.run_config()
        options = process_runner_module.RunOptions(
            executables_folder=run_config.executables_folder,
            standard=run_config.standard,
        )
        cwd = process_runner_module.resolve_cwd(self._workspace.workspace_folder_uris())

        try:
            process_result = await self._process_runner.run(
                document, options, handle.token, cwd
            )
        except domain.ProcessSpawnFailed as error:
            logger.error(f"PHPCS: {error.message}")
            await user_messages.error(f"PHP Sniffer: {error.message}")
            return domain.ValidationFailed(detail=error.message)

        if process_result.outcome == domain.ProcessOutcome.CANCELLED:
            logger.debug(f"PHPCS: Validation of {document.uri} cancelled.")
            return domain.ValidationCancelled()
        elif process_result.outcome == domain.ProcessOutcome.EMPTY:
            # phpcs prints nothing when it fails internally, keep last diagnostics
            logger.debug(f"PHPCS: No response for {document.uri}.")
            return domain.ValidationEmpty()

        try:
            diagnostics = report.parse(process_result.stdout, process_result.stderr)
        except domain.ReportParseError as error:
            logger.error(f"PHPCS: {error.message}")
            return domain.ValidationFailed(detail=error.message)

        return domain.ValidationParsed(diagnostics=diagnostics)

    def _create_task(
        self, coro: typing.Coroutine[typing.Any, typing.Any, typing.Any], task_id: str
    ) -> asyncio.Task[typing.Any]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(functools.partial(task_done_log_callback, task_id=task_id))
        return task


__all__ = ["Validator", "Workspace", "ProcessRunner", "task_done_log_callback"]

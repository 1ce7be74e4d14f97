from __future__ import annotations

import asyncio
import codecs
import dataclasses
import functools
import signal
import sys
import typing
from urllib.parse import urlparse

from loguru import logger
from pygls import uris

from php_sniffer import domain
from php_sniffer.runner.run_handle import CancellationToken

# hard limit of one phpcs run, independent of cancellation
TIMEOUT_SECONDS: typing.Final[float] = 2.0
READ_CHUNK_SIZE: typing.Final[int] = 4096
# output left in pipes after exit, e.g. when a child process of phpcs.bat still
# holds them open
STREAMS_CLOSE_TIMEOUT_SECONDS: typing.Final[float] = 0.2


@dataclasses.dataclass(frozen=True)
class RunOptions:
    executables_folder: str = ""
    standard: str = ""


def executable_name() -> str:
    return "phpcs.bat" if sys.platform == "win32" else "phpcs"


def build_command(snapshot: domain.DocumentSnapshot, options: RunOptions) -> list[str]:
    args = [
        "--report=json",
        f"--standard={options.standard}",
        "-q",
    ]
    if snapshot.is_file:
        # text is still read from stdin, path is used for the file name in the
        # report and for file-based rules of the standard
        args.append(f"--stdin-path={snapshot.fs_path}")
    args.append("-")

    return [f"{options.executables_folder}{executable_name()}", *args]


def resolve_cwd(workspace_folder_uris: list[str]) -> str | None:
    if len(workspace_folder_uris) == 0:
        return None

    first_folder_uri = workspace_folder_uris[0]
    if urlparse(first_folder_uri).scheme != "file":
        return None
    return uris.to_fs_path(first_folder_uri)


async def read_stream(stream: asyncio.StreamReader, chunks: list[str]) -> None:
    # decode incrementally, multibyte characters can be split between chunks
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        data = await stream.read(READ_CHUNK_SIZE)
        if not data:
            break
        chunks.append(decoder.decode(data))
    chunks.append(decoder.decode(b"", final=True))


async def write_stdin(stdin: asyncio.StreamWriter, text: str) -> None:
    try:
        stdin.write(text.encode("utf-8"))
        await stdin.drain()
    except (BrokenPipeError, ConnectionResetError):
        logger.debug("Process closed stdin before the whole text was written")
    finally:
        stdin.close()


def interrupt_process(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        # already exited, nothing to interrupt
        return

    logger.debug(f"Interrupt process {process.pid}")
    try:
        if sys.platform == "win32":
            process.terminate()
        else:
            process.send_signal(signal.SIGINT)
    except ProcessLookupError:
        logger.trace(f"Process {process.pid} is already gone")


def kill_process(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return

    try:
        process.kill()
    except ProcessLookupError:
        logger.trace(f"Process {process.pid} is already gone")


class ProcessRunner:
    def __init__(self, timeout: float = TIMEOUT_SECONDS) -> None:
        self.timeout = timeout

    async def run(
        self,
        snapshot: domain.DocumentSnapshot,
        options: RunOptions,
        token: CancellationToken,
        cwd: str | None = None,
    ) -> domain.ProcessResult:
        if token.is_cancellation_requested:
            return domain.ProcessResult(outcome=domain.ProcessOutcome.CANCELLED)

        command = build_command(snapshot, options)
        logger.debug(f"Run '{' '.join(command)}' in {cwd}")
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
            )
        except OSError as error:
            raise domain.ProcessSpawnFailed(command=command, error=error) from error
        logger.trace(f"Process id of {snapshot.uri} run: {process.pid}")

        cancellation_subscription = token.on_cancellation_requested(
            functools.partial(interrupt_process, process)
        )

        stdout_chunks: list[str] = []
        stderr_chunks: list[str] = []
        assert process.stdout is not None and process.stderr is not None
        assert process.stdin is not None
        readers = [
            asyncio.create_task(read_stream(process.stdout, stdout_chunks)),
            asyncio.create_task(read_stream(process.stderr, stderr_chunks)),
        ]

        timed_out = False
        try:
            try:
                await asyncio.wait_for(
                    self._feed_and_wait(process, process.stdin, snapshot.text),
                    timeout=self.timeout,
                )
            except TimeoutError:
                timed_out = True
                logger.warning(
                    f"phpcs didn't finish in {self.timeout} sec on {snapshot.uri},"
                    " kill it"
                )
                kill_process(process)
                await process.wait()

            # streams are closed after exit of the process, rest of output is read
            # before the outcome is decided
            _, pending = await asyncio.wait(
                readers, timeout=STREAMS_CLOSE_TIMEOUT_SECONDS
            )
            if len(pending) > 0:
                logger.warning(f"Output streams of process {process.pid} didn't close")
        finally:
            cancellation_subscription.dispose()
            kill_process(process)
            for reader in readers:
                if not reader.done():
                    reader.cancel()

        stdout = "".join(stdout_chunks)
        stderr = "".join(stderr_chunks)
        logger.trace(
            f"Process {process.pid} exited with {process.returncode}, stdout length:"
            f" {len(stdout)}, stderr length: {len(stderr)}"
        )

        if token.is_cancellation_requested:
            outcome = domain.ProcessOutcome.CANCELLED
        elif not stdout:
            outcome = domain.ProcessOutcome.EMPTY
        else:
            outcome = domain.ProcessOutcome.OUTPUT

        return domain.ProcessResult(
            outcome=outcome,
            stdout=stdout,
            stderr=stderr,
            return_code=process.returncode,
            timed_out=timed_out,
        )

    async def _feed_and_wait(
        self,
        process: asyncio.subprocess.Process,
        stdin: asyncio.StreamWriter,
        text: str,
    ) -> int:
        await write_stdin(stdin, text)
        return await process.wait()


__all__ = [
    "TIMEOUT_SECONDS",
    "RunOptions",
    "ProcessRunner",
    "build_command",
    "executable_name",
    "resolve_cwd",
]

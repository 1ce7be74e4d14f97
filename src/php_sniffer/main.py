from __future__ import annotations

import enum
from pathlib import Path

import platformdirs
from loguru import logger

from php_sniffer import logs
from php_sniffer.server.lsp_server import create_lsp_server

APP_NAME = "php-sniffer-ls"


class CommunicationType(enum.Enum):
    TCP = enum.auto()
    STDIO = enum.auto()


def get_log_dir_path() -> Path:
    return Path(platformdirs.user_log_dir(appname=APP_NAME, appauthor=False))


def start_sync(
    comm_type: CommunicationType,
    host: str | None = None,
    port: int | None = None,
    trace: bool = False,
) -> None:
    logger.remove()
    # disable logging raw messages
    logger.configure(activation=[("pygls.protocol.json_rpc", False)])
    # stdout is used for communication with the client in stdio mode
    logs.save_logs_to_file(
        file_path=get_log_dir_path() / "execution.log",
        log_level="TRACE" if trace else "INFO",
        stdout=False,
    )
    logs.intercept_std_logging()

    server = create_lsp_server()
    if comm_type == CommunicationType.TCP:
        if host is None or port is None:
            raise ValueError("TCP server requires host and port to be provided.")
        server.start_tcp(host, port)
    else:
        server.start_io()

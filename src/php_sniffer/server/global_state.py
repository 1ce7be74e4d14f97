from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from php_sniffer.server.editor import LspEditor, LspSettingsProvider
    from php_sniffer.validator import Validator

editor: LspEditor | None = None
settings_provider: LspSettingsProvider | None = None
validator: Validator | None = None
# workspace-wide settings known before the last configuration change, used to find
# out which keys were changed
last_raw_settings: dict[str, Any] = {}
server_initialized = asyncio.Event()

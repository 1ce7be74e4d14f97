import asyncio

import pytest

from php_sniffer import config, domain
from php_sniffer.events import EditorEvents
from php_sniffer.scheduler import Debouncer, DebouncerState, TriggerScheduler

from .fakes import StaticSettingsProvider, php_document

pytestmark = pytest.mark.anyio

DELAY_MS = 20
# enough for the debounce delay to pass
WAIT_SEC = 0.1


def make_scheduler(
    settings: config.SnifferSettings,
) -> tuple[TriggerScheduler, EditorEvents, list[domain.DocumentSnapshot]]:
    events = EditorEvents()
    triggered: list[domain.DocumentSnapshot] = []
    scheduler = TriggerScheduler(
        events=events,
        settings_provider=StaticSettingsProvider(settings),
        on_trigger=triggered.append,
    )
    return scheduler, events, triggered


def on_type_settings() -> config.SnifferSettings:
    return config.SnifferSettings(run=config.TriggerMode.ON_TYPE, on_type_delay=DELAY_MS)


async def test__burst_of_changes_triggers_once_with_latest_text():
    scheduler, events, triggered = make_scheduler(on_type_settings())
    await scheduler.reconfigure()

    for index in range(5):
        events.did_change.fire(php_document(text=f"<?php echo {index};"))
    await asyncio.sleep(WAIT_SEC)

    assert [document.text for document in triggered] == ["<?php echo 4;"]


async def test__on_type_ignores_saves():
    scheduler, events, triggered = make_scheduler(on_type_settings())
    await scheduler.reconfigure()

    events.did_save.fire(php_document())

    assert triggered == []
    assert events.did_save.listener_count == 0
    assert events.did_change.listener_count == 1


async def test__on_save_triggers_directly_and_ignores_changes():
    scheduler, events, triggered = make_scheduler(config.SnifferSettings())
    await scheduler.reconfigure()

    events.did_change.fire(php_document(text="changed"))
    await asyncio.sleep(WAIT_SEC)
    assert triggered == []

    events.did_save.fire(php_document(text="saved"))
    assert [document.text for document in triggered] == ["saved"]


async def test__switch_to_on_save_drops_pending_change():
    settings_provider = StaticSettingsProvider(on_type_settings())
    events = EditorEvents()
    triggered: list[domain.DocumentSnapshot] = []
    scheduler = TriggerScheduler(
        events=events, settings_provider=settings_provider, on_trigger=triggered.append
    )
    await scheduler.reconfigure()
    events.did_change.fire(php_document())

    settings_provider.settings = config.SnifferSettings()
    await scheduler.reconfigure()
    await asyncio.sleep(WAIT_SEC)

    assert triggered == []
    assert scheduler.mode == config.TriggerMode.ON_SAVE
    assert events.did_change.listener_count == 0
    assert events.did_save.listener_count == 1


async def test__repeated_reconfigure_keeps_one_subscription():
    scheduler, events, _ = make_scheduler(on_type_settings())

    await scheduler.reconfigure()
    await scheduler.reconfigure()
    await asyncio.gather(scheduler.reconfigure(), scheduler.reconfigure())

    assert events.did_change.listener_count == 1
    assert events.did_save.listener_count == 0


async def test__documents_are_debounced_independently():
    scheduler, events, triggered = make_scheduler(on_type_settings())
    await scheduler.reconfigure()

    events.did_change.fire(php_document(uri="file:///project/a.php"))
    events.did_change.fire(php_document(uri="file:///project/b.php"))
    await asyncio.sleep(WAIT_SEC)

    assert sorted(document.uri for document in triggered) == [
        "file:///project/a.php",
        "file:///project/b.php",
    ]


async def test__forget_drops_pending_change():
    scheduler, events, triggered = make_scheduler(on_type_settings())
    await scheduler.reconfigure()
    document = php_document()
    events.did_change.fire(document)

    scheduler.forget(document.uri)
    await asyncio.sleep(WAIT_SEC)

    assert triggered == []


async def test__dispose_removes_subscription():
    scheduler, events, _ = make_scheduler(config.SnifferSettings())
    await scheduler.reconfigure()

    scheduler.dispose()

    assert events.did_save.listener_count == 0
    assert scheduler.mode is None


async def test__debouncer_states():
    called: list[str] = []
    debouncer: Debouncer[str] = Debouncer(DELAY_MS, called.append)
    assert debouncer.state == DebouncerState.IDLE

    debouncer.push("first")
    first_deadline = debouncer.deadline
    debouncer.push("second")

    assert debouncer.state == DebouncerState.PENDING
    assert debouncer.pending == "second"
    assert first_deadline is not None and debouncer.deadline is not None
    assert debouncer.deadline >= first_deadline

    await asyncio.sleep(WAIT_SEC)

    assert debouncer.state == DebouncerState.IDLE
    assert called == ["second"]


async def test__cancelled_debouncer_does_not_call():
    called: list[str] = []
    debouncer: Debouncer[str] = Debouncer(DELAY_MS, called.append)

    debouncer.push("payload")
    debouncer.cancel()
    await asyncio.sleep(WAIT_SEC)

    assert debouncer.state == DebouncerState.IDLE
    assert called == []

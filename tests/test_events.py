from php_sniffer import events


def test__fire_calls_subscribed_listeners():
    emitter: events.EventEmitter[int] = events.EventEmitter("numbers")
    received: list[int] = []

    subscription = emitter.subscribe(received.append)
    emitter.fire(1)
    subscription.dispose()
    emitter.fire(2)

    assert received == [1]
    assert emitter.listener_count == 0


def test__failing_listener_does_not_stop_others():
    emitter: events.EventEmitter[int] = events.EventEmitter("numbers")
    received: list[int] = []

    def failing_listener(value: int) -> None:
        raise RuntimeError("listener failed")

    emitter.subscribe(failing_listener)
    emitter.subscribe(received.append)
    emitter.fire(7)

    assert received == [7]


def test__dispose_twice_removes_listener_once():
    emitter: events.EventEmitter[int] = events.EventEmitter("numbers")
    emitter.subscribe(print)
    subscription = emitter.subscribe(print)

    subscription.dispose()
    subscription.dispose()

    assert subscription.disposed
    assert emitter.listener_count == 1


def test__listener_can_unsubscribe_while_event_is_fired():
    emitter: events.EventEmitter[int] = events.EventEmitter("numbers")
    received: list[int] = []
    subscription: events.Disposable | None = None

    def once(value: int) -> None:
        received.append(value)
        assert subscription is not None
        subscription.dispose()

    subscription = emitter.subscribe(once)
    emitter.fire(1)
    emitter.fire(2)

    assert received == [1]


def test__disposable_stack_disposes_all():
    emitter: events.EventEmitter[int] = events.EventEmitter("numbers")
    stack = events.DisposableStack()
    stack.push(emitter.subscribe(print))
    stack.push(emitter.subscribe(print))

    stack.dispose()

    assert emitter.listener_count == 0

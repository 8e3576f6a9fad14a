from unittest.mock import MagicMock

from kernel_sessions.sessions import Signal


class Owner:
    pass


def test_emit_delivers_sender_and_args_in_connection_order():
    owner = Owner()
    signal = Signal(owner, "changed")
    calls = []
    signal.connect(lambda sender, args: calls.append(("a", sender, args)))
    signal.connect(lambda sender, args: calls.append(("b", sender, args)))

    signal.emit(42)

    assert calls == [("a", owner, 42), ("b", owner, 42)]
    assert signal.sender is owner
    assert signal.name == "changed"


def test_connect_is_idempotent_and_disconnect_reports_membership():
    signal = Signal(Owner())
    slot = MagicMock()

    assert signal.connect(slot) is True
    assert signal.connect(slot) is False
    assert len(signal) == 1

    signal.emit("x")
    slot.assert_called_once_with(signal.sender, "x")

    assert signal.disconnect(slot) is True
    assert signal.disconnect(slot) is False
    signal.emit("y")
    slot.assert_called_once()


def test_disconnect_all():
    signal = Signal(Owner())
    slots = [MagicMock(), MagicMock()]
    for slot in slots:
        signal.connect(slot)
    signal.disconnect_all()
    signal.emit(None)
    assert len(signal) == 0
    for slot in slots:
        slot.assert_not_called()


def test_no_replay_for_late_subscribers():
    signal = Signal(Owner())
    signal.emit(1)
    late = MagicMock()
    signal.connect(late)
    late.assert_not_called()


def test_slot_may_disconnect_itself_during_emit():
    signal = Signal(Owner())
    calls = []

    def once(sender, args):
        calls.append(("once", args))
        signal.disconnect(once)

    signal.connect(once)
    signal.connect(lambda sender, args: calls.append(("other", args)))

    signal.emit(1)
    signal.emit(2)

    assert calls == [("once", 1), ("other", 1), ("other", 2)]


def test_slot_exception_is_logged_and_delivery_continues(caplog):
    caplog.set_level("ERROR")
    signal = Signal(Owner(), "changed")
    after = MagicMock()

    def broken(sender, args):
        raise RuntimeError("slot failure")

    signal.connect(broken)
    signal.connect(after)
    signal.emit("payload")

    after.assert_called_once_with(signal.sender, "payload")
    assert any("changed" in r.message and r.exc_info for r in caplog.records)

import pytest

from hotoken_reservation.errors import SettlementError
from hotoken_reservation.events import EventLog
from hotoken_reservation.schemas import TokenPurchaseEvent
from hotoken_reservation.settlement import InMemoryValueLedger

ALICE = "0xffcf8fdee72ac11b5c542428b35eef5769c409f0"
BOB = "0x22d491bde2303f2f43325b2108d26f1eaba1e32b"


def make_event(amount: int = 4000) -> TokenPurchaseEvent:
    return TokenPurchaseEvent(purchaser=ALICE, beneficiary=ALICE, value=1, amount=amount)


def test_transfer_moves_value_between_accounts():
    value_ledger = InMemoryValueLedger({ALICE: 100})
    value_ledger.transfer(ALICE, BOB, 40)
    assert value_ledger.balance_of(ALICE) == 60
    assert value_ledger.balance_of(BOB) == 40


def test_balances_are_keyed_by_normalized_address():
    value_ledger = InMemoryValueLedger()
    value_ledger.deposit(ALICE.upper().replace("0X", "0x"), 10)
    assert value_ledger.balance_of(ALICE) == 10


def test_transfer_with_insufficient_funds_changes_nothing():
    value_ledger = InMemoryValueLedger({ALICE: 10})
    with pytest.raises(SettlementError):
        value_ledger.transfer(ALICE, BOB, 11)
    assert value_ledger.balance_of(ALICE) == 10
    assert value_ledger.balance_of(BOB) == 0


def test_transfer_requires_positive_amount():
    value_ledger = InMemoryValueLedger({ALICE: 10})
    with pytest.raises(SettlementError):
        value_ledger.transfer(ALICE, BOB, 0)


def test_event_log_records_and_notifies_listeners():
    received = []
    event_log = EventLog()
    event_log.subscribe(received.append)

    event = make_event()
    event_log.emit(event)

    assert event_log.events == [event]
    assert received == [event]


def test_failing_listener_does_not_stop_other_listeners():
    received = []

    def broken_listener(event):
        raise RuntimeError("listener down")

    event_log = EventLog()
    event_log.subscribe(broken_listener)
    event_log.subscribe(received.append)
    event_log.emit(make_event())

    assert len(received) == 1
    assert len(event_log.events) == 1


def test_unsubscribed_listener_is_not_notified():
    received = []
    event_log = EventLog()
    event_log.subscribe(received.append)
    event_log.unsubscribe(received.append)
    event_log.emit(make_event())
    assert received == []

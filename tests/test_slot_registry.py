from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import time
from threading import Barrier

import pytest

from backend.domain.models import TimeSlot
from backend.services.slot_registry import SlotFullError, SlotNotFoundError, SlotRegistry


def _slot(slot_id: int, capacity: int, booked: int = 0) -> TimeSlot:
    return TimeSlot(
        slot_id=slot_id,
        start_time=time(hour=9),
        end_time=time(hour=10),
        capacity=capacity,
        booked=booked,
    )


def test_reserve_books_one_unit():
    registry = SlotRegistry([_slot(1, 3)])

    snapshot = registry.reserve(1)

    assert snapshot.booked == 1
    assert snapshot.remaining == 2


def test_full_slot_rejects_and_keeps_count():
    registry = SlotRegistry([_slot(1, 10, booked=10)])

    with pytest.raises(SlotFullError):
        registry.reserve(1)

    assert registry.get_slot(1).booked == 10


def test_unknown_slot_raises():
    registry = SlotRegistry([_slot(1, 3)])

    with pytest.raises(SlotNotFoundError):
        registry.reserve(99)
    with pytest.raises(SlotNotFoundError):
        registry.release(99)


def test_release_is_floored_at_zero():
    registry = SlotRegistry([_slot(1, 3, booked=1)])

    assert registry.release(1).booked == 0
    assert registry.release(1).booked == 0


def test_slot_window_must_be_ordered():
    with pytest.raises(ValueError):
        SlotRegistry(
            [TimeSlot(slot_id=1, start_time=time(10), end_time=time(9), capacity=1, booked=0)]
        )


@pytest.mark.parametrize(("requests", "capacity"), [(50, 7), (20, 20), (8, 12)])
def test_concurrent_reservations_accept_exactly_capacity(requests: int, capacity: int):
    registry = SlotRegistry([_slot(1, capacity), _slot(2, 1)])
    barrier = Barrier(requests)

    def attempt() -> bool:
        barrier.wait()
        try:
            registry.reserve(1)
            return True
        except SlotFullError:
            return False

    with ThreadPoolExecutor(max_workers=requests) as pool:
        outcomes = list(pool.map(lambda _: attempt(), range(requests)))

    expected = min(requests, capacity)
    assert outcomes.count(True) == expected
    assert outcomes.count(False) == requests - expected
    assert registry.get_slot(1).booked == expected
    assert registry.get_slot(2).booked == 0


def test_failing_reserve_hook_leaves_count_untouched():
    registry = SlotRegistry([_slot(1, 3)])

    def reject() -> None:
        raise RuntimeError("record rejected")

    with pytest.raises(RuntimeError):
        registry.reserve(1, on_reserve=reject)

    assert registry.get_slot(1).booked == 0


def test_release_hook_can_veto_release():
    registry = SlotRegistry([_slot(1, 3, booked=2)])
    calls: list[int] = []

    assert registry.release(1, on_release=lambda: calls.append(1)).booked == 1
    assert calls == [1]

    def veto() -> None:
        raise LookupError("nothing to release")

    with pytest.raises(LookupError):
        registry.release(1, on_release=veto)
    assert registry.get_slot(1).booked == 1


def test_release_at_zero_is_not_logged_as_release(caplog):
    registry = SlotRegistry([_slot(1, 3, booked=1)])
    caplog.set_level(logging.INFO, logger="backend.services.slot_registry")

    registry.release(1)
    registry.release(1)

    messages = [record.getMessage() for record in caplog.records]
    assert sum(message.startswith("Released slot=1") for message in messages) == 1
    assert sum("ignored" in message for message in messages) == 1

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from movie_booking.core.exceptions import (
    BookingError,
    BookingValidationError,
    HoldExpiredError,
    InvalidStateError,
    LedgerCorruptionError,
    NotFoundError,
)
from movie_booking.crud.ledger import crud_ledger
from movie_booking.crud.reservation import crud_reservation
from movie_booking.models.ledger_entry import LedgerReason
from movie_booking.models.reservation import ReservationStatus
from movie_booking.models.show import ShowTiming
from movie_booking.services.ledger import AvailabilityLedger
from movie_booking.services.reservation import ReservationCoordinator
from movie_booking.tests.conftest import EVENING_TIMING_ID


async def test_request_holds_seats_and_persists(coordinator, ledger, db_session_factory):
    handle = await coordinator.request(EVENING_TIMING_ID, 4)

    assert handle.status is ReservationStatus.HELD
    assert handle.expires_at > datetime.now(timezone.utc)
    assert ledger.balance(EVENING_TIMING_ID) == 41

    async with db_session_factory() as session:
        row = await crud_reservation.get_reservation(session, handle.id)
        entries = await crud_ledger.list_entries(session, EVENING_TIMING_ID)
    assert row.status is ReservationStatus.HELD
    assert row.seat_count == 4
    assert [(e.reason, e.delta, e.balance_after, e.reservation_id) for e in entries] == [
        (LedgerReason.RESERVE, -4, 41, handle.id)
    ]


@pytest.mark.parametrize("seat_count", [0, -2, 51])
async def test_invalid_seat_counts_leave_ledger_untouched(coordinator, ledger, seat_count):
    with pytest.raises(BookingValidationError):
        await coordinator.request(EVENING_TIMING_ID, seat_count)

    assert ledger.balance(EVENING_TIMING_ID) == 45
    assert ledger.entries() == []


async def test_request_for_unknown_timing(coordinator):
    with pytest.raises(NotFoundError):
        await coordinator.request(404, 2)


async def test_confirm_keeps_seats_deducted(coordinator, ledger):
    handle = await coordinator.request(EVENING_TIMING_ID, 6)

    confirmed = await coordinator.confirm(handle.id)

    assert confirmed.status is ReservationStatus.CONFIRMED
    assert confirmed.timer is None
    assert ledger.balance(EVENING_TIMING_ID) == 39
    # terminal: a second confirm finds no held reservation, cancel is refused
    with pytest.raises(NotFoundError):
        await coordinator.confirm(handle.id)
    with pytest.raises(InvalidStateError):
        await coordinator.cancel(handle.id)
    assert await coordinator.expire(handle.id) is False
    assert ledger.balance(EVENING_TIMING_ID) == 39


async def test_cancel_returns_seats(coordinator, ledger, db_session_factory):
    handle = await coordinator.request(EVENING_TIMING_ID, 6)

    await coordinator.cancel(handle.id)

    assert handle.status is ReservationStatus.RELEASED
    assert ledger.balance(EVENING_TIMING_ID) == 45
    with pytest.raises(InvalidStateError):
        await coordinator.cancel(handle.id)
    with pytest.raises(NotFoundError):
        await coordinator.confirm(handle.id)

    async with db_session_factory() as session:
        row = await crud_reservation.get_reservation(session, handle.id)
    assert row.status is ReservationStatus.RELEASED


async def test_unknown_reservation_is_not_found(coordinator):
    with pytest.raises(NotFoundError):
        await coordinator.confirm(uuid.uuid4())
    with pytest.raises(NotFoundError):
        await coordinator.cancel(uuid.uuid4())
    assert await coordinator.expire(uuid.uuid4()) is False


async def test_hold_expires_and_late_confirm_does_not_touch_ledger(ledger, db_session_factory):
    coordinator = ReservationCoordinator(ledger, db_session_factory, hold_seconds=0.05)
    try:
        handle = await coordinator.request(EVENING_TIMING_ID, 10)
        assert ledger.balance(EVENING_TIMING_ID) == 35

        await asyncio.sleep(0.5)

        assert handle.status is ReservationStatus.EXPIRED
        assert ledger.balance(EVENING_TIMING_ID) == 45
        journal_size = len(ledger.entries())

        with pytest.raises(HoldExpiredError):
            await coordinator.confirm(handle.id)
        with pytest.raises(InvalidStateError):
            await coordinator.cancel(handle.id)

        assert len(ledger.entries()) == journal_size
        assert ledger.balance(EVENING_TIMING_ID) == 45
    finally:
        await coordinator.shutdown()


async def test_confirm_after_deadline_expires_the_hold(coordinator, ledger):
    handle = await coordinator.request(EVENING_TIMING_ID, 8)
    handle.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)

    with pytest.raises(HoldExpiredError):
        await coordinator.confirm(handle.id)

    assert handle.status is ReservationStatus.EXPIRED
    assert ledger.balance(EVENING_TIMING_ID) == 45
    # the timer firing later is ignored
    assert await coordinator.expire(handle.id) is False
    assert ledger.balance(EVENING_TIMING_ID) == 45


async def test_restore_rearms_holds_after_restart(coordinator, db_session_factory):
    handle = await coordinator.request(EVENING_TIMING_ID, 5)
    await coordinator.shutdown()

    restarted_ledger = AvailabilityLedger()
    async with db_session_factory() as session:
        await restarted_ledger.load(session)
    assert restarted_ledger.balance(EVENING_TIMING_ID) == 40

    restarted = ReservationCoordinator(restarted_ledger, db_session_factory, hold_seconds=60)
    try:
        assert await restarted.restore() == 1
        restored = await restarted.get(handle.id)
        assert restored.status is ReservationStatus.HELD
        assert restored.seat_count == 5

        await restarted.cancel(handle.id)
        assert restarted_ledger.balance(EVENING_TIMING_ID) == 45
    finally:
        await restarted.shutdown()


async def test_finished_reservations_leave_memory(coordinator):
    confirmed = await coordinator.request(EVENING_TIMING_ID, 2)
    cancelled = await coordinator.request(EVENING_TIMING_ID, 2)
    assert coordinator.active_count == 2

    await coordinator.confirm(confirmed.id)
    await coordinator.cancel(cancelled.id)

    assert coordinator.active_count == 0
    assert (await coordinator.get(confirmed.id)).status is ReservationStatus.CONFIRMED
    assert (await coordinator.get(cancelled.id)).status is ReservationStatus.RELEASED


async def test_hold_expired_before_restart_still_reports_expired(ledger, db_session_factory):
    coordinator = ReservationCoordinator(ledger, db_session_factory, hold_seconds=0.05)
    try:
        handle = await coordinator.request(EVENING_TIMING_ID, 10)
        await asyncio.sleep(0.5)
        assert handle.status is ReservationStatus.EXPIRED
    finally:
        await coordinator.shutdown()

    restarted = ReservationCoordinator(ledger, db_session_factory, hold_seconds=60)
    try:
        assert await restarted.restore() == 0
        with pytest.raises(HoldExpiredError):
            await restarted.confirm(handle.id)
        with pytest.raises(InvalidStateError):
            await restarted.cancel(handle.id)
        assert (await restarted.get(handle.id)).status is ReservationStatus.EXPIRED
        assert ledger.balance(EVENING_TIMING_ID) == 45
    finally:
        await restarted.shutdown()


async def test_failed_confirm_keeps_the_hold(coordinator, ledger, db_session_factory, monkeypatch):
    handle = await coordinator.request(EVENING_TIMING_ID, 6)

    async def unavailable(db, reservation):
        raise OperationalError("UPDATE reservation", {}, Exception("database is locked"))

    monkeypatch.setattr(crud_reservation, "save", unavailable)
    with pytest.raises(BookingError):
        await coordinator.confirm(handle.id)
    monkeypatch.undo()

    assert handle.status is ReservationStatus.HELD
    assert handle.timer is not None
    assert ledger.balance(EVENING_TIMING_ID) == 39
    async with db_session_factory() as session:
        row = await crud_reservation.get_reservation(session, handle.id)
    assert row.status is ReservationStatus.HELD

    await coordinator.confirm(handle.id)
    assert handle.status is ReservationStatus.CONFIRMED


async def test_halted_timing_stays_halted_after_restart(coordinator, ledger, db_session_factory):
    handle = await coordinator.request(EVENING_TIMING_ID, 5)
    # a stray release leaves too little headroom for the hold's own seats
    await ledger.release(EVENING_TIMING_ID, 138)

    with pytest.raises(LedgerCorruptionError):
        await coordinator.cancel(handle.id)
    assert ledger.balance(EVENING_TIMING_ID) == 180

    async with db_session_factory() as session:
        entries = await crud_ledger.list_entries(session, EVENING_TIMING_ID)
        timing = await session.get(ShowTiming, EVENING_TIMING_ID)
        row = await crud_reservation.get_reservation(session, handle.id)
    assert [(e.reason, e.delta, e.balance_after, e.halts_timing) for e in entries] == [
        (LedgerReason.RESERVE, -5, 40, False),
        (LedgerReason.RELEASE, 2, 180, True),
    ]
    assert timing.ledger_corrupted
    assert timing.available_seats == 180
    assert row.status is ReservationStatus.RELEASED

    restarted_ledger = AvailabilityLedger()
    async with db_session_factory() as session:
        await restarted_ledger.load(session)
        restarted_ledger.replay(await crud_ledger.load_records(session))
    assert restarted_ledger.is_corrupted(EVENING_TIMING_ID)
    with pytest.raises(LedgerCorruptionError):
        await restarted_ledger.reserve(EVENING_TIMING_ID, 3)

    record = await restarted_ledger.reconcile(EVENING_TIMING_ID, 45)
    async with db_session_factory() as session:
        await crud_ledger.append(session, record)
        await session.commit()

    reloaded = AvailabilityLedger()
    async with db_session_factory() as session:
        await reloaded.load(session)
    assert not reloaded.is_corrupted(EVENING_TIMING_ID)
    assert reloaded.balance(EVENING_TIMING_ID) == 45

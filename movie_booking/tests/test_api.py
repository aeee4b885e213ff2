import pytest
from httpx import ASGITransport, AsyncClient

from movie_booking.app import create_app
from movie_booking.core.exceptions import LedgerCorruptionError
from movie_booking.db.session import get_db_session
from movie_booking.redis import get_redis
from movie_booking.tests.conftest import EVENING_TIMING_ID

API = "/api/v1"


@pytest.fixture
async def client(ledger, coordinator, db_session_factory, redis_client):
    app = create_app()
    app.state.ledger = ledger
    app.state.coordinator = coordinator

    async def override_db_session():
        async with db_session_factory() as session:
            yield session

    async def override_redis():
        yield redis_client

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_redis] = override_redis

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


async def test_health(client):
    response = await client.get(f"{API}/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_list_shows(client):
    response = await client.get(f"{API}/theatres/1/shows", params={"date": "2023-04-25"})

    assert response.status_code == 200
    body = response.json()
    assert len(body) == 7
    assert body[0] == {
        "timing_id": 7,
        "movie_title": "Avatar: The Way of Water",
        "language": "English",
        "format": "3D",
        "screen": "Audi 2",
        "show_time": "01:20 PM",
        "available_seats": 90,
        "ticket_price": "350.00",
    }


async def test_list_shows_for_unknown_theatre(client):
    response = await client.get(f"{API}/theatres/99/shows", params={"date": "2023-04-25"})

    assert response.status_code == 404
    assert response.json() == {"error": "Theatre 99 not found"}


async def test_reservation_lifecycle(client):
    response = await client.post(f"{API}/reservations/", json={"timing_id": EVENING_TIMING_ID, "seat_count": 30})
    assert response.status_code == 201
    reservation = response.json()
    assert reservation["status"] == "HELD"
    assert reservation["seat_count"] == 30

    response = await client.post(f"{API}/reservations/", json={"timing_id": EVENING_TIMING_ID, "seat_count": 30})
    assert response.status_code == 409
    assert "15 seats left" in response.json()["error"]

    confirm_url = f"{API}/reservations/{reservation['id']}/confirm"
    response = await client.post(confirm_url)
    assert response.status_code == 422

    response = await client.post(confirm_url, headers={"X-Idempotency-Key": "confirm-1"})
    assert response.status_code == 200
    assert response.json()["status"] == "CONFIRMED"

    # a retried confirm with the same key replays the stored response
    repeat = await client.post(confirm_url, headers={"X-Idempotency-Key": "confirm-1"})
    assert repeat.status_code == 200
    assert repeat.json() == response.json()

    response = await client.post(f"{API}/reservations/{reservation['id']}/cancel")
    assert response.status_code == 409

    response = await client.get(f"{API}/reservations/{reservation['id']}")
    assert response.json()["status"] == "CONFIRMED"

    response = await client.get(f"{API}/ledger/timings/{EVENING_TIMING_ID}/entries")
    assert response.status_code == 200
    entries = response.json()
    assert [(e["reason"], e["delta"], e["balance_after"]) for e in entries] == [("RESERVE", -30, 15)]
    assert entries[0]["reservation_id"] == reservation["id"]


async def test_cancel_returns_seats(client):
    response = await client.post(f"{API}/reservations/", json={"timing_id": EVENING_TIMING_ID, "seat_count": 10})
    reservation_id = response.json()["id"]

    response = await client.post(f"{API}/reservations/{reservation_id}/cancel")
    assert response.status_code == 200
    assert response.json()["status"] == "RELEASED"

    response = await client.get(f"{API}/theatres/1/shows", params={"date": "2023-04-25"})
    evening = next(row for row in response.json() if row["timing_id"] == EVENING_TIMING_ID)
    assert evening["available_seats"] == 45


@pytest.mark.parametrize("seat_count", [0, -1, 51])
async def test_reservation_with_invalid_seat_count(client, ledger, seat_count):
    response = await client.post(f"{API}/reservations/", json={"timing_id": EVENING_TIMING_ID, "seat_count": seat_count})

    assert response.status_code == 422
    assert ledger.balance(EVENING_TIMING_ID) == 45


async def test_unknown_reservation(client):
    response = await client.get(f"{API}/reservations/00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404


async def test_ledger_entries_for_unknown_timing(client):
    response = await client.get(f"{API}/ledger/timings/404/entries")
    assert response.status_code == 404


async def test_reconcile_is_refused_on_a_healthy_timing(client, ledger):
    response = await client.post(f"{API}/ledger/timings/{EVENING_TIMING_ID}/reconcile", json={"available_seats": 40})

    assert response.status_code == 409
    assert ledger.balance(EVENING_TIMING_ID) == 45


async def test_reconcile_resumes_a_halted_timing(client, ledger):
    await ledger.release(EVENING_TIMING_ID, 135)
    with pytest.raises(LedgerCorruptionError):
        await ledger.release(EVENING_TIMING_ID, 1)

    response = await client.post(f"{API}/reservations/", json={"timing_id": EVENING_TIMING_ID, "seat_count": 2})
    assert response.status_code == 500

    response = await client.post(f"{API}/ledger/timings/{EVENING_TIMING_ID}/reconcile", json={"available_seats": 40})

    assert response.status_code == 200
    body = response.json()
    assert body["reason"] == "RECONCILE"
    assert body["delta"] == -140
    assert body["halts_timing"] is False
    assert body["balance_after"] == 40
    assert ledger.balance(EVENING_TIMING_ID) == 40

    response = await client.post(f"{API}/ledger/timings/{EVENING_TIMING_ID}/reconcile", json={"available_seats": 181})
    assert response.status_code == 422


async def test_create_show_registers_timings(client, ledger):
    response = await client.post(f"{API}/shows", json={
        "movie_id": 4,
        "screen_id": 4,
        "language_id": 3,
        "format_id": 1,
        "run_start_date": "2023-04-25",
        "run_end_date": "2023-04-30",
        "ticket_price": "300",
        "timings": [{"start_time": "21:00:00"}],
    })

    assert response.status_code == 200
    show = response.json()
    assert show["ticket_price"] == "300.00"
    timing_id = show["timings"][0]["id"]
    assert show["timings"][0]["available_seats"] == 150
    assert ledger.balance(timing_id) == 150

    response = await client.get(f"{API}/shows/{show['id']}")
    assert response.status_code == 200

    response = await client.get(f"{API}/shows/999")
    assert response.status_code == 404


async def test_catalog_export(client):
    response = await client.get(f"{API}/catalog/")

    assert response.status_code == 200
    body = response.json()
    assert len(body["theatres"]) == 3
    assert len(body["shows"]) == 4

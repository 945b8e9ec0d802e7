"""
Tests for reservation endpoints and the reservation service, including the
capacity walk-through on "Kolam Paus" and edit re-validation.
"""

import asyncio
import os
from datetime import date

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.core.exceptions import CapacityExceeded, ConflictError, ReservationNotFound
from zoo_api.models.reservation import Reservation, STATUS_CANCELLED
from zoo_api.services import capacity_service, reservation_service

JUNE_1 = date(2024, 6, 1)
JUNE_2 = date(2024, 6, 2)


async def _remaining(database, facility, visit_date) -> int:
    async with database.session() as db:
        return await capacity_service.available_capacity(db, facility, visit_date)


def _booking(username, tickets, visit="2024-06-01", facility="Kolam Paus") -> dict:
    return {
        "username_p": username,
        "nama_fasilitas": facility,
        "tanggal_kunjungan": visit,
        "jumlah_tiket": tickets,
    }


@pytest.mark.asyncio
async def test_create_reservation(client: AsyncClient, visitor_headers, whale_pool):
    response = await client.post(
        "/api/reservasi/create", json=_booking("budi", 30), headers=visitor_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["kapasitas_tersisa"] == 20
    assert data["reservasi"]["jumlah_tiket"] == 30
    assert data["reservasi"]["status"] == "Terjadwal"


@pytest.mark.asyncio
async def test_capacity_walkthrough(client: AsyncClient, visitor_headers, other_visitor_headers,
                                    admin_headers, whale_pool, database):
    """50 seats: 30 ok, 25 rejected at 20 left, 20 ok, then 1 more rejected."""
    response = await client.post(
        "/api/reservasi/create", json=_booking("budi", 30), headers=visitor_headers
    )
    assert response.status_code == 200
    assert await _remaining(database, whale_pool, JUNE_1) == 20

    response = await client.post(
        "/api/reservasi/create", json=_booking("sari", 25), headers=other_visitor_headers
    )
    assert response.status_code == 400
    assert "is 20 tickets" in response.json()["message"]
    assert await _remaining(database, whale_pool, JUNE_1) == 20

    response = await client.post(
        "/api/reservasi/create", json=_booking("sari", 20), headers=other_visitor_headers
    )
    assert response.status_code == 200
    assert response.json()["kapasitas_tersisa"] == 0

    # Admin books on behalf of a visitor; still subject to capacity
    response = await client.post(
        "/api/reservasi/create", json=_booking("admin", 1), headers=admin_headers
    )
    assert response.status_code == 400
    assert await _remaining(database, whale_pool, JUNE_1) == 0


@pytest.mark.asyncio
async def test_rejected_booking_leaves_ledger_unchanged(database, accounts, whale_pool):
    async with database.session() as db:
        await reservation_service.create_reservation(db, "budi", whale_pool, JUNE_1, 30)

    with pytest.raises(CapacityExceeded) as exc_info:
        async with database.session() as db:
            await reservation_service.create_reservation(db, "sari", whale_pool, JUNE_1, 25)
    assert exc_info.value.remaining == 20

    async with database.session() as db:
        rows = (await db.execute(select(Reservation))).scalars().all()
    assert [(r.username_p, r.jumlah_tiket) for r in rows] == [("budi", 30)]


@pytest.mark.asyncio
async def test_edit_revalidates_against_other_reservations(database, accounts, whale_pool):
    async with database.session() as db:
        await reservation_service.create_reservation(db, "budi", whale_pool, JUNE_1, 30)

    # Move to an empty day with more tickets
    async with database.session() as db:
        moved = await reservation_service.edit_reservation(
            db, "budi", whale_pool, JUNE_1, 45, new_date=JUNE_2
        )
        assert moved.tanggal_kunjungan == JUNE_2
    assert await _remaining(database, whale_pool, JUNE_1) == 50
    assert await _remaining(database, whale_pool, JUNE_2) == 5

    async with database.session() as db:
        await reservation_service.create_reservation(db, "sari", whale_pool, JUNE_1, 20)

    # Moving back: only sari's 20 count against June 1
    with pytest.raises(CapacityExceeded) as exc_info:
        async with database.session() as db:
            await reservation_service.edit_reservation(
                db, "budi", whale_pool, JUNE_2, 45, new_date=JUNE_1
            )
    assert exc_info.value.remaining == 30
    assert await _remaining(database, whale_pool, JUNE_2) == 5


@pytest.mark.asyncio
async def test_edit_same_day_excludes_own_tickets(database, accounts, whale_pool):
    async with database.session() as db:
        await reservation_service.create_reservation(db, "budi", whale_pool, JUNE_1, 30)
        await reservation_service.create_reservation(db, "sari", whale_pool, JUNE_1, 20)

    # 30 -> 30 would fail if budi's own 30 were counted against him
    async with database.session() as db:
        updated = await reservation_service.edit_reservation(db, "budi", whale_pool, JUNE_1, 30)
        assert updated.jumlah_tiket == 30

    with pytest.raises(CapacityExceeded):
        async with database.session() as db:
            await reservation_service.edit_reservation(db, "budi", whale_pool, JUNE_1, 31)


@pytest.mark.asyncio
async def test_failed_commit_is_reported_as_error(client: AsyncClient, visitor_headers, whale_pool,
                                                 database, monkeypatch):
    """The booking must not be acknowledged unless it was committed."""

    async def failing_commit(self):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(AsyncSession, "commit", failing_commit)
    response = await client.post(
        "/api/reservasi/create", json=_booking("budi", 30), headers=visitor_headers
    )
    monkeypatch.undo()

    assert response.status_code == 500
    assert await _remaining(database, whale_pool, JUNE_1) == 50


@pytest.mark.asyncio
async def test_edit_to_cancelled_frees_capacity(client: AsyncClient, visitor_headers, whale_pool, database):
    await client.post("/api/reservasi/create", json=_booking("budi", 30), headers=visitor_headers)

    response = await client.post(
        "/api/reservasi/edit",
        json={**_booking("budi", 30), "status": STATUS_CANCELLED},
        headers=visitor_headers,
    )
    assert response.status_code == 200
    assert response.json()["updated"]["status"] == "Dibatalkan"
    assert await _remaining(database, whale_pool, JUNE_1) == 50


@pytest.mark.asyncio
async def test_edit_onto_existing_reservation_conflicts(database, accounts, whale_pool):
    async with database.session() as db:
        await reservation_service.create_reservation(db, "budi", whale_pool, JUNE_1, 5)
        await reservation_service.create_reservation(db, "budi", whale_pool, JUNE_2, 5)

    with pytest.raises(ConflictError):
        async with database.session() as db:
            await reservation_service.edit_reservation(
                db, "budi", whale_pool, JUNE_1, 5, new_date=JUNE_2
            )


@pytest.mark.asyncio
async def test_edit_missing_reservation(client: AsyncClient, visitor_headers, whale_pool):
    response = await client.post(
        "/api/reservasi/edit", json=_booking("budi", 3), headers=visitor_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cancel_twice(client: AsyncClient, visitor_headers, whale_pool, database):
    await client.post("/api/reservasi/create", json=_booking("budi", 30), headers=visitor_headers)
    key = {"username_p": "budi", "nama_fasilitas": "Kolam Paus", "tanggal_kunjungan": "2024-06-01"}

    response = await client.post("/api/reservasi/cancel", json=key, headers=visitor_headers)
    assert response.status_code == 200
    assert await _remaining(database, whale_pool, JUNE_1) == 50

    response = await client.post("/api/reservasi/cancel", json=key, headers=visitor_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cancel_missing_reservation_leaves_ledger(database, accounts, whale_pool):
    async with database.session() as db:
        await reservation_service.create_reservation(db, "budi", whale_pool, JUNE_1, 10)

    with pytest.raises(ReservationNotFound):
        async with database.session() as db:
            await reservation_service.cancel_reservation(db, "sari", whale_pool, JUNE_1)

    assert await _remaining(database, whale_pool, JUNE_1) == 40


@pytest.mark.asyncio
async def test_duplicate_reservation(client: AsyncClient, visitor_headers, whale_pool):
    response = await client.post(
        "/api/reservasi/create", json=_booking("budi", 2), headers=visitor_headers
    )
    assert response.status_code == 200

    response = await client.post(
        "/api/reservasi/create", json=_booking("budi", 2), headers=visitor_headers
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_reservation_unknown_facility(client: AsyncClient, visitor_headers, accounts):
    response = await client.post(
        "/api/reservasi/create",
        json=_booking("budi", 1, facility="Kandang Naga"),
        headers=visitor_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_reservation_unauthenticated(client: AsyncClient, whale_pool):
    response = await client.post("/api/reservasi/create", json=_booking("budi", 1))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_reservation_invalid_token(client: AsyncClient, whale_pool):
    response = await client.post(
        "/api/reservasi/create",
        json=_booking("budi", 1),
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_cannot_book_for_someone_else(client: AsyncClient, other_visitor_headers, whale_pool):
    response = await client.post(
        "/api/reservasi/create", json=_booking("budi", 1), headers=other_visitor_headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_missing_fields(client: AsyncClient, visitor_headers, whale_pool):
    response = await client.post(
        "/api/reservasi/create",
        json={"username_p": "budi", "nama_fasilitas": "Kolam Paus"},
        headers=visitor_headers,
    )
    assert response.status_code == 400
    assert "message" in response.json()


@pytest.mark.asyncio
async def test_non_positive_ticket_count(client: AsyncClient, visitor_headers, whale_pool):
    response = await client.post(
        "/api/reservasi/create", json=_booking("budi", 0), headers=visitor_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_user_reservations(client: AsyncClient, visitor_headers, other_visitor_headers,
                                      whale_pool, carousel):
    await client.post("/api/reservasi/create", json=_booking("budi", 2), headers=visitor_headers)
    await client.post(
        "/api/reservasi/create",
        json=_booking("budi", 1, visit="2024-06-05", facility="Komidi Putar"),
        headers=visitor_headers,
    )

    response = await client.get("/api/reservasi/user/budi", headers=visitor_headers)
    assert response.status_code == 200
    data = response.json()
    assert [r["nama_fasilitas"] for r in data] == ["Komidi Putar", "Kolam Paus"]
    assert data[0]["jenis"] == "wahana"
    assert data[1]["lokasi"] == "Zona Laut"

    response = await client.get("/api/reservasi/user/budi", headers=other_visitor_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_listing_requires_admin(client: AsyncClient, visitor_headers, admin_headers, whale_pool):
    await client.post("/api/reservasi/create", json=_booking("budi", 2), headers=visitor_headers)

    response = await client.get("/api/reservasi/admin", headers=visitor_headers)
    assert response.status_code == 403

    response = await client.get("/api/reservasi/admin", headers=admin_headers)
    assert response.status_code == 200
    assert len(response.json()) == 1


@pytest.mark.asyncio
@pytest.mark.skipif(
    not os.environ.get("TEST_DATABASE_URL", "").startswith("postgresql"),
    reason="row locks need PostgreSQL",
)
async def test_concurrent_bookings_never_oversell(database, accounts, whale_pool):
    """Two 30-ticket bookings race for 50 seats; exactly one wins."""

    async def book(username):
        try:
            async with database.session() as db:
                await reservation_service.create_reservation(db, username, whale_pool, JUNE_1, 30)
            return True
        except CapacityExceeded:
            return False

    results = await asyncio.gather(book("budi"), book("sari"))
    assert sorted(results) == [False, True]
    assert await _remaining(database, whale_pool, JUNE_1) == 20

"""
Tests for the row locks that serialize capacity writes.

SQLite compiles FOR UPDATE away, so statements are recorded as the services
issue them and compiled for PostgreSQL, where the locks actually apply.
"""

from datetime import date, datetime

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.schemas.facility import RideUpdate
from zoo_api.services import facility_service, reservation_service

JUNE_1 = date(2024, 6, 1)
JUNE_2 = date(2024, 6, 2)


@pytest.fixture
def executed_sql(monkeypatch) -> list[str]:
    """Every statement passed to AsyncSession.execute, rendered as PostgreSQL."""
    statements: list[str] = []
    original_execute = AsyncSession.execute

    async def recording_execute(self, statement, *args, **kwargs):
        statements.append(str(statement.compile(dialect=postgresql.dialect())))
        return await original_execute(self, statement, *args, **kwargs)

    monkeypatch.setattr(AsyncSession, "execute", recording_execute)
    return statements


def _facility_lock_index(statements: list[str]) -> int:
    for index, sql in enumerate(statements):
        if "FROM fasilitas" in sql and sql.rstrip().endswith("FOR UPDATE"):
            return index
    raise AssertionError("fasilitas row was never locked:\n" + "\n\n".join(statements))


def _ticket_sum_index(statements: list[str]) -> int:
    for index, sql in enumerate(statements):
        if "sum(reservasi.jumlah_tiket)" in sql:
            return index
    raise AssertionError("ticket sum was never computed:\n" + "\n\n".join(statements))


@pytest.mark.asyncio
async def test_create_locks_facility_before_summing(database, accounts, whale_pool, executed_sql):
    async with database.session() as db:
        await reservation_service.create_reservation(db, "budi", whale_pool, JUNE_1, 10)

    assert _facility_lock_index(executed_sql) < _ticket_sum_index(executed_sql)


@pytest.mark.asyncio
async def test_edit_locks_facility_and_reservation_before_summing(database, accounts, whale_pool,
                                                                   executed_sql):
    async with database.session() as db:
        await reservation_service.create_reservation(db, "budi", whale_pool, JUNE_1, 10)
    executed_sql.clear()

    async with database.session() as db:
        await reservation_service.edit_reservation(db, "budi", whale_pool, JUNE_1, 20, new_date=JUNE_2)

    lock = _facility_lock_index(executed_sql)
    row_lock = next(
        index for index, sql in enumerate(executed_sql)
        if "FROM reservasi" in sql and sql.rstrip().endswith("FOR UPDATE")
    )
    assert lock < row_lock < _ticket_sum_index(executed_sql)


@pytest.mark.asyncio
async def test_capacity_change_locks_facility(database, accounts, carousel, executed_sql):
    data = RideUpdate(jadwal=datetime(2024, 6, 1, 13, 0), kapasitas_max=5, peraturan="Tinggi minimal 120 cm")
    async with database.session() as db:
        await facility_service.update_ride(db, carousel, data)

    lock = _facility_lock_index(executed_sql)
    assert "JOIN wahana" in executed_sql[lock]
    # Booked totals are only read once the lock is held
    per_day = next(index for index, sql in enumerate(executed_sql) if "GROUP BY reservasi.tanggal_kunjungan" in sql)
    assert lock < per_day


@pytest.mark.asyncio
async def test_delete_locks_facility_before_reservation_check(database, carousel, executed_sql):
    async with database.session() as db:
        await facility_service.delete_ride(db, carousel)

    lock = _facility_lock_index(executed_sql)
    active_check = next(
        index for index, sql in enumerate(executed_sql)
        if sql.startswith("SELECT count(*)") and "FROM reservasi" in sql
    )
    assert lock < active_check

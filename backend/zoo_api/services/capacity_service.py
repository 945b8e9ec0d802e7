"""
Capacity calculator.

Remaining capacity is always derived, never stored:

    remaining(F, D) = kapasitas_max(F) - SUM(jumlah_tiket of active reservations on (F, D))

Writers must hold the facility row lock (``get_facility(..., lock=True)``)
before calling ``remaining_capacity``; that lock is what keeps two concurrent
bookings from both reading the same remaining figure. Read-only callers do
not need it.

A negative result means bookings already exceed capacity. That can only be
the product of an earlier bug or a manual edit, so it is surfaced as
CapacityInvariantError rather than being clamped to zero.
"""

from datetime import date
from typing import Optional

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.models.facility import Facility, Attraction, Ride, FACILITY_ATTRACTION, FACILITY_RIDE
from zoo_api.models.reservation import Reservation, STATUS_ACTIVE
from zoo_api.core.exceptions import FacilityNotFound, CapacityInvariantError
from zoo_api.core.logging import get_logger

logger = get_logger(__name__)


async def get_facility(db: AsyncSession, facility_name: str, lock: bool = False) -> Facility:
    """Load a facility, optionally taking a row lock for the rest of the transaction."""
    query = select(Facility).where(Facility.nama == facility_name)
    if lock:
        query = query.with_for_update()
    result = await db.execute(query)
    facility = result.scalar_one_or_none()

    if facility is None:
        raise FacilityNotFound(facility_name)
    return facility


async def booked_tickets(
    db: AsyncSession,
    facility_name: str,
    visit_date: date,
    exclude: Optional[Reservation] = None,
) -> int:
    """
    Sum of active tickets for a facility on one day.

    ``exclude`` drops one reservation's own contribution, which is what an
    edit needs when it re-validates the row it is about to overwrite.
    """
    query = select(func.coalesce(func.sum(Reservation.jumlah_tiket), 0)).where(
        Reservation.nama_fasilitas == facility_name,
        Reservation.tanggal_kunjungan == visit_date,
        Reservation.status == STATUS_ACTIVE,
    )
    if exclude is not None and exclude.tanggal_kunjungan == visit_date:
        # facility and day are fixed here, so the visitor identifies the row
        query = query.where(Reservation.username_p != exclude.username_p)

    return int((await db.execute(query)).scalar_one())


def _check_invariant(facility_name: str, visit_date: date, capacity: int, booked: int) -> int:
    remaining = capacity - booked
    if remaining < 0:
        logger.error(
            "capacity_invariant_violated",
            facility=facility_name,
            visit_date=visit_date.isoformat(),
            capacity=capacity,
            booked=booked,
        )
        raise CapacityInvariantError(
            f"Facility '{facility_name}' has {booked} tickets booked on "
            f"{visit_date.isoformat()} against a capacity of {capacity}"
        )
    return remaining


async def remaining_capacity(
    db: AsyncSession,
    facility: Facility,
    visit_date: date,
    exclude: Optional[Reservation] = None,
) -> int:
    booked = await booked_tickets(db, facility.nama, visit_date, exclude=exclude)
    return _check_invariant(facility.nama, visit_date, facility.kapasitas_max, booked)


async def available_capacity(db: AsyncSession, facility_name: str, visit_date: date) -> int:
    """Remaining tickets for ``facility_name`` on ``visit_date``. Pure read."""
    facility = await get_facility(db, facility_name)
    return await remaining_capacity(db, facility, visit_date)


async def max_daily_booked(db: AsyncSession, facility_name: str) -> int:
    """Largest active ticket total held on any single day, 0 when unbooked."""
    per_day = (
        select(func.sum(Reservation.jumlah_tiket).label("booked"))
        .where(
            Reservation.nama_fasilitas == facility_name,
            Reservation.status == STATUS_ACTIVE,
        )
        .group_by(Reservation.tanggal_kunjungan)
        .subquery()
    )
    result = await db.execute(select(func.coalesce(func.max(per_day.c.booked), 0)))
    return int(result.scalar_one())


async def list_facility_availability(db: AsyncSession, visit_date: date) -> list[dict]:
    """
    Every attraction and ride with its remaining capacity on ``visit_date``.
    One round trip: the per-facility sums are a grouped subquery joined back on name.
    """
    booked = (
        select(
            Reservation.nama_fasilitas.label("nama_fasilitas"),
            func.sum(Reservation.jumlah_tiket).label("booked"),
        )
        .where(
            Reservation.status == STATUS_ACTIVE,
            Reservation.tanggal_kunjungan == visit_date,
        )
        .group_by(Reservation.nama_fasilitas)
        .subquery()
    )

    query = (
        select(
            Facility,
            Attraction.nama_atraksi,
            Attraction.lokasi,
            Ride.peraturan,
            func.coalesce(booked.c.booked, 0).label("booked"),
        )
        .outerjoin(Attraction, Attraction.nama_atraksi == Facility.nama)
        .outerjoin(Ride, Ride.nama_wahana == Facility.nama)
        .outerjoin(booked, booked.c.nama_fasilitas == Facility.nama)
        .where(or_(Attraction.nama_atraksi.isnot(None), Ride.nama_wahana.isnot(None)))
        .order_by(Facility.nama)
    )
    result = await db.execute(query)

    rows = []
    for facility, attraction_name, lokasi, peraturan, booked_count in result.all():
        rows.append({
            "nama": facility.nama,
            "jenis": FACILITY_ATTRACTION if attraction_name is not None else FACILITY_RIDE,
            "jadwal": facility.jadwal,
            "kapasitas_max": facility.kapasitas_max,
            "kapasitas_tersedia": _check_invariant(
                facility.nama, visit_date, facility.kapasitas_max, int(booked_count)
            ),
            "tanggal": visit_date,
            "lokasi": lokasi,
            "peraturan": peraturan,
        })
    return rows


async def facility_availability(
    db: AsyncSession, facility_name: str, facility_type: str, visit_date: date
) -> dict:
    """Availability for one facility, which must be of ``facility_type``."""
    if facility_type == FACILITY_ATTRACTION:
        query = select(Facility, Attraction.lokasi).join(
            Attraction, Attraction.nama_atraksi == Facility.nama
        )
    else:
        query = select(Facility, Ride.peraturan).join(Ride, Ride.nama_wahana == Facility.nama)
    result = await db.execute(query.where(Facility.nama == facility_name))
    row = result.first()
    if row is None:
        raise FacilityNotFound(facility_name)

    facility, extra = row
    lokasi = extra if facility_type == FACILITY_ATTRACTION else None
    peraturan = extra if facility_type == FACILITY_RIDE else None
    return {
        "nama": facility.nama,
        "jenis": facility_type,
        "jadwal": facility.jadwal,
        "kapasitas_max": facility.kapasitas_max,
        "kapasitas_tersedia": await remaining_capacity(db, facility, visit_date),
        "tanggal": visit_date,
        "lokasi": lokasi,
        "peraturan": peraturan,
    }

"""
Reservation service with concurrency-safe capacity accounting.

CONCURRENCY STRATEGY: Pessimistic lock on the facility row
==========================================================

Problem:
  Two visitors book the same facility for the same day at the same time.
  Both sum the existing tickets, both see 20 remaining, both insert 20.
  Result: 40 tickets against 20 seats.

  Unlike a single counter column, remaining capacity here is an aggregate
  over many reservation rows, per day. There is no single row an
  optimistic version check could guard, and a new reservation row is a
  phantom to any concurrent reader.

Solution:
  Every write that can add tickets first locks the facility row:

    SELECT ... FROM fasilitas WHERE nama = :name FOR UPDATE

  then computes the sum and writes inside the same transaction. The second
  writer blocks on the lock until the first commits or rolls back, and then
  sums a ledger that already contains the first booking.

  This serializes bookings per facility (across all days). Throughput per
  facility is bounded by one short transaction at a time, which is plenty
  for a zoo's ticket desk; different facilities never contend.

  Cancellation only releases tickets, so it does not need the lock.

The unit of work (Database.session) commits when the request succeeds and
rolls back on any exception, so a rejected booking leaves the ledger as it was.
"""

from datetime import date
from typing import Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.models.facility import Facility, Attraction, Ride, FACILITY_ATTRACTION, FACILITY_RIDE
from zoo_api.models.reservation import Reservation, STATUS_ACTIVE
from zoo_api.models.user import User
from zoo_api.core.exceptions import (
    CapacityExceeded,
    ConflictError,
    NotFoundError,
    ReservationNotFound,
    ValidationError,
)
from zoo_api.core.logging import get_logger
from zoo_api.core.metrics import record_reservation_attempt, record_tickets_booked
from zoo_api.services.capacity_service import get_facility, remaining_capacity

logger = get_logger(__name__)


async def _get_reservation(
    db: AsyncSession,
    username: str,
    facility_name: str,
    visit_date: date,
    lock: bool = False,
) -> Optional[Reservation]:
    query = select(Reservation).where(
        Reservation.username_p == username,
        Reservation.nama_fasilitas == facility_name,
        Reservation.tanggal_kunjungan == visit_date,
    )
    if lock:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def _facility_type(db: AsyncSession, facility_name: str) -> str:
    result = await db.execute(
        select(Attraction.nama_atraksi).where(Attraction.nama_atraksi == facility_name)
    )
    return FACILITY_ATTRACTION if result.scalar_one_or_none() else FACILITY_RIDE


async def create_reservation(
    db: AsyncSession,
    username: str,
    facility_name: str,
    visit_date: date,
    ticket_count: int,
) -> tuple[Reservation, int]:
    """
    Book ``ticket_count`` tickets for ``username``.
    Returns the new reservation and the capacity left on that day afterwards.
    """
    if ticket_count <= 0:
        raise ValidationError("jumlah_tiket must be greater than 0")

    facility = await get_facility(db, facility_name, lock=True)

    if await db.get(User, username) is None:
        raise NotFoundError(f"Visitor '{username}' not found")

    if await _get_reservation(db, username, facility_name, visit_date) is not None:
        record_reservation_attempt("create", "conflict")
        raise ConflictError(
            f"{username} already has a reservation for '{facility_name}' on "
            f"{visit_date.isoformat()}; edit it instead"
        )

    remaining = await remaining_capacity(db, facility, visit_date)
    if ticket_count > remaining:
        logger.warning(
            "capacity_exceeded",
            operation="create",
            facility=facility_name,
            visit_date=visit_date.isoformat(),
            requested=ticket_count,
            remaining=remaining,
        )
        record_reservation_attempt("create", "capacity_exceeded")
        raise CapacityExceeded(facility_name, visit_date, remaining, ticket_count)

    reservation = Reservation(
        username_p=username,
        nama_fasilitas=facility_name,
        tanggal_kunjungan=visit_date,
        jumlah_tiket=ticket_count,
        status=STATUS_ACTIVE,
    )
    db.add(reservation)
    await db.flush()
    await db.refresh(reservation)

    logger.info(
        "reservation_created",
        username=username,
        facility=facility_name,
        visit_date=visit_date.isoformat(),
        tickets=ticket_count,
        remaining=remaining - ticket_count,
    )
    record_reservation_attempt("create", "success")
    record_tickets_booked(await _facility_type(db, facility_name), ticket_count)
    return reservation, remaining - ticket_count


async def edit_reservation(
    db: AsyncSession,
    username: str,
    facility_name: str,
    visit_date: date,
    ticket_count: int,
    status: str = STATUS_ACTIVE,
    new_date: Optional[date] = None,
) -> Reservation:
    """
    Change date, ticket count and status of the reservation identified by
    (username, facility_name, visit_date).

    An active result is re-validated against the target day with this
    reservation's own previous tickets left out of the sum.
    """
    if ticket_count <= 0:
        raise ValidationError("jumlah_tiket must be greater than 0")

    target_date = new_date or visit_date
    facility = await get_facility(db, facility_name, lock=True)

    reservation = await _get_reservation(db, username, facility_name, visit_date, lock=True)
    if reservation is None:
        record_reservation_attempt("edit", "not_found")
        raise ReservationNotFound(username, facility_name, visit_date)

    if target_date != visit_date and (
        await _get_reservation(db, username, facility_name, target_date) is not None
    ):
        record_reservation_attempt("edit", "conflict")
        raise ConflictError(
            f"{username} already has a reservation for '{facility_name}' on {target_date.isoformat()}"
        )

    if status == STATUS_ACTIVE:
        remaining = await remaining_capacity(db, facility, target_date, exclude=reservation)
        if ticket_count > remaining:
            logger.warning(
                "capacity_exceeded",
                operation="edit",
                facility=facility_name,
                visit_date=target_date.isoformat(),
                requested=ticket_count,
                remaining=remaining,
            )
            record_reservation_attempt("edit", "capacity_exceeded")
            raise CapacityExceeded(facility_name, target_date, remaining, ticket_count)

    previous = (reservation.tanggal_kunjungan, reservation.jumlah_tiket, reservation.status)
    reservation.tanggal_kunjungan = target_date
    reservation.jumlah_tiket = ticket_count
    reservation.status = status
    await db.flush()
    await db.refresh(reservation)

    logger.info(
        "reservation_updated",
        username=username,
        facility=facility_name,
        from_date=previous[0].isoformat(),
        to_date=target_date.isoformat(),
        from_tickets=previous[1],
        to_tickets=ticket_count,
        from_status=previous[2],
        to_status=status,
    )
    record_reservation_attempt("edit", "success")
    return reservation


async def cancel_reservation(
    db: AsyncSession,
    username: str,
    facility_name: str,
    visit_date: date,
) -> None:
    """Hard-delete the reservation; its tickets go back to the day's capacity."""
    result = await db.execute(
        delete(Reservation).where(
            Reservation.username_p == username,
            Reservation.nama_fasilitas == facility_name,
            Reservation.tanggal_kunjungan == visit_date,
        )
    )
    if result.rowcount == 0:
        record_reservation_attempt("cancel", "not_found")
        raise ReservationNotFound(username, facility_name, visit_date)

    logger.info(
        "reservation_cancelled",
        username=username,
        facility=facility_name,
        visit_date=visit_date.isoformat(),
    )
    record_reservation_attempt("cancel", "success")


def _detail_query():
    return (
        select(
            Reservation,
            Facility.jadwal,
            Attraction.nama_atraksi,
            Attraction.lokasi,
            Ride.peraturan,
        )
        .join(Facility, Facility.nama == Reservation.nama_fasilitas)
        .outerjoin(Attraction, Attraction.nama_atraksi == Reservation.nama_fasilitas)
        .outerjoin(Ride, Ride.nama_wahana == Reservation.nama_fasilitas)
    )


def _detail_rows(result) -> list[dict]:
    rows = []
    for reservation, jadwal, attraction_name, lokasi, peraturan in result.all():
        rows.append({
            "username_p": reservation.username_p,
            "nama_fasilitas": reservation.nama_fasilitas,
            "tanggal_kunjungan": reservation.tanggal_kunjungan,
            "jumlah_tiket": reservation.jumlah_tiket,
            "status": reservation.status,
            "jenis": FACILITY_ATTRACTION if attraction_name is not None else FACILITY_RIDE,
            "jadwal": jadwal,
            "lokasi": lokasi,
            "peraturan": peraturan,
        })
    return rows


async def get_user_reservations(db: AsyncSession, username: str) -> list[dict]:
    """A visitor's reservations, latest visit first."""
    result = await db.execute(
        _detail_query()
        .where(Reservation.username_p == username)
        .order_by(Reservation.tanggal_kunjungan.desc(), Reservation.nama_fasilitas)
    )
    return _detail_rows(result)


async def get_all_reservations(db: AsyncSession) -> list[dict]:
    """Every reservation in the ledger, for admin staff."""
    result = await db.execute(
        _detail_query().order_by(
            Reservation.tanggal_kunjungan.desc(),
            Reservation.nama_fasilitas,
            Reservation.username_p,
        )
    )
    return _detail_rows(result)

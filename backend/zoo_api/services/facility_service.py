"""
Facility lifecycle: create, update and delete attractions and rides.

Each operation touches several tables (fasilitas + atraksi/wahana, and for
attractions jadwal_penugasan and berpartisipasi). All of it runs in the
caller's unit of work, so any failure part-way through rolls every statement
back and no partial facility is left behind.

Deletion removes rows children-first. It is refused while the facility still
has active reservations; cancelled ones are purged with it.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.models.animal import Animal
from zoo_api.models.facility import (
    Facility, Attraction, Ride, TrainerAssignment, Participation,
    FACILITY_ATTRACTION, FACILITY_RIDE,
)
from zoo_api.models.reservation import Reservation, STATUS_ACTIVE
from zoo_api.models.user import User, ROLE_TRAINER
from zoo_api.schemas.facility import AttractionCreate, AttractionUpdate, RideCreate, RideUpdate
from zoo_api.core.exceptions import ConflictError, NotFoundError, TransactionFailure
from zoo_api.core.logging import get_logger
from zoo_api.core.metrics import record_facility_operation
from zoo_api.services.capacity_service import max_daily_booked

logger = get_logger(__name__)


async def _ensure_name_free(db: AsyncSession, name: str) -> None:
    if await db.get(Facility, name) is not None:
        raise ConflictError(f"Facility '{name}' already exists")


async def _ensure_trainer(db: AsyncSession, username: str) -> None:
    trainer = await db.get(User, username)
    if trainer is None or trainer.role != ROLE_TRAINER:
        raise NotFoundError(f"Trainer '{username}' not found")


async def _add_participants(db: AsyncSession, facility_name: str, animal_ids: list[str]) -> None:
    for animal_id in dict.fromkeys(animal_ids):
        if await db.get(Animal, animal_id) is None:
            raise NotFoundError(f"Animal '{animal_id}' not found")
        db.add(Participation(nama_fasilitas=facility_name, id_hewan=animal_id))
    await db.flush()


async def _lock_facility(db: AsyncSession, name: str, extension, key_column) -> Facility:
    """Lock the facility row and check the type-specific row exists."""
    result = await db.execute(
        select(Facility)
        .join(extension, key_column == Facility.nama)
        .where(Facility.nama == name)
        .with_for_update()
    )
    facility = result.scalar_one_or_none()
    if facility is None:
        label = "Attraction" if extension is Attraction else "Ride"
        raise NotFoundError(f"{label} '{name}' not found")
    return facility


async def _apply_schedule(db: AsyncSession, facility: Facility, jadwal: datetime, capacity: int) -> None:
    if capacity < facility.kapasitas_max:
        booked = await max_daily_booked(db, facility.nama)
        if capacity < booked:
            raise ConflictError(
                f"Cannot lower capacity of '{facility.nama}' to {capacity}: "
                f"{booked} tickets are already booked on a single day"
            )
    facility.jadwal = jadwal
    facility.kapasitas_max = capacity


async def _ensure_no_active_reservations(db: AsyncSession, name: str) -> None:
    active = await db.execute(
        select(func.count()).select_from(Reservation).where(
            Reservation.nama_fasilitas == name,
            Reservation.status == STATUS_ACTIVE,
        )
    )
    active_count = active.scalar_one()
    if active_count:
        raise ConflictError(
            f"Facility '{name}' still has {active_count} active reservation(s); cancel them first"
        )


async def _delete_facility_rows(db: AsyncSession, name: str) -> int:
    """Purge cancelled reservations and the facility row; returns reservations removed."""
    purged = await db.execute(delete(Reservation).where(Reservation.nama_fasilitas == name))
    await db.execute(delete(Facility).where(Facility.nama == name))
    return purged.rowcount or 0


def _is_unique_violation(error: IntegrityError) -> bool:
    orig = error.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig.__cause__, "sqlstate", None)
    # 23505 is PostgreSQL's unique_violation; SQLite only reports it in the message
    return sqlstate == "23505" or "UNIQUE constraint failed" in str(orig)


async def _run(operation: str, facility_type: str, name: str, coro):
    """Await a lifecycle step, translating database constraint errors."""
    try:
        result = await coro
    except IntegrityError as e:
        if operation == "create" and _is_unique_violation(e):
            # A concurrent create took the name after _ensure_name_free passed
            logger.warning(f"{facility_type}_create_conflict", facility=name)
            record_facility_operation(facility_type, operation, success=False)
            raise ConflictError(f"Facility '{name}' already exists") from e
        logger.error(
            f"{facility_type}_{operation}_failed",
            facility=name,
            error=str(e.orig),
        )
        record_facility_operation(facility_type, operation, success=False)
        raise TransactionFailure() from e
    except Exception:
        record_facility_operation(facility_type, operation, success=False)
        raise
    record_facility_operation(facility_type, operation, success=True)
    return result


# =============================================================================
# Attractions
# =============================================================================

async def _create_attraction(db: AsyncSession, data: AttractionCreate) -> None:
    name = data.nama_atraksi
    await _ensure_name_free(db, name)
    await _ensure_trainer(db, data.pelatih)

    db.add(Facility(nama=name, jadwal=data.jadwal, kapasitas_max=data.kapasitas_max))
    await db.flush()
    db.add(Attraction(nama_atraksi=name, lokasi=data.lokasi))
    await db.flush()
    db.add(TrainerAssignment(username_lh=data.pelatih, nama_atraksi=name, tgl_penugasan=datetime.now()))
    await db.flush()
    await _add_participants(db, name, data.hewan_terlibat)

    logger.info(
        "attraction_created",
        facility=name,
        capacity=data.kapasitas_max,
        trainer=data.pelatih,
        animals=len(data.hewan_terlibat),
    )


async def create_attraction(db: AsyncSession, data: AttractionCreate) -> None:
    await _run("create", FACILITY_ATTRACTION, data.nama_atraksi, _create_attraction(db, data))


async def _update_attraction(db: AsyncSession, name: str, data: AttractionUpdate) -> None:
    facility = await _lock_facility(db, name, Attraction, Attraction.nama_atraksi)
    await _apply_schedule(db, facility, data.jadwal, data.kapasitas_max)

    attraction = await db.get(Attraction, name)
    attraction.lokasi = data.lokasi

    current_trainer = await _current_trainer(db, name)
    if current_trainer != data.pelatih:
        await _ensure_trainer(db, data.pelatih)
        await db.execute(delete(TrainerAssignment).where(TrainerAssignment.nama_atraksi == name))
        db.add(TrainerAssignment(username_lh=data.pelatih, nama_atraksi=name, tgl_penugasan=datetime.now()))

    await db.execute(delete(Participation).where(Participation.nama_fasilitas == name))
    await db.flush()
    await _add_participants(db, name, data.hewan_terlibat)

    logger.info(
        "attraction_updated",
        facility=name,
        capacity=data.kapasitas_max,
        trainer=data.pelatih,
        trainer_changed=current_trainer != data.pelatih,
        animals=len(data.hewan_terlibat),
    )


async def update_attraction(db: AsyncSession, name: str, data: AttractionUpdate) -> None:
    await _run("update", FACILITY_ATTRACTION, name, _update_attraction(db, name, data))


async def _delete_attraction(db: AsyncSession, name: str) -> None:
    await _lock_facility(db, name, Attraction, Attraction.nama_atraksi)
    await _ensure_no_active_reservations(db, name)

    await db.execute(delete(Participation).where(Participation.nama_fasilitas == name))
    await db.execute(delete(TrainerAssignment).where(TrainerAssignment.nama_atraksi == name))
    await db.execute(delete(Attraction).where(Attraction.nama_atraksi == name))
    purged = await _delete_facility_rows(db, name)

    logger.info("attraction_deleted", facility=name, cancelled_reservations_purged=purged)


async def delete_attraction(db: AsyncSession, name: str) -> None:
    await _run("delete", FACILITY_ATTRACTION, name, _delete_attraction(db, name))


async def _current_trainer(db: AsyncSession, name: str) -> Optional[str]:
    result = await db.execute(
        select(TrainerAssignment.username_lh)
        .where(TrainerAssignment.nama_atraksi == name)
        .order_by(TrainerAssignment.tgl_penugasan.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_attractions(db: AsyncSession, name: Optional[str] = None) -> list[dict]:
    """Attractions with their current trainer and participating animal ids."""
    query = (
        select(Attraction, Facility)
        .join(Facility, Facility.nama == Attraction.nama_atraksi)
        .order_by(Attraction.nama_atraksi)
    )
    if name is not None:
        query = query.where(Attraction.nama_atraksi == name)
    attractions = (await db.execute(query)).all()
    if not attractions:
        return []

    names = [attraction.nama_atraksi for attraction, _ in attractions]

    trainers: dict[str, str] = {}
    assignments = await db.execute(
        select(TrainerAssignment.nama_atraksi, TrainerAssignment.username_lh)
        .where(TrainerAssignment.nama_atraksi.in_(names))
        .order_by(TrainerAssignment.tgl_penugasan)
    )
    for attraction_name, trainer in assignments.all():
        trainers[attraction_name] = trainer  # latest assignment wins

    animals: dict[str, list[str]] = {n: [] for n in names}
    participations = await db.execute(
        select(Participation.nama_fasilitas, Participation.id_hewan)
        .where(Participation.nama_fasilitas.in_(names))
        .order_by(Participation.id_hewan)
    )
    for facility_name, animal_id in participations.all():
        animals[facility_name].append(animal_id)

    return [
        {
            "nama_atraksi": attraction.nama_atraksi,
            "lokasi": attraction.lokasi,
            "jadwal": facility.jadwal,
            "kapasitas_max": facility.kapasitas_max,
            "pelatih": trainers.get(attraction.nama_atraksi),
            "hewan_terlibat": animals[attraction.nama_atraksi],
        }
        for attraction, facility in attractions
    ]


async def get_attraction(db: AsyncSession, name: str) -> dict:
    found = await list_attractions(db, name=name)
    if not found:
        raise NotFoundError(f"Attraction '{name}' not found")
    return found[0]


# =============================================================================
# Rides
# =============================================================================

async def _create_ride(db: AsyncSession, data: RideCreate) -> None:
    name = data.nama_wahana
    await _ensure_name_free(db, name)

    db.add(Facility(nama=name, jadwal=data.jadwal, kapasitas_max=data.kapasitas_max))
    await db.flush()
    db.add(Ride(nama_wahana=name, peraturan=data.peraturan))
    await db.flush()

    logger.info("ride_created", facility=name, capacity=data.kapasitas_max)


async def create_ride(db: AsyncSession, data: RideCreate) -> None:
    await _run("create", FACILITY_RIDE, data.nama_wahana, _create_ride(db, data))


async def _update_ride(db: AsyncSession, name: str, data: RideUpdate) -> None:
    facility = await _lock_facility(db, name, Ride, Ride.nama_wahana)
    await _apply_schedule(db, facility, data.jadwal, data.kapasitas_max)

    ride = await db.get(Ride, name)
    ride.peraturan = data.peraturan
    await db.flush()

    logger.info("ride_updated", facility=name, capacity=data.kapasitas_max)


async def update_ride(db: AsyncSession, name: str, data: RideUpdate) -> None:
    await _run("update", FACILITY_RIDE, name, _update_ride(db, name, data))


async def _delete_ride(db: AsyncSession, name: str) -> None:
    await _lock_facility(db, name, Ride, Ride.nama_wahana)
    await _ensure_no_active_reservations(db, name)

    await db.execute(delete(Ride).where(Ride.nama_wahana == name))
    purged = await _delete_facility_rows(db, name)

    logger.info("ride_deleted", facility=name, cancelled_reservations_purged=purged)


async def delete_ride(db: AsyncSession, name: str) -> None:
    await _run("delete", FACILITY_RIDE, name, _delete_ride(db, name))


async def list_rides(db: AsyncSession, name: Optional[str] = None) -> list[dict]:
    query = (
        select(Ride, Facility)
        .join(Facility, Facility.nama == Ride.nama_wahana)
        .order_by(Ride.nama_wahana)
    )
    if name is not None:
        query = query.where(Ride.nama_wahana == name)
    result = await db.execute(query)
    return [
        {
            "nama_wahana": ride.nama_wahana,
            "peraturan": ride.peraturan,
            "jadwal": facility.jadwal,
            "kapasitas_max": facility.kapasitas_max,
        }
        for ride, facility in result.all()
    ]


async def get_ride(db: AsyncSession, name: str) -> dict:
    found = await list_rides(db, name=name)
    if not found:
        raise NotFoundError(f"Ride '{name}' not found")
    return found[0]


# =============================================================================
# Form lookups
# =============================================================================

async def list_trainers(db: AsyncSession) -> list[dict]:
    result = await db.execute(
        select(User)
        .where(User.role == ROLE_TRAINER)
        .order_by(User.nama_depan, User.nama_belakang)
    )
    return [
        {"username": user.username, "nama_lengkap": user.nama_lengkap}
        for user in result.scalars().all()
    ]


async def list_animals(db: AsyncSession) -> list[Animal]:
    result = await db.execute(select(Animal).order_by(Animal.nama))
    return list(result.scalars().all())

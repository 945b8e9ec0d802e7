"""
Reservation endpoints: availability, booking, editing and cancelling tickets.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.api.deps import get_db, get_current_principal, require_admin, ensure_can_act_for
from zoo_api.core.metrics import reservation_latency
from zoo_api.core.security import Principal
from zoo_api.models.facility import FACILITY_ATTRACTION, FACILITY_RIDE
from zoo_api.schemas.common import MessageResponse
from zoo_api.schemas.facility import FacilityAvailability
from zoo_api.schemas.reservation import (
    ReservationCreate,
    ReservationEdit,
    ReservationCancel,
    ReservationResponse,
    ReservationDetailResponse,
    ReservationCreateResponse,
    ReservationEditResponse,
)
from zoo_api.services import capacity_service, reservation_service

router = APIRouter(prefix="/reservasi", tags=["Reservations"])


@router.get("/fasilitas", response_model=list[FacilityAvailability])
async def list_facilities(
    tanggal: Optional[date] = Query(None, description="Visit date, defaults to today"),
    db: AsyncSession = Depends(get_db),
):
    """All attractions and rides with remaining capacity for the day."""
    return await capacity_service.list_facility_availability(db, tanggal or date.today())


@router.get("/atraksi/{nama}", response_model=FacilityAvailability)
async def attraction_booking_detail(
    nama: str,
    tanggal: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await capacity_service.facility_availability(
        db, nama, FACILITY_ATTRACTION, tanggal or date.today()
    )


@router.get("/wahana/{nama}", response_model=FacilityAvailability)
async def ride_booking_detail(
    nama: str,
    tanggal: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await capacity_service.facility_availability(
        db, nama, FACILITY_RIDE, tanggal or date.today()
    )


@router.post("/create", response_model=ReservationCreateResponse)
async def create_reservation(
    data: ReservationCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Book tickets for a facility on a date.

    The facility row is locked while the day's tickets are summed, so two
    concurrent bookings can never jointly exceed capacity. Over-capacity
    requests fail with 400 and the exact remaining count.
    """
    ensure_can_act_for(principal, data.username_p)
    with reservation_latency.labels(operation="create").time():
        reservation, remaining = await reservation_service.create_reservation(
            db, data.username_p, data.nama_fasilitas, data.tanggal_kunjungan, data.jumlah_tiket
        )
        # Commit before answering so a failed commit never reaches the client as a success
        await db.commit()
    return ReservationCreateResponse(
        message="Reservation created",
        reservasi=ReservationResponse.model_validate(reservation),
        kapasitas_tersisa=remaining,
    )


@router.post("/edit", response_model=ReservationEditResponse)
async def edit_reservation(
    data: ReservationEdit,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Change date, ticket count or status; capacity is re-checked on the target day."""
    ensure_can_act_for(principal, data.username_p)
    with reservation_latency.labels(operation="edit").time():
        reservation = await reservation_service.edit_reservation(
            db,
            data.username_p,
            data.nama_fasilitas,
            data.tanggal_kunjungan,
            data.jumlah_tiket,
            status=data.status,
            new_date=data.tanggal_baru,
        )
        await db.commit()
    return ReservationEditResponse(
        message="Reservation updated",
        updated=ReservationResponse.model_validate(reservation),
    )


@router.post("/cancel", response_model=MessageResponse)
async def cancel_reservation(
    data: ReservationCancel,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    ensure_can_act_for(principal, data.username_p)
    with reservation_latency.labels(operation="cancel").time():
        await reservation_service.cancel_reservation(
            db, data.username_p, data.nama_fasilitas, data.tanggal_kunjungan
        )
        await db.commit()
    return MessageResponse(message="Reservation cancelled")


@router.get("/user/{username}", response_model=list[ReservationDetailResponse])
async def list_user_reservations(
    username: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    ensure_can_act_for(principal, username)
    return await reservation_service.get_user_reservations(db, username)


@router.get("/admin", response_model=list[ReservationDetailResponse])
async def list_all_reservations(
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await reservation_service.get_all_reservations(db)

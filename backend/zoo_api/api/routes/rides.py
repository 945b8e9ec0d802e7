"""
Ride (wahana) endpoints. Same transaction and cache rules as attractions.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.api.deps import get_db, require_admin
from zoo_api.core.security import Principal
from zoo_api.models.facility import FACILITY_RIDE
from zoo_api.schemas.facility import RideCreate, RideUpdate, RideDelete, RideResponse, FacilityMessage
from zoo_api.services import facility_service
from zoo_api.services.cache_service import (
    get_cached_listing,
    set_cached_listing,
    invalidate_facility_cache,
)

router = APIRouter(prefix="/wahana", tags=["Rides"])


@router.get("", response_model=list[RideResponse])
async def list_rides(db: AsyncSession = Depends(get_db)):
    cached = await get_cached_listing(FACILITY_RIDE)
    if cached is not None:
        return cached

    items = [
        RideResponse(**item).model_dump(mode="json")
        for item in await facility_service.list_rides(db)
    ]
    await set_cached_listing(FACILITY_RIDE, items)
    return items


@router.get("/{nama}", response_model=RideResponse)
async def get_ride(nama: str, db: AsyncSession = Depends(get_db)):
    return await facility_service.get_ride(db, nama)


@router.post("/create", response_model=FacilityMessage)
async def create_ride(
    data: RideCreate,
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await facility_service.create_ride(db, data)
    await db.commit()
    await invalidate_facility_cache()
    return FacilityMessage(message="Ride created", nama=data.nama_wahana)


@router.put("/{nama}", response_model=FacilityMessage)
async def update_ride(
    nama: str,
    data: RideUpdate,
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await facility_service.update_ride(db, nama, data)
    await db.commit()
    await invalidate_facility_cache()
    return FacilityMessage(message="Ride updated", nama=nama)


@router.delete("", response_model=FacilityMessage)
async def delete_ride(
    data: RideDelete,
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await facility_service.delete_ride(db, data.nama_wahana)
    await db.commit()
    await invalidate_facility_cache()
    return FacilityMessage(message="Ride deleted", nama=data.nama_wahana)

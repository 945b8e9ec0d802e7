"""
Attraction endpoints. Reads are public; writes are admin-only and run as one
transaction across fasilitas, atraksi, jadwal_penugasan and berpartisipasi.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.api.deps import get_db, require_admin
from zoo_api.core.security import Principal
from zoo_api.models.facility import FACILITY_ATTRACTION
from zoo_api.schemas.facility import (
    AttractionCreate,
    AttractionUpdate,
    AttractionDelete,
    AttractionResponse,
    FacilityMessage,
)
from zoo_api.services import facility_service
from zoo_api.services.cache_service import (
    get_cached_listing,
    set_cached_listing,
    invalidate_facility_cache,
)

router = APIRouter(prefix="/atraksi", tags=["Attractions"])


@router.get("", response_model=list[AttractionResponse])
async def list_attractions(db: AsyncSession = Depends(get_db)):
    """Attraction catalog. Cached in Redis; invalidated on every attraction write."""
    cached = await get_cached_listing(FACILITY_ATTRACTION)
    if cached is not None:
        return cached

    items = [
        AttractionResponse(**item).model_dump(mode="json")
        for item in await facility_service.list_attractions(db)
    ]
    await set_cached_listing(FACILITY_ATTRACTION, items)
    return items


@router.get("/{nama}", response_model=AttractionResponse)
async def get_attraction(nama: str, db: AsyncSession = Depends(get_db)):
    return await facility_service.get_attraction(db, nama)


@router.post("/create", response_model=FacilityMessage)
async def create_attraction(
    data: AttractionCreate,
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await facility_service.create_attraction(db, data)
    # Commit before invalidating so a concurrent reader cannot re-cache the old list
    await db.commit()
    await invalidate_facility_cache()
    return FacilityMessage(message="Attraction created", nama=data.nama_atraksi)


@router.put("/{nama}", response_model=FacilityMessage)
async def update_attraction(
    nama: str,
    data: AttractionUpdate,
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await facility_service.update_attraction(db, nama, data)
    await db.commit()
    await invalidate_facility_cache()
    return FacilityMessage(message="Attraction updated", nama=nama)


@router.delete("", response_model=FacilityMessage)
async def delete_attraction(
    data: AttractionDelete,
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await facility_service.delete_attraction(db, data.nama_atraksi)
    await db.commit()
    await invalidate_facility_cache()
    return FacilityMessage(message="Attraction deleted", nama=data.nama_atraksi)

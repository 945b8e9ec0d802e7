"""
Lookup lists that feed the attraction forms.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.api.deps import get_db, get_current_principal
from zoo_api.core.security import Principal
from zoo_api.schemas.facility import TrainerResponse, AnimalResponse
from zoo_api.services import facility_service

router = APIRouter(tags=["Lookups"])


@router.get("/pelatih", response_model=list[TrainerResponse])
async def list_trainers(
    _principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await facility_service.list_trainers(db)


@router.get("/hewan", response_model=list[AnimalResponse])
async def list_animals(
    _principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await facility_service.list_animals(db)

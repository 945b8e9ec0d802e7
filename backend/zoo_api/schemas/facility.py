"""
Pydantic schemas for attractions, rides and facility availability.
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class ScheduleMixin(BaseModel):
    jadwal: datetime
    kapasitas_max: int = Field(..., gt=0, le=100000)

    @field_validator("jadwal")
    @classmethod
    def strip_timezone(cls, value: datetime) -> datetime:
        # Schedules are zoo wall-clock times, stored without a zone
        return value.replace(tzinfo=None)


class AttractionFields(ScheduleMixin):
    lokasi: str = Field(..., min_length=1, max_length=100)
    pelatih: str = Field(..., min_length=1, max_length=50)
    hewan_terlibat: list[str] = Field(default_factory=list)


class AttractionCreate(AttractionFields):
    nama_atraksi: str = Field(..., min_length=1, max_length=50)


class AttractionUpdate(AttractionFields):
    pass


class AttractionDelete(BaseModel):
    nama_atraksi: str = Field(..., min_length=1, max_length=50)


class AttractionResponse(BaseModel):
    nama_atraksi: str
    lokasi: str
    jadwal: datetime
    kapasitas_max: int
    pelatih: Optional[str] = None
    hewan_terlibat: list[str] = []


class RideFields(ScheduleMixin):
    peraturan: str = Field(..., min_length=1)


class RideCreate(RideFields):
    nama_wahana: str = Field(..., min_length=1, max_length=50)


class RideUpdate(RideFields):
    pass


class RideDelete(BaseModel):
    nama_wahana: str = Field(..., min_length=1, max_length=50)


class RideResponse(BaseModel):
    nama_wahana: str
    peraturan: str
    jadwal: datetime
    kapasitas_max: int


class FacilityAvailability(BaseModel):
    nama: str
    jenis: str
    jadwal: datetime
    kapasitas_max: int
    kapasitas_tersedia: int
    tanggal: date
    lokasi: Optional[str] = None
    peraturan: Optional[str] = None


class TrainerResponse(BaseModel):
    username: str
    nama_lengkap: str


class AnimalResponse(BaseModel):
    id: str
    nama: Optional[str]
    spesies: str

    model_config = {"from_attributes": True}


class FacilityMessage(BaseModel):
    message: str
    nama: str

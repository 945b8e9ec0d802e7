"""
Pydantic schemas for reservation request/response validation.
Field names follow the reservasi table so payloads map 1:1 onto rows.
"""

from datetime import date, datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

from zoo_api.models.reservation import STATUS_ACTIVE

ReservationStatusField = Literal["Terjadwal", "Dibatalkan"]


class ReservationKey(BaseModel):
    username_p: str = Field(..., min_length=1, max_length=50)
    nama_fasilitas: str = Field(..., min_length=1, max_length=50)
    tanggal_kunjungan: date


class ReservationCreate(ReservationKey):
    jumlah_tiket: int = Field(..., gt=0)


class ReservationEdit(ReservationKey):
    """`tanggal_kunjungan` identifies the row; `tanggal_baru` moves it (defaults to the same day)."""

    tanggal_baru: Optional[date] = None
    jumlah_tiket: int = Field(..., gt=0)
    status: ReservationStatusField = STATUS_ACTIVE


class ReservationCancel(ReservationKey):
    pass


class ReservationResponse(BaseModel):
    username_p: str
    nama_fasilitas: str
    tanggal_kunjungan: date
    jumlah_tiket: int
    status: str

    model_config = {"from_attributes": True}


class ReservationDetailResponse(ReservationResponse):
    jenis: str
    jadwal: datetime
    lokasi: Optional[str] = None
    peraturan: Optional[str] = None


class ReservationCreateResponse(BaseModel):
    message: str
    reservasi: ReservationResponse
    kapasitas_tersisa: int


class ReservationEditResponse(BaseModel):
    message: str
    updated: ReservationResponse

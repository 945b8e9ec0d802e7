from zoo_api.schemas.reservation import (
    ReservationCreate, ReservationEdit, ReservationCancel,
    ReservationResponse, ReservationDetailResponse,
    ReservationCreateResponse, ReservationEditResponse,
)
from zoo_api.schemas.facility import (
    AttractionCreate, AttractionUpdate, AttractionDelete, AttractionResponse,
    RideCreate, RideUpdate, RideDelete, RideResponse,
    FacilityAvailability, TrainerResponse, AnimalResponse, FacilityMessage,
)
from zoo_api.schemas.common import MessageResponse

__all__ = [
    "ReservationCreate", "ReservationEdit", "ReservationCancel",
    "ReservationResponse", "ReservationDetailResponse",
    "ReservationCreateResponse", "ReservationEditResponse",
    "AttractionCreate", "AttractionUpdate", "AttractionDelete", "AttractionResponse",
    "RideCreate", "RideUpdate", "RideDelete", "RideResponse",
    "FacilityAvailability", "TrainerResponse", "AnimalResponse", "FacilityMessage",
    "MessageResponse",
]

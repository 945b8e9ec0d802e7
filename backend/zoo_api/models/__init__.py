from zoo_api.models.user import User
from zoo_api.models.animal import Animal
from zoo_api.models.facility import Facility, Attraction, Ride, TrainerAssignment, Participation
from zoo_api.models.reservation import Reservation

__all__ = [
    "User", "Animal",
    "Facility", "Attraction", "Ride", "TrainerAssignment", "Participation",
    "Reservation",
]

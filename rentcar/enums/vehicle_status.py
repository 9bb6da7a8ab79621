from enum import Enum


class VehicleStatus(str, Enum):
    """Enum for the operational status of a vehicle"""

    AVAILABLE = "available"
    RENTED = "rented"
    MAINTENANCE = "maintenance"

    def __str__(self):
        return self.value

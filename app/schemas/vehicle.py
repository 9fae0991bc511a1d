from pydantic import BaseModel
from typing import List, Literal, Optional

from app.models.enums import AvailabilityStatus


class VehicleOut(BaseModel):
    id: int
    name: str
    brand: str = ""
    model: str = ""
    year: int = 2020
    category: str = ""
    transmission: str = ""
    fuel: str = ""
    seats: int = 5
    pricePerDay: int
    image: str = ""
    status: Literal["available", "maintenance", "retired"]
    licensePlate: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_model(cls, v) -> "VehicleOut":
        return cls(
            id=v.id, name=v.name, brand=v.brand or "", model=v.model or "", year=v.year or 2020,
            category=v.category or "", transmission=v.transmission or "", fuel=v.fuel or "",
            seats=v.seats or 5, pricePerDay=v.price_per_day, image=v.image or "", status=v.status,
            licensePlate=v.license_plate, notes=v.notes,
        )


class VehicleStatusIn(BaseModel):
    status: Literal["available", "maintenance", "retired"]


class ConflictOut(BaseModel):
    startDate: str
    endDate: str
    bookingReference: Optional[str] = None


class VehicleAvailabilityOut(BaseModel):
    vehicleId: int
    status: AvailabilityStatus
    badge: str
    conflictDates: str = ""
    conflicts: List[ConflictOut] = []


class AvailabilityOut(BaseModel):
    startDate: str
    endDate: str
    # True when the lookup failed and the fail-open policy reported everything free
    degraded: bool = False
    items: List[VehicleAvailabilityOut] = []


class DashboardKPIsOut(BaseModel):
    totalCars: int
    availableCars: int
    activeReservations: int
    pendingReservations: int

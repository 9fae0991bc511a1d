import re
from datetime import date
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Literal, Optional

from app.models.enums import BookingStatus
from app.services.date_intervals import parse_date_time, to_datetime

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^[\d\s+\-()]+$")
TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _check_time(v: Optional[str]) -> Optional[str]:
    if v in (None, ""):
        return None
    if not TIME_RE.match(v):
        raise ValueError("time must be HH:MM (24h)")
    return v


class SupplementIn(BaseModel):
    """A pick from the supplement catalog; price and label come from the server."""

    id: str = Field(min_length=1)
    quantity: Optional[int] = Field(default=None, ge=0)


class DriverLicenseIn(BaseModel):
    documentNumber: str = Field(min_length=1)
    issueDate: date
    expirationDate: date


class ClientInfoIn(BaseModel):
    firstName: str = Field(min_length=1)
    lastName: str = Field(min_length=1)
    email: str
    phone: str
    country: str = Field(min_length=1)
    city: str = Field(min_length=1)
    address: str = ""
    dateOfBirth: Optional[date] = None
    driverLicense: DriverLicenseIn
    extraInformation: Optional[str] = None
    notes: Optional[str] = None
    paymentMethod: Literal["cash", "card", "transfer"] = "cash"
    acceptedTerms: bool

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        v = (v or "").strip()
        if not EMAIL_RE.match(v):
            raise ValueError("invalid email address")
        return v.lower()

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: str) -> str:
        v = (v or "").strip()
        if not v or not PHONE_RE.match(v):
            raise ValueError("invalid phone number")
        return v

    @field_validator("acceptedTerms")
    @classmethod
    def check_terms(cls, v: bool) -> bool:
        if not v:
            raise ValueError("terms and conditions must be accepted")
        return v


class BookingSubmission(BaseModel):
    """Public booking form. Dates use YYYY-MM-DDTHH:MM (time optional)."""

    departureDate: str
    returnDate: str
    pickupLocation: str = Field(min_length=1)
    customPickupLocation: Optional[str] = None
    returnLocation: Optional[str] = None
    differentReturnLocation: bool = False
    vehicleId: int
    supplements: List[SupplementIn] = []
    additionalDriver: bool = False
    clientInfo: ClientInfoIn
    userAgent: Optional[str] = None
    locale: Optional[str] = None

    @field_validator("departureDate", "returnDate")
    @classmethod
    def check_wire_format(cls, v: str) -> str:
        try:
            _, t = parse_date_time(v)
        except ValueError:
            raise ValueError("date must be YYYY-MM-DD or YYYY-MM-DDTHH:MM")
        _check_time(t)
        return v.strip()

    @model_validator(mode="after")
    def check_range(self):
        dep, ret = to_datetime(self.departureDate), to_datetime(self.returnDate)
        if ret <= dep:
            raise ValueError("returnDate must be after departureDate")
        if dep.date() < date.today():
            raise ValueError("departureDate cannot be in the past")
        return self


class QuickAddIn(BaseModel):
    """Walk-in booking entered by staff from the calendar."""

    clientName: str = Field(min_length=1)
    clientPhone: Optional[str] = None
    clientEmail: Optional[str] = None
    vehicleId: int
    departureDate: date
    returnDate: date
    pickupTime: Optional[str] = None
    returnTime: Optional[str] = None
    notes: Optional[str] = None
    pricePerDay: Optional[int] = Field(default=None, ge=0)  # negotiated override

    @field_validator("pickupTime", "returnTime")
    @classmethod
    def check_times(cls, v: Optional[str]) -> Optional[str]:
        return _check_time(v)

    @model_validator(mode="after")
    def check_range(self):
        if self.returnDate < self.departureDate:
            raise ValueError("returnDate must not be before departureDate")
        return self


class BookingUpdateIn(BaseModel):
    clientName: Optional[str] = None
    clientPhone: Optional[str] = None
    clientEmail: Optional[str] = None
    departureDate: Optional[date] = None
    returnDate: Optional[date] = None
    pickupTime: Optional[str] = None
    returnTime: Optional[str] = None
    rentalDays: Optional[int] = Field(default=None, ge=1)
    totalPrice: Optional[int] = Field(default=None, ge=0)
    expectedVersion: Optional[int] = None

    @field_validator("pickupTime", "returnTime")
    @classmethod
    def check_times(cls, v: Optional[str]) -> Optional[str]:
        return _check_time(v)


class StatusChangeIn(BaseModel):
    status: BookingStatus
    expectedVersion: Optional[int] = None

    @field_validator("status", mode="before")
    @classmethod
    def accept_legacy(cls, v):
        return BookingStatus.parse(v)


class AssignVehicleIn(BaseModel):
    vehicleId: int
    expectedVersion: Optional[int] = None


class RescheduleIn(BaseModel):
    departureDate: date
    returnDate: Optional[date] = None
    vehicleId: Optional[int] = None
    expectedVersion: Optional[int] = None


class ReservationFilters(BaseModel):
    search: str = ""
    status: Literal["all", "new", "pending", "active", "completed", "cancelled"] = "all"
    dateFrom: Optional[date] = None
    dateTo: Optional[date] = None


class BookingOut(BaseModel):
    id: str
    bookingReference: str
    status: BookingStatus
    source: str
    departureDate: date
    returnDate: date
    pickupTime: Optional[str] = None
    returnTime: Optional[str] = None
    rentalDays: int
    pickupLocation: str = ""
    vehicleId: int
    vehicleName: str = ""
    assignedVehicleId: Optional[int] = None
    clientName: str
    clientPhone: str = ""
    clientEmail: Optional[str] = None
    totalPrice: int
    version: int = 1
    createdAt: str
    updatedAt: str

    @classmethod
    def from_model(cls, b) -> "BookingOut":
        return cls(
            id=b.id,
            bookingReference=b.booking_reference,
            status=BookingStatus.parse(b.status),
            source=b.source,
            departureDate=b.departure_date,
            returnDate=b.return_date,
            pickupTime=b.pickup_time,
            returnTime=b.return_time,
            rentalDays=b.rental_days,
            pickupLocation=b.pickup_location or "",
            vehicleId=b.vehicle_id,
            vehicleName=b.vehicle_name or "",
            assignedVehicleId=b.assigned_vehicle_id,
            clientName=b.client_name,
            clientPhone=b.client_phone or "",
            clientEmail=b.client_email,
            totalPrice=b.total_price,
            version=b.version or 1,
            createdAt=b.created_at.isoformat() if b.created_at else "",
            updatedAt=b.updated_at.isoformat() if b.updated_at else "",
        )


class BookingCreatedOut(BaseModel):
    bookingReference: str
    status: str
    rentalDays: int
    vehicleTotal: int
    supplementsTotal: int
    totalPrice: int

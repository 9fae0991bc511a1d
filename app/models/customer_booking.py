from sqlalchemy import String, Integer, Date, DateTime, Boolean, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column
from datetime import date, datetime, timezone
from app.db.session import Base

class CustomerBooking(Base):
    """Full web submission: contact, licence and pricing breakdown. Written once at creation."""

    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_reference: Mapped[str] = mapped_column(String(20), unique=True, index=True)
    status: Mapped[str] = mapped_column(String(20), default="pending")  # pending|confirmed|completed|cancelled

    # Dates & location (customer wire format YYYY-MM-DDTHH:MM kept verbatim)
    departure_date: Mapped[str] = mapped_column(String(16))
    return_date: Mapped[str] = mapped_column(String(16))
    rental_days: Mapped[int] = mapped_column(Integer, default=1)
    pickup_location: Mapped[str] = mapped_column(String(200), default="")
    custom_pickup_location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    return_location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    different_return_location: Mapped[bool] = mapped_column(Boolean, default=False)

    # Vehicle snapshot
    vehicle_id: Mapped[int] = mapped_column(Integer, index=True)
    vehicle_name: Mapped[str] = mapped_column(String(120), default="")
    vehicle_brand: Mapped[str] = mapped_column(String(60), default="")
    vehicle_model: Mapped[str] = mapped_column(String(60), default="")
    vehicle_category: Mapped[str] = mapped_column(String(60), default="")
    vehicle_price_per_day: Mapped[int] = mapped_column(Integer, default=0)

    supplements: Mapped[list] = mapped_column(JSON, default=list)
    additional_driver: Mapped[bool] = mapped_column(Boolean, default=False)

    # Client
    first_name: Mapped[str] = mapped_column(String(100), default="")
    last_name: Mapped[str] = mapped_column(String(100), default="")
    email: Mapped[str] = mapped_column(String(320), index=True)
    phone: Mapped[str] = mapped_column(String(40), default="")
    country: Mapped[str] = mapped_column(String(80), default="")
    city: Mapped[str] = mapped_column(String(80), default="")
    address: Mapped[str] = mapped_column(String(255), default="")
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Driver's licence
    license_number: Mapped[str] = mapped_column(String(60), default="")
    license_issue_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    license_expiration_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    extra_information: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    payment_method: Mapped[str] = mapped_column(String(12), default="cash")  # cash|card|transfer

    vehicle_total: Mapped[int] = mapped_column(Integer, default=0)
    supplements_total: Mapped[int] = mapped_column(Integer, default=0)
    total_price: Mapped[int] = mapped_column(Integer, default=0)

    user_agent: Mapped[str | None] = mapped_column(String(400), nullable=True)
    locale: Mapped[str | None] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

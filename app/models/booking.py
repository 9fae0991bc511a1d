from sqlalchemy import String, Integer, Date, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import date, datetime, timezone
from app.db.session import Base


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AdminBooking(Base):
    """Scheduling record shown on the back-office calendar."""

    __tablename__ = "admin_bookings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_reference: Mapped[str] = mapped_column(String(20), index=True)

    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)  # new|pending|active|completed|cancelled
    source: Mapped[str] = mapped_column(String(12), default="web")                 # web|walk_in|phone

    departure_date: Mapped[date] = mapped_column(Date, index=True)
    return_date: Mapped[date] = mapped_column(Date, index=True)
    pickup_time: Mapped[str | None] = mapped_column(String(5), nullable=True)  # HH:MM
    return_time: Mapped[str | None] = mapped_column(String(5), nullable=True)  # HH:MM
    rental_days: Mapped[int] = mapped_column(Integer, default=1)
    pickup_location: Mapped[str] = mapped_column(String(200), default="")

    vehicle_id: Mapped[int] = mapped_column(Integer, index=True)
    vehicle_name: Mapped[str] = mapped_column(String(120), default="")
    assigned_vehicle_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    client_name: Mapped[str] = mapped_column(String(200), default="")
    client_phone: Mapped[str] = mapped_column(String(40), default="")
    client_email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    total_price: Mapped[int] = mapped_column(Integer, default=0)

    # bumped on every mutation; optional compare-and-swap for concurrent staff edits
    version: Mapped[int] = mapped_column(Integer, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)

    @property
    def effective_vehicle_id(self) -> int:
        return self.assigned_vehicle_id or self.vehicle_id

    def touch(self) -> None:
        self.version = (self.version or 0) + 1
        self.updated_at = _now()

from sqlalchemy import String, Integer, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from app.db.session import Base

class Vehicle(Base):
    __tablename__ = "vehicles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120))
    brand: Mapped[str] = mapped_column(String(60), default="")
    model: Mapped[str] = mapped_column(String(60), default="")
    year: Mapped[int] = mapped_column(Integer, default=2020)
    category: Mapped[str] = mapped_column(String(60), default="")
    transmission: Mapped[str] = mapped_column(String(20), default="Manuelle")  # Manuelle|Automatique
    fuel: Mapped[str] = mapped_column(String(20), default="Essence")           # Essence|Diesel|Électrique|Hybride
    seats: Mapped[int] = mapped_column(Integer, default=5)
    price_per_day: Mapped[int] = mapped_column(Integer, default=0)
    image: Mapped[str] = mapped_column(String(255), default="")

    status: Mapped[str] = mapped_column(String(20), default="available", index=True)  # available|maintenance|retired
    license_plate: Mapped[str | None] = mapped_column(String(30), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

import logging

from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, ProgrammingError

from app.db.session import SessionLocal
from app.models.setting import Setting
from app.models.vehicle import Vehicle
from app.services.settings_service import CALENDAR_VIEW_DAYS_KEY, DEFAULT_VIEW_DAYS

logger = logging.getLogger(__name__)

# (id, name, brand, model, category, transmission, fuel, seats, price/day, image, status)
FLEET = [
    (1, "Clio 5 Noir", "Renault", "Clio 5", "Économique", "Manuelle", "Essence", 5, 3500, "/images/cars/clio5.jpg", "available"),
    (2, "Clio 5 Blanc", "Renault", "Clio 5", "Économique", "Manuelle", "Essence", 5, 3500, "/images/cars/clio5.jpg", "available"),
    (3, "Clio 5 Gris", "Renault", "Clio 5", "Économique", "Manuelle", "Essence", 5, 3500, "/images/cars/clio5.jpg", "available"),
    (4, "Symbol Noir", "Renault", "Symbol", "Compacte", "Manuelle", "Diesel", 5, 4000, "/images/cars/symbol.jpg", "available"),
    (5, "Symbol Blanc", "Renault", "Symbol", "Compacte", "Manuelle", "Diesel", 5, 4000, "/images/cars/symbol.jpg", "available"),
    (6, "Symbol Gris", "Renault", "Symbol", "Compacte", "Manuelle", "Diesel", 5, 4000, "/images/cars/symbol.jpg", "maintenance"),
    (7, "Peugeot 301 Noir", "Peugeot", "301", "Berline", "Manuelle", "Diesel", 5, 4500, "/images/cars/301.jpg", "available"),
    (8, "Peugeot 301 Blanc", "Peugeot", "301", "Berline", "Manuelle", "Diesel", 5, 4500, "/images/cars/301.jpg", "available"),
    (9, "Peugeot 301 Gris", "Peugeot", "301", "Berline", "Manuelle", "Diesel", 5, 4500, "/images/cars/301.jpg", "available"),
    (10, "Dacia Logan MCV Noir", "Dacia", "Logan MCV", "Familiale", "Manuelle", "Diesel", 7, 5000, "/images/cars/logan-mcv.jpg", "available"),
    (11, "Dacia Logan MCV Blanc", "Dacia", "Logan MCV", "Familiale", "Manuelle", "Diesel", 7, 5000, "/images/cars/logan-mcv.jpg", "available"),
    (12, "Dacia Logan MCV Gris", "Dacia", "Logan MCV", "Familiale", "Manuelle", "Diesel", 7, 5000, "/images/cars/logan-mcv.jpg", "available"),
    (13, "Dacia Duster Noir", "Dacia", "Duster", "SUV", "Manuelle", "Diesel", 5, 6000, "/images/cars/duster.jpg", "available"),
    (14, "Dacia Duster Blanc", "Dacia", "Duster", "SUV", "Manuelle", "Diesel", 5, 6000, "/images/cars/duster.jpg", "available"),
    (15, "Dacia Duster Gris", "Dacia", "Duster", "SUV", "Manuelle", "Diesel", 5, 6000, "/images/cars/duster.jpg", "available"),
    (16, "Peugeot 3008 Noir", "Peugeot", "3008", "Premium", "Automatique", "Diesel", 5, 8000, "/images/cars/3008.jpg", "available"),
    (17, "Peugeot 3008 Blanc", "Peugeot", "3008", "Premium", "Automatique", "Diesel", 5, 8000, "/images/cars/3008.jpg", "available"),
    (18, "Peugeot 3008 Gris", "Peugeot", "3008", "Premium", "Automatique", "Diesel", 5, 8000, "/images/cars/3008.jpg", "available"),
]


def ensure_vehicle(db: Session, row: tuple) -> bool:
    vid, name, brand, model, category, transmission, fuel, seats, price, image, status = row
    if db.get(Vehicle, vid):
        return False
    db.add(Vehicle(
        id=vid, name=name, brand=brand, model=model, year=2023, category=category,
        transmission=transmission, fuel=fuel, seats=seats, price_per_day=price, image=image, status=status,
    ))
    return True


def run(db=None):
    own_session = db is None
    if own_session:
        db = SessionLocal()
    try:
        # If migrations haven't been applied yet, seeding must not crash the API.
        try:
            db.execute(text("SELECT 1 FROM vehicles LIMIT 1"))
        except (ProgrammingError, OperationalError):
            db.rollback()
            logger.warning("vehicles table not found yet. Skipping seeding (run alembic upgrade head).")
            return

        added = sum(1 for row in FLEET if ensure_vehicle(db, row))

        if not db.get(Setting, CALENDAR_VIEW_DAYS_KEY):
            db.add(Setting(key=CALENDAR_VIEW_DAYS_KEY, int_value=DEFAULT_VIEW_DAYS, str_value=None))
        db.commit()
        logger.info("seed complete: %s vehicles added", added)
    finally:
        if own_session:
            db.close()


if __name__ == "__main__":
    from app.core.logging import configure_logging
    configure_logging()
    run()

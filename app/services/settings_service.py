from sqlalchemy.orm import Session
from app.models.setting import Setting

CALENDAR_VIEW_DAYS_KEY = "CALENDAR_VIEW_DAYS"
ALLOWED_VIEW_DAYS = (7, 14, 30, 60)
DEFAULT_VIEW_DAYS = 14

def get_calendar_view_days(db: Session) -> int:
    s = db.get(Setting, CALENDAR_VIEW_DAYS_KEY)
    if s and s.int_value in ALLOWED_VIEW_DAYS:
        return int(s.int_value)
    return DEFAULT_VIEW_DAYS

def set_calendar_view_days(db: Session, days: int) -> int:
    if days not in ALLOWED_VIEW_DAYS:
        raise ValueError(f"view days must be one of {ALLOWED_VIEW_DAYS}")
    s = db.get(Setting, CALENDAR_VIEW_DAYS_KEY)
    if not s:
        s = Setting(key=CALENDAR_VIEW_DAYS_KEY, int_value=int(days), str_value=None)
        db.add(s)
    else:
        s.int_value = int(days)
    db.commit()
    return int(days)

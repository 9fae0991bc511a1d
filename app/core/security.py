import hmac
import uuid
from datetime import datetime, timedelta, timezone

from jose import jwt

from app.core.config import settings

ALGO = "HS256"


def check_credentials(username: str, password: str) -> bool:
    # Shared staff account configured in settings; compare in constant time.
    user_ok = hmac.compare_digest((username or "").strip().lower(), settings.ADMIN_USERNAME.lower())
    pass_ok = hmac.compare_digest(password or "", settings.ADMIN_PASSWORD)
    return user_ok and pass_ok


def check_pin(pin: str) -> bool:
    return hmac.compare_digest((pin or "").strip(), settings.ADMIN_PIN)


def create_access_token(subject: str, pin_verified: bool = False, session_id: str | None = None,
                        expires_minutes: int | None = None) -> str:
    if expires_minutes is None:
        expires_minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES
    exp = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload = {
        "sub": subject,
        "type": "access",
        "pin": pin_verified,
        "sid": session_id or str(uuid.uuid4()),
        "exp": exp,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGO)


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGO])

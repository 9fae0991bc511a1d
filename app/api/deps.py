from dataclasses import dataclass

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError

from app.core.security import decode_token
from app.db.session import SessionLocal
from app.services.dashboard_controller import DashboardController, DashboardSessions

bearer = HTTPBearer(auto_error=False)

# one dashboard per login; a new login gets a new session id and a fresh store
dashboard_sessions = DashboardSessions(SessionLocal)


@dataclass
class StaffSession:
    username: str
    session_id: str
    pin_verified: bool
    expires_at: float | None = None


def get_staff_session(creds: HTTPAuthorizationCredentials | None = Depends(bearer)) -> StaffSession:
    if not creds:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = decode_token(creds.credentials)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if payload.get("type") != "access" or not payload.get("sub") or not payload.get("sid"):
        raise HTTPException(status_code=401, detail="Invalid token")
    return StaffSession(username=payload["sub"], session_id=payload["sid"], pin_verified=bool(payload.get("pin")),
                        expires_at=payload.get("exp"))


def require_admin(session: StaffSession = Depends(get_staff_session)) -> StaffSession:
    if not session.pin_verified:
        raise HTTPException(status_code=403, detail="PIN verification required")
    return session


def get_session_factory():
    return SessionLocal


def get_dashboard(session: StaffSession = Depends(require_admin),
                  session_factory=Depends(get_session_factory)) -> DashboardController:
    return dashboard_sessions.get(session.session_id, actor=session.username, session_factory=session_factory,
                                  expires_at=session.expires_at)

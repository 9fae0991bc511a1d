import logging
from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import StaffSession, dashboard_sessions, get_staff_session
from app.core.security import check_credentials, check_pin, create_access_token
from app.schemas.auth import LoginRequest, PinRequest, TokenOut

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/auth/login", response_model=TokenOut)
def login(body: LoginRequest):
    """First step: username and password. The token only unlocks the PIN check."""
    if not check_credentials(body.username, body.password):
        logger.warning("failed staff login for %r", body.username)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return TokenOut(access_token=create_access_token(body.username.strip().lower()))


@router.post("/auth/verify-pin", response_model=TokenOut)
def verify_pin(body: PinRequest, session: StaffSession = Depends(get_staff_session)):
    if not check_pin(body.pin):
        logger.warning("wrong PIN for staff session %s", session.session_id)
        raise HTTPException(status_code=401, detail="Invalid PIN")
    token = create_access_token(session.username, pin_verified=True, session_id=session.session_id)
    return TokenOut(access_token=token, pinVerified=True)


@router.post("/auth/logout")
def logout(session: StaffSession = Depends(get_staff_session)):
    dashboard_sessions.discard(session.session_id)
    return {"ok": True}


@router.get("/auth/me")
def me(session: StaffSession = Depends(get_staff_session)):
    return {"username": session.username, "pinVerified": session.pin_verified}

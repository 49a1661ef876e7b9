import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from inkpages import dependencies as deps
from inkpages.exceptions import IdentityServiceError, InvalidCredentialsError
from inkpages.schemas.blog import LoginRequest, SessionInfo
from inkpages.security import get_auth_session, get_settings
from inkpages.services.identity import AuthSession, is_writer
from inkpages.settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/login", response_model=SessionInfo)
def current_session(
    session: Optional[AuthSession] = Depends(get_auth_session),
    current_settings: Settings = Depends(get_settings),
):
    return SessionInfo(
        email=session.email if session else None,
        isWriter=is_writer(session, current_settings.WRITER_EMAIL),
    )


@router.post("/login", response_model=SessionInfo)
def login(
    credentials: LoginRequest,
    response: Response,
    identity=Depends(deps.get_identity_client),
    current_settings: Settings = Depends(get_settings),
):
    try:
        session = identity.sign_in(credentials.email, credentials.password)
    except InvalidCredentialsError:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    except IdentityServiceError as e:
        logger.error(f"Sign-in failed for {credentials.email}: {e}")
        raise HTTPException(status_code=503, detail="Sign-in is unavailable")

    response.set_cookie(
        current_settings.SESSION_COOKIE_NAME,
        session.token,
        httponly=True,
        samesite="lax",
    )
    return SessionInfo(
        email=session.email,
        isWriter=is_writer(session, current_settings.WRITER_EMAIL),
    )


@router.post("/logout", status_code=204)
def logout(
    request: Request,
    response: Response,
    identity=Depends(deps.get_identity_client),
    current_settings: Settings = Depends(get_settings),
):
    identity.sign_out(request.cookies.get(current_settings.SESSION_COOKIE_NAME))
    response.delete_cookie(current_settings.SESSION_COOKIE_NAME)
    return None

from typing import Optional

from fastapi import Depends, Request

from inkpages import dependencies as deps
from inkpages.exceptions import LoginRequired
from inkpages.services.identity import AuthSession, is_writer
from inkpages.settings import Settings, settings


def get_settings() -> Settings:
    """Small wrapper to allow dependency overrides in tests."""
    return settings


def get_auth_session(
    request: Request,
    identity=Depends(deps.get_identity_client),
    current_settings: Settings = Depends(get_settings),
) -> Optional[AuthSession]:
    token = request.cookies.get(current_settings.SESSION_COOKIE_NAME)
    return identity.resolve(token)


def get_is_writer(
    session: Optional[AuthSession] = Depends(get_auth_session),
    current_settings: Settings = Depends(get_settings),
) -> bool:
    return is_writer(session, current_settings.WRITER_EMAIL)


def require_writer(
    session: Optional[AuthSession] = Depends(get_auth_session),
    current_settings: Settings = Depends(get_settings),
) -> AuthSession:
    if not is_writer(session, current_settings.WRITER_EMAIL):
        raise LoginRequired()
    return session

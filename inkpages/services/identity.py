import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from inkpages.exceptions import IdentityServiceError, InvalidCredentialsError

logger = logging.getLogger(__name__)

COUCH_SESSION_COOKIE = "AuthSession"


@dataclass(frozen=True)
class AuthSession:
    email: str
    token: str


def is_writer(session: Optional[AuthSession], writer_email: str) -> bool:
    """Only the configured writer may author posts; nobody if none is configured."""
    if session is None or not writer_email:
        return False
    return session.email.strip().lower() == writer_email.strip().lower()


class IdentityClient:
    """
    Email/password sign-in against CouchDB's cookie session endpoint.
    The email is the CouchDB user name; the returned cookie is the session token.
    """

    def __init__(self, base_url: str, *, client: Optional[httpx.Client] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=timeout)

    def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            response = self.client.post(
                f"{self.base_url}/_session",
                json={"name": email, "password": password},
            )
        except httpx.RequestError as e:
            logger.error(f"Identity service unreachable during sign-in: {e}")
            raise IdentityServiceError("Identity service unavailable") from e

        if response.status_code == 401:
            logger.info(f"Rejected sign-in for {email}")
            raise InvalidCredentialsError("Invalid email or password")
        if response.status_code >= 400:
            logger.error(f"Sign-in failed with status {response.status_code}")
            raise IdentityServiceError(f"Sign-in failed ({response.status_code})")

        token = response.cookies.get(COUCH_SESSION_COOKIE)
        # sessions belong to the caller, not to this shared client
        self.client.cookies.clear()
        if not token:
            raise IdentityServiceError("Identity service did not issue a session")

        name = response.json().get("name") or email
        logger.info(f"Signed in: {name}")
        return AuthSession(email=name, token=token)

    def resolve(self, token: Optional[str]) -> Optional[AuthSession]:
        """Return the session for a token, or None when it is missing or expired."""
        if not token:
            return None
        try:
            response = self.client.get(
                f"{self.base_url}/_session",
                headers={"Cookie": f"{COUCH_SESSION_COOKIE}={token}"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Could not resolve session: {e}")
            return None

        name = (response.json().get("userCtx") or {}).get("name")
        if not name:
            return None
        return AuthSession(email=name, token=token)

    def sign_out(self, token: Optional[str]) -> None:
        if not token:
            return
        try:
            self.client.delete(
                f"{self.base_url}/_session",
                headers={"Cookie": f"{COUCH_SESSION_COOKIE}={token}"},
            )
        except httpx.RequestError as e:
            logger.warning(f"Sign-out request failed: {e}")

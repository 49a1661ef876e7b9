import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from inkpages import dependencies as deps
from inkpages.exceptions import LoginRequired
from inkpages.security import get_is_writer, get_settings, require_writer
from inkpages.services.identity import AuthSession, is_writer
from tests.conftest import WRITER, FakeIdentity, writer_settings


def test_is_writer_matches_configured_email_case_insensitively():
    session = AuthSession(email="Writer@Example.com", token="t")
    assert is_writer(session, WRITER) is True
    assert is_writer(AuthSession(email="reader@example.com", token="t"), WRITER) is False


def test_is_writer_grants_nobody_without_configuration():
    assert is_writer(AuthSession(email=WRITER, token="t"), "") is False
    assert is_writer(None, WRITER) is False


def test_require_writer_raises_login_required_for_readers():
    with pytest.raises(LoginRequired):
        require_writer(session=None, current_settings=writer_settings())

    session = AuthSession(email=WRITER, token="t")
    assert require_writer(session=session, current_settings=writer_settings()) is session


def build_client():
    app = FastAPI()
    app.dependency_overrides[deps.get_identity_client] = lambda: FakeIdentity(
        {"good": WRITER, "reader": "reader@example.com"}
    )
    app.dependency_overrides[get_settings] = lambda: writer_settings()

    @app.get("/whoami")
    def whoami(writer: bool = Depends(get_is_writer)):
        return {"writer": writer}

    return TestClient(app)


def test_session_cookie_resolves_writer():
    client = build_client()
    name = writer_settings().SESSION_COOKIE_NAME

    assert client.get("/whoami").json() == {"writer": False}

    client.cookies.set(name, "reader")
    assert client.get("/whoami").json() == {"writer": False}

    client.cookies.set(name, "good")
    assert client.get("/whoami").json() == {"writer": True}

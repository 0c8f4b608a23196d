import pytest
import requests

from recordhub.auth import AuthProvider
from recordhub.errors import AuthenticationError, ValidationError


class FakeResponse:
    def __init__(self, status_code, body):
        self.status_code = status_code
        self._body = body

    def json(self):
        return self._body


class FakeSession:
    """Records Identity Toolkit calls and replays canned responses per endpoint."""

    def __init__(self, replies):
        self.replies = replies
        self.calls = []

    def post(self, url, params=None, json=None, timeout=None):
        endpoint = url.rsplit(":", 1)[-1]
        self.calls.append((endpoint, params, json))
        reply = self.replies[endpoint]
        if isinstance(reply, Exception):
            raise reply
        return FakeResponse(*reply)


def _provider(replies):
    session = FakeSession(replies)
    return AuthProvider(api_key="k", base_url="https://auth.test/v1", session=session), session


SIGNED_IN = (200, {"localId": "u1", "email": "jane@example.com", "idToken": "t1", "refreshToken": "r1"})


def test_sign_in():
    auth, session = _provider({"signInWithPassword": SIGNED_IN})
    user = auth.sign_in(" jane@example.com ", "secret1")
    assert user.uid == "u1"
    assert user.id_token == "t1"
    endpoint, params, body = session.calls[0]
    assert params == {"key": "k"}
    assert body["email"] == "jane@example.com"
    assert body["returnSecureToken"] is True


def test_sign_in_error_code_is_mapped():
    auth, _ = _provider({"signInWithPassword": (400, {"error": {"message": "INVALID_PASSWORD"}})})
    with pytest.raises(AuthenticationError) as exc:
        auth.sign_in("jane@example.com", "nope")
    assert exc.value.message == "Incorrect password."
    assert exc.value.details == {"code": "INVALID_PASSWORD"}


def test_error_code_suffix_is_stripped():
    reply = (400, {"error": {"message": "WEAK_PASSWORD : Password should be at least 6 characters"}})
    auth, _ = _provider({"signUp": reply})
    with pytest.raises(AuthenticationError) as exc:
        auth.sign_up("jane@example.com", "abc", "abc")
    assert exc.value.details["code"] == "WEAK_PASSWORD"


def test_network_failure():
    auth, _ = _provider({"sendOobCode": requests.ConnectionError("down")})
    with pytest.raises(AuthenticationError):
        auth.send_password_reset("jane@example.com")


def test_missing_fields_and_mismatch():
    auth, session = _provider({})
    with pytest.raises(ValidationError) as exc:
        auth.sign_in("", "secret1")
    assert exc.value.details["missing"] == ["email"]
    with pytest.raises(ValidationError):
        auth.sign_up("jane@example.com", "secret1", "secret2")
    assert session.calls == []


def test_change_password_reauthenticates_first():
    auth, session = _provider({"signInWithPassword": SIGNED_IN, "update": SIGNED_IN})
    auth.change_password("jane@example.com", "old-pass", "new-pass", "new-pass")
    assert [c[0] for c in session.calls] == ["signInWithPassword", "update"]
    assert session.calls[0][2]["password"] == "old-pass"
    assert session.calls[1][2] == {"idToken": "t1", "password": "new-pass", "returnSecureToken": True}


def test_change_password_wrong_current_password():
    auth, session = _provider({"signInWithPassword": (400, {"error": {"message": "INVALID_LOGIN_CREDENTIALS"}})})
    with pytest.raises(AuthenticationError):
        auth.change_password("jane@example.com", "bad", "new-pass", "new-pass")
    assert [c[0] for c in session.calls] == ["signInWithPassword"]


def test_missing_api_key():
    auth = AuthProvider(api_key="", session=FakeSession({}))
    with pytest.raises(AuthenticationError):
        auth.send_password_reset("jane@example.com")

# recordhub/auth.py
import logging
from typing import Any, Dict, Optional

import requests
from firebase_admin import auth as admin_auth

from . import settings
from .errors import AuthenticationError, ValidationError
from .schemas import AuthUser

logger = logging.getLogger(__name__)

# Identity Toolkit error codes -> message shown to the user
_MESSAGES = {
    "EMAIL_NOT_FOUND": "No account found for this email.",
    "INVALID_PASSWORD": "Incorrect password.",
    "INVALID_LOGIN_CREDENTIALS": "Invalid email or password.",
    "USER_DISABLED": "This account has been disabled.",
    "EMAIL_EXISTS": "An account already exists for this email.",
    "WEAK_PASSWORD": "Password should be at least 6 characters.",
    "INVALID_EMAIL": "Invalid email address.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Try again later.",
    "CREDENTIAL_TOO_OLD_LOGIN_AGAIN": "Please sign in again.",
    "INVALID_ID_TOKEN": "Session expired. Please sign in again.",
}


def _require(**fields: Optional[str]) -> None:
    missing = [name for name, value in fields.items() if not (value or "").strip()]
    if missing:
        raise ValidationError("Please fill in all required fields",
                              details={"missing": missing})


class AuthProvider:
    """
    Email/password auth against Firebase.

    Sign-in, sign-up, reset and password change go through the Identity
    Toolkit REST API (they need the user's password); token verification and
    user lookup use the Admin SDK.
    """
    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 timeout: Optional[float] = None, app=None, session: Optional[requests.Session] = None):
        self.api_key = api_key if api_key is not None else settings.FIREBASE_WEB_API_KEY
        self.base_url = (base_url or settings.IDENTITY_TOOLKIT_URL).rstrip("/")
        self.timeout = timeout or settings.AUTH_TIMEOUT_SECONDS
        self.app = app
        self.session = session or requests.Session()

    def _post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise AuthenticationError("FIREBASE_WEB_API_KEY is not set")
        url = f"{self.base_url}/accounts:{endpoint}"
        try:
            resp = self.session.post(url, params={"key": self.api_key}, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Auth request %s failed: %s", endpoint, e)
            raise AuthenticationError("Could not reach the authentication service") from e

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.status_code != 200:
            code = ((body.get("error") or {}).get("message") or f"HTTP_{resp.status_code}")
            # codes may carry a suffix, e.g. "WEAK_PASSWORD : Password should be ..."
            key = code.split(":")[0].strip()
            logger.info("Auth %s rejected: %s", endpoint, key)
            raise AuthenticationError(_MESSAGES.get(key, "Authentication failed."), details={"code": key})
        return body

    @staticmethod
    def _user(body: Dict[str, Any]) -> AuthUser:
        return AuthUser(
            uid=body.get("localId", ""),
            email=body.get("email"),
            display_name=body.get("displayName") or None,
            id_token=body.get("idToken"),
            refresh_token=body.get("refreshToken"),
        )

    def sign_in(self, email: str, password: str) -> AuthUser:
        _require(email=email, password=password)
        body = self._post("signInWithPassword", {
            "email": email.strip(), "password": password, "returnSecureToken": True,
        })
        logger.info("User signed in: %s", body.get("localId"))
        return self._user(body)

    def sign_up(self, email: str, password: str, confirm_password: str) -> AuthUser:
        _require(email=email, password=password, confirm_password=confirm_password)
        if password != confirm_password:
            raise ValidationError("Passwords do not match.")
        body = self._post("signUp", {
            "email": email.strip(), "password": password, "returnSecureToken": True,
        })
        logger.info("User registered: %s", body.get("localId"))
        return self._user(body)

    def send_password_reset(self, email: str) -> None:
        _require(email=email)
        self._post("sendOobCode", {"requestType": "PASSWORD_RESET", "email": email.strip()})
        logger.info("Password reset email requested")

    def change_password(self, email: str, current_password: str,
                        new_password: str, confirm_password: str) -> AuthUser:
        """Re-authenticate with the current password, then set the new one."""
        _require(current_password=current_password, new_password=new_password,
                 confirm_password=confirm_password)
        if new_password != confirm_password:
            raise ValidationError("New passwords do not match.")
        fresh = self.sign_in(email, current_password)
        body = self._post("update", {
            "idToken": fresh.id_token, "password": new_password, "returnSecureToken": True,
        })
        logger.info("Password changed for %s", fresh.uid)
        return self._user(body)

    def current_user(self, id_token: str) -> AuthUser:
        """Verify an ID token and look the user up."""
        if not id_token:
            raise AuthenticationError("Missing bearer token")
        try:
            claims = admin_auth.verify_id_token(id_token, app=self.app)
            record = admin_auth.get_user(claims["uid"], app=self.app)
        except (admin_auth.InvalidIdTokenError, admin_auth.ExpiredIdTokenError,
                admin_auth.RevokedIdTokenError) as e:
            raise AuthenticationError("Session expired. Please sign in again.") from e
        except admin_auth.UserNotFoundError as e:
            raise AuthenticationError("User no longer exists.") from e
        except ValueError as e:
            raise AuthenticationError("Malformed token") from e
        return AuthUser(uid=record.uid, email=record.email, display_name=record.display_name,
                        id_token=id_token)

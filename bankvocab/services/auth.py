"""Identity provider client over the Firebase Identity Toolkit REST API."""

import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

import requests
from PySide6.QtCore import QObject, Signal

from ..engine.errors import AuthError
from ..engine.persistence import PersistenceAdapter

logger = logging.getLogger(__name__)

IDENTITY_ENDPOINT = "https://identitytoolkit.googleapis.com/v1/accounts:{action}?key={key}"
SESSION_KEY = "auth/session"
REQUEST_TIMEOUT = 30

# Provider error codes shown to the user in plain words
ERROR_MESSAGES = {
    "EMAIL_NOT_FOUND": "No account exists for this email.",
    "INVALID_PASSWORD": "Incorrect password.",
    "INVALID_LOGIN_CREDENTIALS": "Incorrect email or password.",
    "INVALID_EMAIL": "The email address is badly formatted.",
    "USER_DISABLED": "This account has been disabled.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Try again later.",
    "INVALID_ID_TOKEN": "Your session has expired. Please sign in again.",
}


@dataclass(frozen=True)
class AuthUser:
    """Signed-in user as reported by the identity provider."""

    id: str
    email: str
    verified: bool = False
    id_token: str = ""
    refresh_token: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "verified": self.verified,
            "idToken": self.id_token,
            "refreshToken": self.refresh_token,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuthUser":
        if not isinstance(data, dict) or not isinstance(data.get("id"), str) or not data["id"]:
            raise ValueError("Stored session has no user id")
        return cls(
            id=data["id"],
            email=str(data.get("email", "")),
            verified=bool(data.get("verified", False)),
            id_token=str(data.get("idToken", "")),
            refresh_token=str(data.get("refreshToken", "")),
        )


def encode_session(user: Optional[AuthUser]) -> str:
    return json.dumps(user.to_dict() if user else None)


def decode_session(text: str) -> Optional[AuthUser]:
    data = json.loads(text)
    return AuthUser.from_dict(data) if data is not None else None


class AuthService(QObject):
    """Email/password sign-in with verification status.

    ``error`` holds the message of the last failed attempt and is cleared
    when the next attempt starts.
    """

    # Signals
    user_changed = Signal(object)  # AuthUser or None
    error_changed = Signal(object)  # message or None
    verifying_changed = Signal(bool)

    def __init__(self, api_key: Optional[str], store=None):
        super().__init__()
        self.api_key = api_key
        self.user: Optional[AuthUser] = None
        self.error: Optional[str] = None
        self.verifying = False
        self.loading = True
        self.persistence = None

        if store is not None:
            self.persistence = PersistenceAdapter(
                store, SESSION_KEY,
                encode=encode_session,
                decode=decode_session,
                default=lambda: None,
            )
            self.user = self.persistence.load()
            self.persistence.bind(self.user_changed)
        self.loading = False

    @property
    def verified(self) -> bool:
        return bool(self.user and self.user.verified)

    def _set_user(self, user: Optional[AuthUser]) -> None:
        self.user = user
        self.user_changed.emit(user)

    def _set_error(self, message: Optional[str]) -> None:
        self.error = message
        self.error_changed.emit(message)

    def _post(self, action: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Call one Identity Toolkit endpoint.

        Raises:
            AuthError: On network failure or a provider error response
        """
        if not self.api_key:
            raise AuthError("Sign-in is not configured.", "MISSING_API_KEY")

        url = IDENTITY_ENDPOINT.format(action=action, key=self.api_key)
        try:
            response = requests.post(url, json=body, timeout=REQUEST_TIMEOUT)
        except requests.exceptions.RequestException as e:
            raise AuthError(f"Could not reach the sign-in service: {e}", "NETWORK_ERROR") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code != 200:
            error = data.get("error", {}) if isinstance(data, dict) else {}
            # Codes may carry a suffix, e.g. "TOO_MANY_ATTEMPTS_TRY_LATER : ..."
            code = str(error.get("message", "UNKNOWN")).split(" ")[0]
            raise AuthError(ERROR_MESSAGES.get(code, f"Sign-in failed ({code})."), code)

        return data

    def _lookup_verified(self, id_token: str) -> bool:
        data = self._post("lookup", {"idToken": id_token})
        users = data.get("users") or [{}]
        return bool(users[0].get("emailVerified", False))

    def sign_in(self, email: str, password: str) -> bool:
        """Sign in; on failure the reason is left in ``error``."""
        self._set_error(None)
        try:
            data = self._post("signInWithPassword", {
                "email": email,
                "password": password,
                "returnSecureToken": True,
            })
            id_token = data.get("idToken", "")
            user = AuthUser(
                id=data["localId"],
                email=data.get("email", email),
                verified=self._lookup_verified(id_token),
                id_token=id_token,
                refresh_token=data.get("refreshToken", ""),
            )
        except AuthError as e:
            logger.warning("Sign-in failed for %s: %s", email, e.code or e)
            self._set_error(str(e))
            return False
        except KeyError:
            logger.warning("Sign-in response for %s had no user id", email)
            self._set_error("Sign-in failed.")
            return False

        self._set_user(user)
        return True

    def send_verification(self) -> bool:
        """Email a verification link to the signed-in user."""
        if self.user is None:
            return False

        self._set_error(None)
        self.verifying = True
        self.verifying_changed.emit(True)
        try:
            self._post("sendOobCode", {"requestType": "VERIFY_EMAIL", "idToken": self.user.id_token})
            return True
        except AuthError as e:
            logger.warning("Could not send verification email: %s", e)
            self._set_error(str(e))
            return False
        finally:
            self.verifying = False
            self.verifying_changed.emit(False)

    def refresh(self) -> bool:
        """Re-read the verification flag of the signed-in user."""
        if self.user is None:
            return False
        try:
            verified = self._lookup_verified(self.user.id_token)
        except AuthError as e:
            logger.warning("Could not refresh user %s: %s", self.user.id, e)
            self._set_error(str(e))
            return False

        if verified != self.user.verified:
            self._set_user(replace(self.user, verified=verified))
        return True

    def logout(self) -> None:
        self._set_error(None)
        if self.user is not None:
            self._set_user(None)

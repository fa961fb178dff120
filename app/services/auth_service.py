"""
Authentication service: password step, TOTP step and QR provisioning.
"""

import base64
import hmac
import io
import json
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

import qrcode

from app.core.config import Settings
from app.core.security import totp_provisioning_uri, verify_password, verify_totp
from app.core.session import SessionManager
from app.errors import AppError
from app.schemas.auth import UserRead

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthUser:
    email: str
    name: str
    password_hash: str
    totp_secret: str


class CredentialStore:
    """The people allowed to log in, keyed by lower-cased email."""

    def __init__(self, users: Iterable[AuthUser] = ()):
        self._users: Dict[str, AuthUser] = {user.email.lower(): user for user in users}

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialStore":
        """Load users from the AUTH_USERS JSON list."""
        try:
            raw = json.loads(settings.AUTH_USERS or "[]")
        except json.JSONDecodeError as exc:
            raise ValueError(f"AUTH_USERS is not valid JSON: {exc}") from exc
        users = []
        for entry in raw:
            users.append(
                AuthUser(
                    email=entry["email"],
                    name=entry.get("name") or entry["email"].split("@")[0],
                    password_hash=entry["password_hash"],
                    totp_secret=entry["totp_secret"],
                )
            )
        return cls(users)

    def get(self, email: Optional[str]) -> Optional[AuthUser]:
        if not email:
            return None
        return self._users.get(email.strip().lower())

    def __len__(self) -> int:
        return len(self._users)


class AuthService:
    """Service for authentication operations."""

    def __init__(
        self,
        credentials: CredentialStore,
        sessions: SessionManager,
        issuer: str = "Livrando",
        bypass_code: Optional[str] = None,
    ):
        self.credentials = credentials
        self.sessions = sessions
        self.issuer = issuer
        self.bypass_code = bypass_code

    def login(self, email: str, password: str) -> str:
        """
        Check email and password.

        Returns:
            Temporary token to present with the authenticator code
        """
        user = self.credentials.get(email)
        if not user or not verify_password(password, user.password_hash):
            raise AppError(401, "Invalid credentials")
        return self.sessions.create_pending_token(user.email)

    def _code_matches(self, user: AuthUser, code: str) -> bool:
        if verify_totp(user.totp_secret, code):
            return True
        if self.bypass_code and hmac.compare_digest(code.strip().encode(), self.bypass_code.encode()):
            logger.warning("TOTP bypass code used for %s", user.email)
            return True
        return False

    def verify_second_factor(self, temp_token: str, code: str) -> Tuple[str, UserRead]:
        """
        Finish login.

        Returns:
            (session token, user)
        """
        email = self.sessions.verify_pending_token(temp_token)
        if not email:
            raise AppError(401, "Session expired, please log in again")
        user = self.credentials.get(email)
        if not user:
            raise AppError(401, "Invalid credentials")
        if not self._code_matches(user, code):
            raise AppError(401, "Invalid code")
        token = self.sessions.create_session_token(user.email, user.name)
        return token, UserRead(email=user.email, name=user.name)

    def qr_code(self, email: str) -> str:
        """PNG data URI of the authenticator provisioning URI."""
        user = self.credentials.get(email)
        if not user:
            raise AppError(404, "User not found")
        uri = totp_provisioning_uri(user.totp_secret, user.email, self.issuer)
        image = qrcode.make(uri)
        buffer = io.BytesIO()
        image.save(buffer)
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/png;base64,{encoded}"

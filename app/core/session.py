"""
Session management.

Signed tokens for the two login steps: a short-lived "awaiting second
factor" token and the session token delivered as a cookie.
"""

from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from app.core.config import Settings

SESSION_COOKIE = "session"


class SessionManager:
    """Issues and verifies signed tokens."""

    def __init__(self, secret_key: str, session_max_age: int, temp_max_age: int):
        self.session_serializer = URLSafeTimedSerializer(secret_key, salt="session")
        self.pending_serializer = URLSafeTimedSerializer(secret_key, salt="2fa-pending")
        self.max_age = session_max_age
        self.temp_max_age = temp_max_age

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionManager":
        return cls(
            settings.SECRET_KEY,
            session_max_age=settings.SESSION_MAX_AGE_SECONDS,
            temp_max_age=settings.TEMP_TOKEN_MAX_AGE_SECONDS,
        )

    def create_pending_token(self, email: str) -> str:
        """Token proving the password step succeeded for `email`."""
        return self.pending_serializer.dumps({"email": email, "scope": "2fa"})

    def verify_pending_token(self, token: str) -> Optional[str]:
        try:
            data = self.pending_serializer.loads(token, max_age=self.temp_max_age)
        except (BadSignature, SignatureExpired):
            return None
        if not isinstance(data, dict) or data.get("scope") != "2fa":
            return None
        return data.get("email")

    def create_session_token(self, email: str, name: str) -> str:
        """
        Create a signed session token.

        Args:
            email: User email
            name: Display name (also the calendar person id)

        Returns:
            Signed token string
        """
        return self.session_serializer.dumps({"email": email, "name": name})

    def verify_session_token(self, token: str) -> Optional[dict]:
        """
        Verify and decode a session token.

        Returns:
            Dict with email and name if valid, None otherwise
        """
        try:
            data = self.session_serializer.loads(token, max_age=self.max_age)
        except (BadSignature, SignatureExpired):
            return None
        return data if isinstance(data, dict) else None

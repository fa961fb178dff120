"""
Session middleware.

Decodes the session token from the cookie or an `Authorization: Bearer`
header and exposes the identity as `request.state.user`. Missing or invalid
tokens are tolerated; routes that need a user depend on get_current_user.
"""

from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.core.session import SESSION_COOKIE


def _extract_token(request: Request) -> Optional[str]:
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        return token
    header = request.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


class SessionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        token = _extract_token(request)
        user = None
        if token:
            user = request.app.state.session_manager.verify_session_token(token)
        request.state.user = user
        return await call_next(request)

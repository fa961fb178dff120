"""
Authentication router: two-step login, authenticator QR code and the
Google Calendar OAuth connection per person.
"""

from html import escape
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import HTMLResponse, RedirectResponse

from app.core.dependencies import (
    get_calendar,
    get_credential_store,
    get_current_user,
    get_session_manager,
    get_settings,
)
from app.core.session import SESSION_COOKIE
from app.errors import AppError
from app.schemas.auth import (
    GoogleStatusResponse,
    LoginRequest,
    LoginResponse,
    QRCodeResponse,
    Verify2FARequest,
    Verify2FAResponse,
)
from app.services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def get_auth_service(
    credentials=Depends(get_credential_store),
    sessions=Depends(get_session_manager),
    settings=Depends(get_settings),
) -> AuthService:
    return AuthService(
        credentials,
        sessions,
        issuer=settings.TOTP_ISSUER,
        bypass_code=settings.TOTP_BYPASS_CODE,
    )


@router.post("/login", response_model=LoginResponse)
async def login(credentials: LoginRequest, service: AuthService = Depends(get_auth_service)):
    """
    First login step: email + password.

    Returns a short-lived token to send back with the authenticator code.
    """
    temp_token = service.login(credentials.email, credentials.password)
    return LoginResponse(requires_2fa=True, temp_token=temp_token)


@router.post("/verify-2fa", response_model=Verify2FAResponse)
async def verify_2fa(
    data: Verify2FARequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    settings=Depends(get_settings),
):
    """
    Second login step: the authenticator code.

    The session token is returned in the body and set as an HTTP-only cookie.
    """
    token, user = service.verify_second_factor(data.temp_token, data.token)
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        httponly=True,
        max_age=settings.SESSION_MAX_AGE_SECONDS,
        samesite="lax",
        secure=settings.COOKIE_SECURE,
    )
    return Verify2FAResponse(success=True, token=token, user=user)


@router.get("/qr-code", response_model=QRCodeResponse)
async def qr_code(email: str = Query(...), service: AuthService = Depends(get_auth_service)):
    """Authenticator enrolment QR code for `email`."""
    return QRCodeResponse(qr_code=service.qr_code(email))


@router.post("/logout")
async def logout(response: Response):
    """Log out by clearing the session cookie."""
    response.delete_cookie(key=SESSION_COOKIE)
    return {"success": True}


@router.get("/me")
async def me(user: dict = Depends(get_current_user)):
    """Identity carried by the current session."""
    return user


# ----- Google Calendar -----


def _require_google(calendar):
    if not getattr(calendar, "enabled", False):
        raise AppError(503, "Google Calendar is not configured")
    return calendar


def _page(title: str, message: str) -> str:
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>{escape(title)}</title></head>"
        "<body style=\"font-family: sans-serif; text-align: center; padding-top: 4rem;\">"
        f"<h1>{escape(title)}</h1><p>{escape(message)}</p>"
        "<p>Vous pouvez fermer cette fenêtre.</p>"
        "<script>setTimeout(function () { window.close(); }, 3000);</script>"
        "</body></html>"
    )


@router.get("/google")
async def google_connect(userId: str = Query(..., min_length=1), calendar=Depends(get_calendar)):
    """Redirect a person to Google's consent screen."""
    url = _require_google(calendar).get_auth_url(userId)
    if not url:
        raise AppError(503, "Google Calendar is not configured")
    return RedirectResponse(url=url, status_code=302)


@router.get("/google/callback", response_class=HTMLResponse)
async def google_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    calendar=Depends(get_calendar),
):
    """OAuth redirect target; `state` carries the person id."""
    _require_google(calendar)
    if error or not code or not state:
        return HTMLResponse(_page("Connexion refusée", error or "Paramètres manquants."), status_code=400)

    connected = await calendar.handle_callback(code, state)
    if not connected:
        return HTMLResponse(
            _page("Erreur", f"Impossible de connecter Google Calendar pour {state}."),
            status_code=400,
        )
    return HTMLResponse(_page("Google Calendar connecté", f"Le calendrier de {state} est synchronisé."))


@router.get("/status", response_model=GoogleStatusResponse)
async def google_status(userId: str = Query(..., min_length=1), calendar=Depends(get_calendar)):
    """Whether a person has connected their calendar."""
    return GoogleStatusResponse(google_connected=await calendar.has_credentials(userId), user_id=userId)


@router.delete("/google")
async def google_disconnect(userId: str = Query(..., min_length=1), calendar=Depends(get_calendar)):
    """Forget a person's Google token."""
    await _require_google(calendar).disconnect(userId)
    return {"success": True}

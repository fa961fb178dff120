"""
Authentication Pydantic schemas.
"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    requires_2fa: bool = Field(default=True, alias="requires2FA")
    temp_token: str = Field(alias="tempToken")


class Verify2FARequest(BaseModel):
    temp_token: str = Field(validation_alias=AliasChoices("tempToken", "temp_token"))
    token: str


class UserRead(BaseModel):
    email: str
    name: str


class Verify2FAResponse(BaseModel):
    success: bool = True
    token: str
    user: UserRead


class QRCodeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    qr_code: str = Field(alias="qrCode")


class GoogleStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    google_connected: bool = Field(alias="googleConnected")
    user_id: Optional[str] = Field(default=None, alias="userId")

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from user_service.schemas.user import PublicProfile


class InviteGenerate(BaseModel):
    max_uses: Optional[int] = Field(None, ge=1, le=1000)
    ttl_hours: Optional[int] = Field(None, ge=1, le=24 * 30)


class InviteRead(BaseModel):
    code: str
    max_uses: int
    uses: int
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvitePreview(BaseModel):
    creator: PublicProfile
    expires_at: datetime


class InviteAccepted(BaseModel):
    message: str = "Invite accepted! Connection formed."
    conversation_id: int


class OTPRequest(BaseModel):
    email: Optional[EmailStr] = None


class OTPVerifyRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=1, max_length=16)


class OTPSent(BaseModel):
    success: bool = True
    message: str
    # Uniquement hors production (EXPOSE_OTP_IN_RESPONSE)
    otp: Optional[str] = None


class OTPVerified(BaseModel):
    verified: bool = True
    message: str = "Email verified successfully"

from pydantic import BaseModel, Field


class AdminLoginRequest(BaseModel):
    # Optional so a missing field is reported as 400, not a schema error
    email: str | None = None
    password: str | None = None


class AdminLoginResponse(BaseModel):
    success: bool
    message: str


class AdminSessionStatus(BaseModel):
    authenticated: bool


class CheckAccessRequest(BaseModel):
    uid: str = Field(..., min_length=1, max_length=128)
    email: str | None = None


class CheckAccessResponse(BaseModel):
    hasAccess: bool

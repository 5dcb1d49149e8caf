from typing import Optional
from pydantic import BaseModel, constr

Email = constr(strip_whitespace=True, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=255)


class SignUpRequest(BaseModel):
    email: Email
    password: str
    full_name: Optional[constr(strip_whitespace=True, max_length=100)] = None


class SignInRequest(BaseModel):
    email: Email
    password: str


class PasswordResetRequest(BaseModel):
    email: Email


class PasswordUpdateRequest(BaseModel):
    password: str
    token: Optional[str] = None

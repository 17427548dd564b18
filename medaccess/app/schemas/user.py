# medaccess/app/schemas/user.py
"""
Request/response bodies. JSON keys are camelCase on the wire
(``accessToken``), snake_case in Python.
"""
import re
from datetime import date
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")

# E.164: +, country code, up to 15 digits
PHONE_RE = re.compile(r"^\+[1-9]\d{6,14}$")

ADULT_AGE = 18


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None


# --- Signup / signin ---
class SignupRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    confirm_password: str
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.replace(" ", "")
        if not PHONE_RE.match(v):
            raise ValueError("Phone number must be in international format, e.g. +33612345678")
        return v

    @model_validator(mode="after")
    def passwords_match(self) -> "SignupRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class SignupResult(CamelModel):
    id: str
    # Recovery passphrase, returned once and never stored
    passphrase: str


class SignupInfo(CamelModel):
    status: str
    code_sent: Optional[bool] = None


class SigninRequest(CamelModel):
    email: EmailStr
    password: str


# --- Tokens ---
class TokenPair(CamelModel):
    access_token: str
    refresh_token: str


class RefreshRequest(CamelModel):
    # Both are sent in the body: the request itself is unauthenticated
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


# --- Verification ---
class VerifyCallbackRequest(CamelModel):
    code: Optional[str] = None


# --- Profile ---
def minimal_adult_birth_date(today: Optional[date] = None) -> date:
    """Latest birth date of someone who is already ADULT_AGE today."""
    today = today or date.today()
    try:
        return today.replace(year=today.year - ADULT_AGE)
    except ValueError:
        # 29 February
        return today.replace(year=today.year - ADULT_AGE, day=28)


class ProfileCreate(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    birth_name: Optional[str] = Field(None, max_length=100)
    birth_date: date
    birth_place: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1, max_length=255)
    address_details: Optional[str] = Field(None, max_length=255)
    country: Optional[str] = Field(None, min_length=2, max_length=2)

    @field_validator("birth_date")
    @classmethod
    def check_adult(cls, v: date) -> date:
        if v > minimal_adult_birth_date():
            raise ValueError(f"You must be at least {ADULT_AGE} years old")
        return v

    @field_validator("country")
    @classmethod
    def upper_country(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v

    def to_columns(self) -> Dict[str, Any]:
        return self.model_dump()

# medaccess/app/core/result.py
"""
Tagged success/failure values returned by every service operation.

Expected failures (unknown user, expired code, ...) are never raised:
the service returns ``fail(kind, message)`` and the HTTP layer maps
``kind`` to a status code. Only unexpected bugs propagate as exceptions.
"""
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


# Machine-readable failure kinds
USER_NOT_FOUND = "USER_NOT_FOUND"
DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"
PROFILE_ALREADY_EXISTS = "PROFILE_ALREADY_EXISTS"
INVALID_SIGNUP_TOKEN = "INVALID_SIGNUP_TOKEN"
STWT_NOT_FOUND = "STWT_NOT_FOUND"
INVALID_REFRESH_TOKEN = "INVALID_REFRESH_TOKEN"
LOGOUT_FAILED = "LOGOUT_FAILED"
ALREADY_VERIFIED = "ALREADY_VERIFIED"
TOO_MANY_REQUESTS = "TOO_MANY_REQUESTS"
MISSING_CODE = "MISSING_CODE"
NO_PENDING_CODE = "NO_PENDING_CODE"
CODE_EXPIRED = "CODE_EXPIRED"
INVALID_CODE = "INVALID_CODE"
MESSAGE_NOT_SENT = "MESSAGE_NOT_SENT"
INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
PASSWORD_NOT_SET = "PASSWORD_NOT_SET"
STORAGE_ERROR = "STORAGE_ERROR"


@dataclass(frozen=True)
class Result(Generic[T]):
    success: bool
    data: Optional[T] = None
    kind: Optional[str] = None
    message: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success

    def to_error(self) -> dict[str, Any]:
        return {"type": self.kind or STORAGE_ERROR, "message": self.message or "Unexpected error"}


def ok(data: Optional[T] = None) -> Result[T]:
    return Result(success=True, data=data)


def fail(kind: str, message: str) -> Result[Any]:
    return Result(success=False, kind=kind, message=message)

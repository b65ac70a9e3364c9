from dataclasses import dataclass
from typing import Any

from fastapi import HTTPException


@dataclass
class ApiError:
    code: str
    message: str
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class AppHTTPException(HTTPException):
    def __init__(self, status_code: int, error: ApiError, headers: dict[str, str] | None = None):
        super().__init__(status_code=status_code, detail=error.to_dict(), headers=headers)


def not_found(resource: str, **details: Any) -> AppHTTPException:
    return AppHTTPException(
        status_code=404,
        error=ApiError(code="not_found", message=f"{resource} not found", details=details or None),
    )


def conflict(code: str, message: str, **details: Any) -> AppHTTPException:
    return AppHTTPException(status_code=409, error=ApiError(code=code, message=message, details=details or None))

"""API error mapping for use case failures"""

from fastapi import status
from libs.result import Error

# Error codes that are not plain 400s
ERROR_STATUS_CODES = {
    "GUEST_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "CAST_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "PAYOUT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INSUFFICIENT_POINTS": status.HTTP_402_PAYMENT_REQUIRED,
    "INSUFFICIENT_PLATFORM_BALANCE": status.HTTP_402_PAYMENT_REQUIRED,
    "INVALID_PAYOUT_STATE": status.HTTP_409_CONFLICT,
}


class ClientError(Exception):
    """Raised by routes to return an error body {"error": {"code", "message"}}"""

    def __init__(self, error: Error, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(error.message)
        self.error = error
        self.status_code = status_code

    @classmethod
    def from_error(cls, error: Error) -> "ClientError":
        return cls(error, status_code=ERROR_STATUS_CODES.get(error.code, status.HTTP_400_BAD_REQUEST))

    def to_body(self) -> dict:
        return {"error": {"code": self.error.code, "message": self.error.message}}

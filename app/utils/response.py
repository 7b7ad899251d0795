from typing import Any, Optional
from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def _envelope(success: bool, message: Optional[str], data: Any, error: Optional[dict]) -> dict:
    return jsonable_encoder({
        "success": success,
        "message": message,
        "data": data,
        "error": error
    })


class APIResponse:
    """{success, message, data, error} body shared by the admin and error responses."""

    @staticmethod
    def success(data: Any, message: str = "Success", status_code: int = status.HTTP_200_OK):
        return JSONResponse(status_code=status_code, content=_envelope(True, message, data, None))

    @staticmethod
    def error(message: Any, error_type: str = "Error", status_code: int = status.HTTP_400_BAD_REQUEST, details: Optional[Any] = None):
        error = {
            "code": status_code,
            "message": message,
            "type": error_type,
            "details": details
        }
        return JSONResponse(status_code=status_code, content=_envelope(False, None, None, error))

    @staticmethod
    def from_exception(exc) -> JSONResponse:
        """Scheduling errors carry a `details` payload (conflicting slot, offending field)."""
        return APIResponse.error(
            message=exc.detail,
            error_type=type(exc).__name__,
            status_code=exc.status_code,
            details=getattr(exc, "details", None)
        )

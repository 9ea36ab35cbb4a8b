"""Generic API response envelope."""

from pydantic import BaseModel


class ApiError(BaseModel):
    """Structured error detail."""

    code: str
    message: str
    field: str | None = None


def success_response(data: object, **meta: object) -> dict:
    """Build a success envelope dict."""
    return {
        "status": "success",
        "data": data,
        "errors": [],
        "meta": meta,
    }


def error_response(code: str, message: str, field: str | None = None) -> dict:
    """Build an error envelope dict with a single error."""
    return {
        "status": "error",
        "data": None,
        "errors": [ApiError(code=code, message=message, field=field).model_dump()],
        "meta": {},
    }

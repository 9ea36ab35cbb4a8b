"""Per-user rate limiting using slowapi."""

from fastapi import HTTPException
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from app.config import settings


def _get_user_or_ip(request: Request) -> str:
    """Extract user ID from JWT for rate-limit key, fall back to IP."""
    auth = request.headers.get("authorization", "")
    if auth.startswith("Bearer "):
        from app.api.dependencies import verify_token

        try:
            payload = verify_token(auth.split(" ", 1)[1])
            return f"user:{payload['sub']}"
        except HTTPException:
            pass
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=_get_user_or_ip)

# Limit strings built from config
AI_LIMIT = f"{settings.rate_limit_ai}/minute"

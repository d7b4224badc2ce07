"""Rate limiting for phone mutations using slowapi."""

from fastapi import Request
from slowapi import Limiter

from .config import settings
from .dependencies import SESSION_AUTH_KEY


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _identity_key(request: Request) -> str:
    """Limit per anonymous identity when one exists, otherwise per client IP."""
    data_session = request.session.get(SESSION_AUTH_KEY) if "session" in request.scope else None
    if data_session and data_session.get("user_id"):
        return f"user:{data_session['user_id']}"
    return f"ip:{_client_ip(request)}"


limiter = Limiter(key_func=_identity_key)
mutation_limit = settings.rate_limit_mutations

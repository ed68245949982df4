"""
Rate limiting configuration and setup.

Uses slowapi. Requests are keyed by the wallet identity header when
present so that users behind one gateway address do not share a bucket;
anonymous requests fall back to the client address.
"""

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from lotqueue.core.config import settings


def wallet_or_remote_address(request: Request) -> str:
    """Return the caller's wallet address, or its IP if unidentified."""
    wallet = request.headers.get(settings.identity_header)
    if wallet:
        return wallet.strip().lower()
    return get_remote_address(request)


limiter = Limiter(
    key_func=wallet_or_remote_address,
    default_limits=[settings.rate_limit_default],
    enabled=settings.rate_limit_enabled,
)


async def rate_limit_exceeded_handler(
    _request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Handle rate limit exceeded errors with a clean JSON response.

    Returns:
        A 429 JSON response in the shared error body shape.
    """
    return JSONResponse(
        status_code=429,
        content={"error": "rate_limited", "message": f"Rate limit exceeded: {exc.detail}"},
    )

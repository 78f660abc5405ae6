"""Per-route rate limiting dependency.

Routes opt in with ``Depends(require_rate_limit(REDEEM_LIMIT))``.  The
bucket key is the token subject when a bearer token is present and the
client address otherwise.  The subject is read without verifying the
signature: a forged subject only buys the forger a bucket of their own,
and require_user still rejects the request.
"""

from __future__ import annotations

import logging

import jwt
from fastapi import HTTPException, Request, Response, status

from bizsuite.api import stores
from bizsuite.core.metrics import RATE_LIMIT_HITS
from bizsuite.services.rate_limiter import RateLimitConfig

logger = logging.getLogger(__name__)


def require_rate_limit(config: RateLimitConfig):
    async def _check(request: Request, response: Response) -> None:
        key = _build_key(request)
        result = await stores.rate_limiter.check(key, config)

        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)

        if not result.allowed:
            RATE_LIMIT_HITS.labels(
                key_type="user" if key.startswith("user:") else "ip"
            ).inc()
            logger.warning("Rate limit exceeded scope=%s key=%s", config.scope, key)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Rate limit exceeded",
                headers={
                    "Retry-After": str(int(result.retry_after) + 1),
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

    return _check


def _build_key(request: Request) -> str:
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        try:
            claims = jwt.decode(auth_header[7:], options={"verify_signature": False})
        except jwt.InvalidTokenError:
            claims = {}
        sub = claims.get("sub")
        if sub:
            return f"user:{sub}"

    client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}"

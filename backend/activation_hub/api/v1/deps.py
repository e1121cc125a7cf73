# activation_hub/api/v1/deps.py
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from activation_hub.config import settings
from activation_hub.core.ratelimit import RateLimiter, build_rate_limit_store
from activation_hub.core.security import api_key_matches, decode_access_token
from activation_hub.models.user import User

logger = logging.getLogger("uvicorn.error")

_rate_limiter: Optional[RateLimiter] = None


def _bearer_or_cookie(request: Request, authorization: str | None) -> str | None:
    # 1) Authorization: Bearer xxx  2) HttpOnly cookie accessToken
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
        if token:
            return token
    return request.cookies.get("accessToken")


async def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None),
) -> User:
    """
    FastAPI dependency returning the signed-in operator.

    Raises:
        HTTPException (401): AUTH_REQUIRED / AUTH_INVALID_TOKEN / AUTH_USER_NOT_FOUND
    """
    token = _bearer_or_cookie(request, authorization)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="AUTH_REQUIRED")

    try:
        payload = decode_access_token(token)
        user_id: str = payload.get("sub")
    except Exception:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="AUTH_INVALID_TOKEN")

    user = await User.get_or_none(id=user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="AUTH_USER_NOT_FOUND")
    return user


async def get_optional_user(
    request: Request,
    authorization: str | None = Header(default=None),
) -> Optional[User]:
    """
    Like get_current_user, but anonymous callers get None instead of a 401.
    Used by the public verify route to record who redeemed a code.
    """
    try:
        return await get_current_user(request, authorization)
    except HTTPException:
        return None


async def require_admin(
    request: Request,
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None),
) -> Optional[User]:
    """
    Gate for activation code administration.

    Accepts either:
    1. A token for a user with role "admin" (returns that user)
    2. When ENABLE_API_KEY_AUTH is on, an X-API-Key header equal to API_KEY (returns None)

    Raises:
        HTTPException (401): no usable credentials
        HTTPException (403): signed in, but not an admin (FORBIDDEN_ADMIN_ONLY)
    """
    if settings.enable_api_key_auth and x_api_key is not None:
        if api_key_matches(x_api_key, settings.api_key):
            return None
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="AUTH_INVALID_API_KEY")

    current = await get_current_user(request, authorization)
    if getattr(current, "role", "user") != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="FORBIDDEN_ADMIN_ONLY")
    return current


def client_identity(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else ""


def get_rate_limiter() -> RateLimiter:
    """Process-wide limiter built from settings (override in tests via dependency_overrides)."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter(
            store=build_rate_limit_store(settings.rate_limit_backend),
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    return _rate_limiter


def rate_limited(bucket: str):
    """
    Dependency factory: reject with 429 RATE_LIMITED once the caller exceeds the window.
    No-op unless ENABLE_RATE_LIMITING is on.
    """
    async def _check(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> None:
        if not settings.enable_rate_limiting:
            return
        decision = await limiter.hit(bucket, client_identity(request))
        if not decision.allowed:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={"code": "RATE_LIMITED", "message": "Rate limit exceeded. Please try again later."},
                headers={"Retry-After": str(decision.retry_after)},
            )
    return _check

"""Shared API dependencies."""

from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from idynic.core.rate_limiter import RateLimiter, get_rate_limiter


async def get_current_user_id(
    x_user_id: str | None = Header(None, alias="X-User-Id"),
) -> str:
    """
    Extract the caller's user id from the X-User-Id header.

    Returns:
        The id in canonical UUID form

    Raises:
        HTTPException 401: If the header is missing
        HTTPException 400: If the header is not a UUID
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )

    try:
        user_id = UUID(x_user_id.strip())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid user ID format",
        )

    return str(user_id)


async def rate_limited_user(
    user_id: str = Depends(get_current_user_id),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> str:
    """Require a user id and count the request against their rate limit."""
    limiter.check_limit(user_id)
    return user_id

"""
FastAPI dependencies for operator authentication.
Provides require_operator, guarding every admin endpoint.
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from mediarelay.state import AppServices, get_services

# Generic 401, same for missing and invalid credentials
_UNAUTHORIZED = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Unauthorized",
    headers={"WWW-Authenticate": 'Basic realm="Dashboard"'},
)


async def require_operator(
    authorization: Optional[str] = Header(default=None),
    services: AppServices = Depends(get_services)
) -> None:
    """
    FastAPI dependency that validates the operator token from /api/auth.

    Raises:
        HTTPException 401: If the header is missing or does not match
            the configured operator credentials
    """
    if not services.operator_auth.is_authorized(authorization):
        raise _UNAUTHORIZED

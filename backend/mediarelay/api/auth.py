"""
Operator login.
"""
from fastapi import APIRouter, Depends, HTTPException, status

from mediarelay.schemas.admin import LoginRequest, LoginResponse, LoginUser
from mediarelay.state import AppServices, get_services

router = APIRouter()


@router.post("", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    services: AppServices = Depends(get_services)
):
    """
    Exchange operator credentials for a bearer token.

    The token is derived from the credentials (not signed, no expiry);
    send it back verbatim as the Authorization header on admin routes.
    """
    token = services.operator_auth.login(request.username, request.password)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    return LoginResponse(token=token, user=LoginUser(username=request.username))

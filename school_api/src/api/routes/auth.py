from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import Principal, get_central_session, get_current_principal
from src.schemas.auth import PrincipalRead, RefreshRequest, TokenPair
from src.schemas.common import MessageResponse
from src.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=TokenPair,
    summary="Login",
    description=(
        "Authenticate using the OAuth2 password form. Add `school_code` to log into a school; "
        "omit it to log in as a platform super-admin."
    ),
)
async def login_for_tokens(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    school_code: Optional[str] = Form(None, description="School to log into; empty for super-admins"),
    session: AsyncSession = Depends(get_central_session),
) -> TokenPair:
    """Authenticate a super-admin or school user and issue tokens."""
    service = AuthService(session)
    return await service.login(
        form_data.username,
        form_data.password,
        school_code,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


# PUBLIC_INTERFACE
@router.post(
    "/refresh",
    response_model=TokenPair,
    summary="Refresh access token",
    description="Issue a new token pair from a valid refresh token.",
)
async def refresh_token(
    payload: RefreshRequest,
    session: AsyncSession = Depends(get_central_session),
) -> TokenPair:
    """Validate refresh token and issue a new access token pair."""
    return await AuthService(session).refresh(payload.refresh_token)


# PUBLIC_INTERFACE
@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
    description="Stateless logout. Clients should discard tokens. No server state maintained.",
)
async def logout() -> MessageResponse:
    """Acknowledge logout in stateless JWT systems."""
    return MessageResponse(message="Logged out")


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=PrincipalRead,
    summary="Read current principal",
    description="Return the claims of the authenticated caller.",
)
async def read_current_principal(principal: Principal = Depends(get_current_principal)) -> PrincipalRead:
    """Return the caller as carried by the access token."""
    return PrincipalRead(
        id=principal.id,
        role=principal.role,
        school_code=principal.school_code,
        email=principal.email,
        name=principal.name,
    )

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from dental_clinic.api.deps import get_current_user
from dental_clinic.api.schemas.auth import LoginRequest, TokenResponse
from dental_clinic.core.db import get_session
from dental_clinic.models.user import User, UserPublic
from dental_clinic.services.auth_service import login_user, user_to_public

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    session: AsyncSession = Depends(get_session),
) -> TokenResponse:
    result = await login_user(session, body.email, body.password)
    if not result:
        logger.info("Failed login for %s", body.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    user, access, expires_in = result
    return TokenResponse(access_token=access, expires_in=expires_in)


@router.get("/me", response_model=UserPublic)
async def me(current_user: User = Depends(get_current_user)) -> UserPublic:
    return user_to_public(current_user)

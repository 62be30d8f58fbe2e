from collections.abc import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dental_clinic.core.db import get_session
from dental_clinic.core.permissions import has_permission
from dental_clinic.core.security import decode_access_token
from dental_clinic.models.user import User
from dental_clinic.services.repository import SqlAppointmentRepository

security = HTTPBearer(auto_error=False)


async def get_current_user(
    session: AsyncSession = Depends(get_session),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User:
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    claims = decode_access_token(credentials.credentials)
    if not claims:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    result = await session.execute(select(User).where(User.id == claims.user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if user.role.value != claims.role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Role changed, sign in again",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_permission(module: str, action: str) -> Callable:
    """Dependency factory: the current user's role must allow `action` on `module`."""

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if not has_permission(current_user.role, module, action):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"You do not have permission to {action} {module}",
            )
        return current_user

    return checker


def get_appointment_repository(
    session: AsyncSession = Depends(get_session),
) -> SqlAppointmentRepository:
    return SqlAppointmentRepository(session)

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dental_clinic.api.deps import require_permission
from dental_clinic.core.db import get_session
from dental_clinic.models.user import User, UserPublic
from dental_clinic.services.auth_service import list_active_dentists, user_to_public

router = APIRouter(prefix="/dentists", tags=["dentists"])


@router.get("", response_model=list[UserPublic])
async def active_dentists(
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_permission("appointments", "read")),
) -> list[UserPublic]:
    return [user_to_public(u) for u in await list_active_dentists(session)]

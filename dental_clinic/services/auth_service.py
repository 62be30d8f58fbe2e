from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dental_clinic.core.config import settings
from dental_clinic.core.security import create_access_token, hash_password, verify_password
from dental_clinic.models.user import User, UserPublic, UserRole


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: UserRole = UserRole.RECEPTIONIST,
    is_active: bool = True,
) -> User:
    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_active=is_active,
        hashed_password=hash_password(password),
    )
    session.add(user)
    await session.flush()
    await session.refresh(user)
    return user


def user_to_public(user: User) -> UserPublic:
    return UserPublic(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
        is_active=user.is_active,
    )


def make_access_token(user: User) -> tuple[str, int]:
    access = create_access_token(user.id, user.role.value)
    return access, settings.access_token_expire_minutes * 60


async def login_user(
    session: AsyncSession, email: str, password: str
) -> tuple[User, str, int] | None:
    user = await get_user_by_email(session, email)
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    access, expires_in = make_access_token(user)
    return user, access, expires_in


async def list_active_dentists(session: AsyncSession) -> list[User]:
    result = await session.execute(
        select(User)
        .where(User.role == UserRole.DENTIST, User.is_active == True)  # noqa: E712
        .order_by(User.last_name, User.first_name)
    )
    return list(result.scalars().all())

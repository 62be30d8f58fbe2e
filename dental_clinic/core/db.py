from collections.abc import AsyncGenerator
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from dental_clinic.core.config import settings


def to_async_database_url(database_url: str) -> tuple[str, dict]:
    """Return (async_url, connect_args) for the configured database URL.

    asyncpg does not accept psycopg params like sslmode/channel_binding, so they
    are stripped and SSL is enabled via connect_args instead.
    """
    parsed = urlparse(database_url)
    if parsed.scheme not in ("postgresql", "postgres"):
        return database_url, {}
    query = parse_qs(parsed.query, keep_blank_values=True)
    sslmode = query.pop("sslmode", [None])[0]
    query.pop("channel_binding", None)
    new_query = urlencode(query, doseq=True)
    url = urlunparse(
        ("postgresql+asyncpg", parsed.netloc, parsed.path, parsed.params, new_query, parsed.fragment)
    )
    connect_args = {"ssl": True} if sslmode in ("require", "verify-ca", "verify-full") else {}
    return url, connect_args


async_database_url, _connect_args = to_async_database_url(settings.database_url)

_engine_kwargs: dict = {"echo": settings.env == "development", "connect_args": _connect_args}
if async_database_url.startswith("postgresql"):
    _engine_kwargs.update(pool_pre_ping=True, pool_size=5, max_overflow=10)

engine = create_async_engine(async_database_url, **_engine_kwargs)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create tables if using create_all; prefer Alembic in production."""
    import dental_clinic.models  # noqa: F401 - register tables

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

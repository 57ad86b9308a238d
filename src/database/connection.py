from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.utils.settings.database import DatabaseSettings

database_settings = DatabaseSettings()

async_engine = create_async_engine(
    database_settings.DATABASE_URL_ASYNC,
    echo=database_settings.DATABASE_ECHO,
    pool_size=database_settings.DATABASE_POOL_SIZE,
    max_overflow=database_settings.DATABASE_MAX_OVERFLOW,
    pool_pre_ping=True,
)
# Loaded rows stay usable after commit; services read ids off them
AsyncSessionLocal = async_sessionmaker(
    bind=async_engine, class_=AsyncSession, expire_on_commit=False
)

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from app.core.config import settings

# Declarative base shared by all models
Base = declarative_base()

engine = create_async_engine(settings.database_url, future=True, echo=settings.database_echo)

SessionLocal = sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """FastAPI dependency yielding one session per request"""
    async with SessionLocal() as session:
        yield session


async def init_models() -> None:
    """Create missing tables (dev and sqlite setups; production uses alembic)"""
    # Models must be imported so they register on Base.metadata
    import app.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from procedure_tracker.core.config import settings

logger = logging.getLogger(__name__)


# Create async engine
engine = create_async_engine(
    settings.database_url_async,
    echo=settings.DATABASE_ECHO,
    future=True,
    poolclass=NullPool if settings.ENVIRONMENT == "test" else None
)

# Create async session maker
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db():
    """Initialize all database tables and seed demo data."""
    from procedure_tracker.models.base import Base
    # Import all models to ensure they're registered with SQLAlchemy
    import procedure_tracker.models  # noqa: F401

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables initialized successfully")

        if settings.SEED_DEMO_DATA:
            await create_default_admin()

        return True
    except Exception as e:
        logger.error(f"Failed to initialize database tables: {e}")
        return False


async def create_default_admin():
    """Create a default admin and demo procedures if no profile exists yet."""
    from datetime import date, timedelta
    from sqlalchemy import select, func
    from procedure_tracker.core.security import get_password_hash
    from procedure_tracker.models.profile import Profile, ProfileRole
    from procedure_tracker.models.procedure import Procedure, ProcedureStatus

    async with AsyncSessionLocal() as session:
        try:
            result = await session.execute(select(func.count(Profile.id)))
            if result.scalar():
                logger.info("Profiles already exist, skipping seed")
                return

            admin = Profile(
                email=settings.DEFAULT_ADMIN_EMAIL,
                hashed_password=get_password_hash(settings.DEFAULT_ADMIN_PASSWORD),
                full_name="Administrator",
                role=ProfileRole.ADMIN,
            )
            session.add(admin)
            await session.flush()
            logger.info(f"Created default admin: {admin.email}")

            today = date.today()
            procedures_data = [
                (
                    "New EFT Process",
                    "All EFT payments over $10,000 now need a second approver before release.",
                    "Teams",
                    ProcedureStatus.ACTIVE,
                    today - timedelta(days=3),
                ),
                (
                    "Expense receipts",
                    "Upload receipts to the finance inbox within 5 business days.",
                    "Email",
                    ProcedureStatus.ACTIVE,
                    today - timedelta(days=10),
                ),
                (
                    "Old EFT Process",
                    "Single approver for all EFT payments.",
                    "Slack",
                    ProcedureStatus.REPLACED,
                    today - timedelta(days=90),
                ),
            ]
            for title, description, source, status, effective in procedures_data:
                session.add(Procedure(
                    title=title,
                    description=description,
                    source=source,
                    status=status,
                    effective_date=effective,
                    created_by=admin.id,
                ))

            await session.commit()
            logger.info(f"Seeded {len(procedures_data)} demo procedures")

        except Exception as e:
            await session.rollback()
            logger.exception(f"Failed to create default admin and seed data: {e}")


async def test_connection():
    """Test database connection."""
    try:
        async with engine.connect() as connection:
            from sqlalchemy import text
            await connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False

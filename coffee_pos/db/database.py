from typing import AsyncIterator
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from alembic import command
from alembic.config import Config
from fastapi import Request
import asyncio
import logging
import os

from coffee_pos.config import Settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Build the async engine for the configured database URL"""
    if settings.is_sqlite:
        engine = create_async_engine(
            settings.database_url,
            connect_args={"timeout": settings.sqlite_busy_timeout},
        )
        _use_immediate_transactions(engine)
        return engine

    return create_async_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
    )


def _use_immediate_transactions(engine: AsyncEngine) -> None:
    """Make every SQLite transaction take the write lock up front.

    SQLite has no row locks and ignores FOR UPDATE, so concurrent order
    transactions are serialized at BEGIN instead.
    """
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # driver must not emit its own BEGIN
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Dependency for getting database session"""
    session_factory = request.app.state.context.session_factory
    async with session_factory() as db:
        yield db


async def create_all(engine: AsyncEngine) -> None:
    """Create tables straight from the models (used when migrations are disabled)"""
    import coffee_pos.models  # noqa: F401  registers every table on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def wait_for_database(engine: AsyncEngine, max_retries=30, retry_delay=2):
    """Wait for database to be available with retry logic"""
    db_url_display = engine.url.render_as_string(hide_password=True)
    logger.info(f"Waiting for database connection to {db_url_display}...")

    for attempt in range(1, max_retries + 1):
        try:
            async with engine.connect() as conn:
                result = await conn.execute(text("SELECT 1"))
                result.fetchone()
            logger.info("Database connection successful")
            return True
        except Exception as e:
            if attempt < max_retries:
                logger.warning(f"Database connection attempt {attempt}/{max_retries} failed: {e}. Retrying in {retry_delay}s...")
                await asyncio.sleep(retry_delay)
            else:
                logger.error(f"Database connection failed after {max_retries} attempts: {e}")
                raise
    return False


def _find_alembic_ini() -> str:
    # Current directory first (container working dir), then the project root
    alembic_ini_path = "alembic.ini"
    if os.path.exists(alembic_ini_path):
        return alembic_ini_path

    file_dir = os.path.dirname(os.path.abspath(__file__))
    project_root = os.path.dirname(os.path.dirname(file_dir))
    alembic_ini_path = os.path.join(project_root, "alembic.ini")
    if not os.path.exists(alembic_ini_path):
        raise FileNotFoundError(
            f"Could not find alembic.ini. Current directory: {os.getcwd()}, "
            f"Tried: alembic.ini and {alembic_ini_path}"
        )
    return alembic_ini_path


async def init_db(engine: AsyncEngine, settings: Settings):
    """Wait for the database, then bring the schema up to date"""
    try:
        await wait_for_database(engine)
    except Exception as e:
        logger.error(f"Failed to connect to database: {e}")
        raise

    if not settings.run_migrations:
        logger.info("Migrations disabled, creating tables from models...")
        await create_all(engine)
        return

    logger.info("Running database migrations...")
    try:
        alembic_ini_path = _find_alembic_ini()
        logger.info(f"Using Alembic config: {os.path.abspath(alembic_ini_path)}")

        alembic_cfg = Config(alembic_ini_path)
        alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)

        logger.info("Starting Alembic migration to head...")
        # env.py runs its own event loop, so keep it off ours
        await asyncio.wait_for(
            asyncio.to_thread(command.upgrade, alembic_cfg, "head"),
            timeout=60.0
        )
        logger.info("Database migrations completed successfully")
    except asyncio.TimeoutError:
        logger.error("Database migrations timed out after 60 seconds")
        raise
    except Exception as e:
        logger.error(f"Error running migrations: {e}", exc_info=True)
        # Re-raise to prevent service from starting with failed migrations
        raise

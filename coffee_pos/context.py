from dataclasses import dataclass
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
import logging

from coffee_pos.config import Settings
from coffee_pos.db.database import create_engine_from_settings, create_session_factory
from coffee_pos.services.audit import AuditSink
from coffee_pos.auth.jwt_validator import JWTValidator

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a request needs that outlives the request.

    Built once by the entry point and stored on ``app.state.context``;
    dependencies read it from there instead of from module globals.
    """
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    audit: AuditSink
    jwt_validator: JWTValidator

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppContext":
        engine = create_engine_from_settings(settings)
        session_factory = create_session_factory(engine)
        logger.info(f"Application context created for {engine.url.render_as_string(hide_password=True)}")
        return cls(
            settings=settings,
            engine=engine,
            session_factory=session_factory,
            audit=AuditSink(session_factory),
            jwt_validator=JWTValidator(
                secret=settings.jwt_secret,
                algorithm=settings.jwt_algorithm,
                expires_minutes=settings.jwt_expires_minutes,
            ),
        )

    async def dispose(self):
        await self.audit.drain()
        await self.engine.dispose()
        logger.info("Database engine disposed")


def get_context(request: Request) -> AppContext:
    """Dependency returning the context created by the entry point"""
    return request.app.state.context

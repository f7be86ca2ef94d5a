from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import text
import logging

from coffee_pos import __version__
from coffee_pos.context import AppContext, get_context

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: str = Field(..., description="Service health status", example="healthy")
    service: str = Field(..., description="Service name", example="coffee-pos")
    version: str = Field(..., description="Service version", example="1.0.0")
    database: str = Field(..., description="Database reachability", example="ok")


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="""
    Health check endpoint for monitoring and load balancer health checks.

    Returns the service status, name, version and whether the database
    answers a trivial query.
    """,
    responses={
        200: {
            "description": "Service is up",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "service": "coffee-pos",
                        "version": "1.0.0",
                        "database": "ok"
                    }
                }
            }
        }
    }
)
async def health(context: AppContext = Depends(get_context)):
    """Health check endpoint"""
    database = "ok"
    try:
        async with context.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Health check could not reach the database: {e}")
        database = "unavailable"

    return HealthResponse(
        status="healthy" if database == "ok" else "degraded",
        service=context.settings.app_name,
        version=__version__,
        database=database
    )

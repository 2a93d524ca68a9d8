from fastapi import APIRouter
from sqlalchemy import text

from listing_ai.config import settings
from listing_ai.infrastructure.database.connection import AsyncSessionLocal

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict:  # type: ignore[type-arg]
    """Liveness + dependency health check."""
    db_status = "disabled"
    if settings.storage_backend == "postgres":
        db_status = "connected"
        try:
            async with AsyncSessionLocal() as session:
                await session.execute(text("SELECT 1"))
        except Exception as exc:
            db_status = f"error: {exc}"

    # RabbitMQ: a lightweight connection attempt
    rabbitmq_status = "disabled"
    if settings.rabbitmq_url:
        rabbitmq_status = "connected"
        try:
            import pika

            connection = pika.BlockingConnection(pika.URLParameters(settings.rabbitmq_url))
            connection.close()
        except Exception as exc:
            rabbitmq_status = f"error: {exc}"

    healthy = {"connected", "disabled"}
    overall = "healthy" if db_status in healthy and rabbitmq_status in healthy else "degraded"

    return {
        "status": overall,
        "database": db_status,
        "rabbitmq": rabbitmq_status,
        "ebay_environment": settings.ebay_environment,
    }

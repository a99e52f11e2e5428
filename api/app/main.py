from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Response

from app.config import settings
from app.logging_config import configure_logging
from app.metrics import metrics_endpoint
from app.routers import analytics
from app.services.realtime import NullChangeStream, PgNotifyChangeStream

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Configure structured logging before anything else
    configure_logging()

    # One LISTEN connection per process, opened lazily on first subscription
    if settings.realtime_enabled:
        app.state.change_stream = PgNotifyChangeStream()
    else:
        app.state.change_stream = NullChangeStream()
    log.info("app_started", realtime_enabled=settings.realtime_enabled)
    try:
        yield
    finally:
        await app.state.change_stream.close()


app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

app.include_router(analytics.router)

# Prometheus metrics endpoint
app.get("/metrics")(metrics_endpoint)


@app.get("/health")
async def health_check(response: Response):
    """Health check for the database and the change stream.

    Returns 200 if all components are healthy, 503 if any component is unhealthy.
    A change stream that has not connected yet counts as idle, not unhealthy.
    """
    from app.database import async_session_factory
    from sqlalchemy import text

    checks = {}
    overall_healthy = True

    try:
        async with async_session_factory() as db:
            await db.execute(text("SELECT 1"))
        checks["database"] = {"status": "healthy"}
    except Exception as e:
        checks["database"] = {"status": "unhealthy", "error": str(e)}
        overall_healthy = False

    try:
        connected = await app.state.change_stream.ping()
        checks["change_stream"] = {"status": "healthy" if connected else "idle"}
    except AttributeError:
        checks["change_stream"] = {
            "status": "unhealthy",
            "error": "Change stream not initialized",
        }
        overall_healthy = False
    except Exception as e:
        checks["change_stream"] = {"status": "unhealthy", "error": str(e)}
        overall_healthy = False

    response.status_code = 200 if overall_healthy else 503
    return {"status": "healthy" if overall_healthy else "unhealthy", "checks": checks}

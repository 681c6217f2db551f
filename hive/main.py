"""
Hive FastAPI Application
Fleet coordinator: node liveness tracking and command broadcast
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from hive.config import settings
from hive.fleet.controller import HiveController
from hive.fleet.routes import router

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Starting hive coordinator on %s:%s", settings.host, settings.port)
    controller = HiveController.from_settings(settings)
    if not controller.auth_enabled:
        logger.warning("HIVE_TOKEN is not set: API auth is disabled")
    app.state.hive = controller

    yield

    # Shutdown
    logger.info("Shutting down hive coordinator")
    await controller.stop()
    app.state.hive = None


app = FastAPI(
    title="Hive",
    description="Fleet coordinator for remote worker nodes",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)


# Health check endpoint (no auth required)
@app.get("/health")
async def health_check():
    """Basic health check endpoint"""
    controller = getattr(app.state, "hive", None)
    return {
        "status": "healthy",
        "service": "hive",
        "version": "1.0.0",
        "nodes_registered": len(controller.registry) if controller else 0,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "hive.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )

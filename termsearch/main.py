"""Search service application factory.

The engine needs concrete term datasets and indexes, so the app is built
around an already constructed ``SearchManager``::

    manager = SearchManager(provider, class_indexes, employee_index, employee_map)
    app = create_app(manager)
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from .api.routes import router as api_router
from .hybrid.search_manager import SearchManager
from .runtime.metrics import MetricsCollector
from termsearch_libs.common.config import SearchConfig
from termsearch_libs.common.logging import configure_logging

logger = structlog.get_logger("search_service")


def create_app(
    search_manager: SearchManager,
    config: Optional[SearchConfig] = None,
    metrics_collector: Optional[MetricsCollector] = None,
) -> FastAPI:
    """Create the FastAPI application serving ``search_manager``."""
    config = config or search_manager.config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        configure_logging("search-service", config.search_log_level, config.search_log_format)
        logger.info("Starting search service")

        await app.state.search_manager.start()

        logger.info("Search service started successfully")

        yield

        logger.info("Shutting down search service")
        await app.state.search_manager.stop()
        logger.info("Search service shutdown complete")

    app = FastAPI(
        title="Search Service",
        description="Term-scoped class and employee search",
        version="0.1.0",
        lifespan=lifespan
    )
    app.state.search_manager = search_manager
    app.state.metrics_collector = metrics_collector or search_manager.metrics

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api/v1")

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Add processing time header to responses."""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Collect metrics for HTTP requests."""
        start_time = time.time()

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as e:
            logger.error("Unhandled request error", path=request.url.path, error=str(e))
            status_code = 500
            response = JSONResponse(
                status_code=500,
                content={"error": "Internal server error", "detail": str(e)}
            )

        app.state.metrics_collector.record_http_request(
            method=request.method,
            endpoint=request.url.path,
            status=status_code,
            duration=time.time() - start_time
        )
        return response

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        if await app.state.search_manager.health_check():
            return {"status": "healthy", "service": "search-service"}
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "service": "search-service"}
        )

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(content=app.state.metrics_collector.get_metrics(), media_type="text/plain")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": "search-service",
            "version": "0.1.0",
            "status": "running",
            "endpoints": {
                "health": "/health",
                "metrics": "/metrics",
                "search": "/api/v1/search",
                "cache_stats": "/api/v1/cache/stats",
                "cache_sweep": "/api/v1/cache/sweep"
            }
        }

    return app

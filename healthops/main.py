"""
Customer Health Engine — FastAPI Application Entry Point

POST /v1/bulk/{entity_type}     → synchronous bulk operation
GET  /v1/bulk/operations        → bulk run logs
POST /v1/health/calculate       → recalculate health snapshots
GET  /v1/health/{company_id}    → latest snapshot + history
GET  /health                    → liveness
GET  /docs                      → OpenAPI / Swagger UI
"""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from healthops.api.bulk_endpoint import router as bulk_router
from healthops.api.health_endpoint import router as health_router
from healthops.core.config import get_settings
from healthops.core.logging import configure_logging

configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("health_engine_starting", model_version=get_settings().health_model_version)
    yield
    logger.info("health_engine_shutting_down")


app = FastAPI(
    title="Customer Health Engine",
    description="Account health scoring and bulk admin operations",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (internal admin tools) ──
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in production
    allow_methods=["POST", "GET"],
    allow_headers=["*"],
)

# ── Prometheus metrics ──
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── Routes ──
app.include_router(bulk_router)
app.include_router(health_router)


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok", "service": get_settings().app_name, "model_version": get_settings().health_model_version}


@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": get_settings().app_name,
        "version": "1.0.0",
        "docs": "/docs",
        "bulk": "POST /v1/bulk/{entity_type}",
        "health": "POST /v1/health/calculate",
    }

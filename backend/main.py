"""
StackHub Question Import API - main entry point.
Creates FastAPI app, sets up lifespan, error handlers, request logging middleware, CORS,
registers all routes.
"""

import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, APIRouter, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import logger, get_version_info, get_llm_api_key
from app.database import client
from app.errors import ImportPipelineError
from app.routes import register_all_routes


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - startup checks and Mongo client shutdown"""
    logger.info("🚀 FastAPI app starting up...")
    logger.info("REGISTERED ROUTES: %s", [r.path for r in app.routes])
    if get_llm_api_key():
        logger.info("✅ AI extraction enabled")
    else:
        logger.warning("⚠️  AI extraction disabled, PDF imports will use the legacy parser")
    logger.info("=" * 60)

    yield

    logger.info("🛑 FastAPI app shutting down...")
    client.close()


# Create the main app with lifespan
app = FastAPI(title="StackHub Question Import API", lifespan=lifespan)

# Versioned API router
api_router = APIRouter(prefix="/api/v1")


@app.get("/api/version")
async def get_version():
    """Public version endpoint for deployment verification"""
    return get_version_info()


# Register all route modules on the api_router
register_all_routes(api_router)

# Include the api_router on the app
app.include_router(api_router)


# Root-level health check endpoint (for Kubernetes probes)
@app.get("/health")
async def root_health_check():
    """Health check for Kubernetes liveness/readiness probes"""
    return {"status": "healthy", "service": "StackHub Question Import API"}


# ============== ERROR HANDLING ==============

@app.exception_handler(ImportPipelineError)
async def import_pipeline_error_handler(request: Request, exc: ImportPipelineError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


# ============== REQUEST LOGGING MIDDLEWARE ==============

@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log method, path, status and latency for every request"""
    start_time = time.time()
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
    except Exception as e:
        logger.error(f"Request failed: {str(e)}")
        raise
    finally:
        response_time_ms = int((time.time() - start_time) * 1000)
        logger.info(f"{request.method} {request.url.path} -> {status_code} ({response_time_ms}ms)")

    return response


# ============== CORS ==============

cors_origins_env = os.environ.get("CORS_ORIGINS")
cors_origins = [origin.strip() for origin in cors_origins_env.split(",")] if cors_origins_env else [
    "http://localhost:3000",
    "http://127.0.0.1:3000"
]

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

"""FastAPI application entry point."""
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flowmap.config import get_settings
from flowmap.api import generate, layout, maps

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    description="Natural-language process mapping with streamed graph updates",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(generate.router, prefix="/api", tags=["generation"])
app.include_router(layout.router, prefix="/api", tags=["layout"])
app.include_router(maps.router, prefix="/api", tags=["maps"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": "0.1.0",
        "llm_provider": settings.llm_provider,
        "storage_configured": bool(settings.supabase_url and settings.supabase_service_key),
    }


@app.on_event("startup")
async def startup_event():
    logger.info(
        "application_startup",
        app_name=settings.app_name,
        debug=settings.debug,
        llm_provider=settings.llm_provider,
        leveling=settings.layout_leveling,
        loop_back=settings.layout_loop_back,
    )


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("application_shutdown")

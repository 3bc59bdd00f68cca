import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from . import __version__
from .core.config import settings
from .errors import GenerationError
from .llm_providers import list_available_providers, validate_provider_config
from .middleware.error_handler import (
    generation_exception_handler,
    generic_exception_handler,
    validation_exception_handler,
)
from .middleware.metrics import MetricsMiddleware, get_metrics
from .routers import agents, chat


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(
    title="Forge API (Multi-Agent Orchestration)",
    description="Plans a request into agent tasks and streams the generated files",
    version=__version__
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.middleware("http")(MetricsMiddleware())

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(GenerationError, generation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.include_router(chat.router)
app.include_router(agents.router)


@app.on_event("startup")
async def startup_event():
    """Validate configuration on startup."""
    logger.info("Starting Forge API...")

    if settings.FORGE_ENV == "production":
        logger.info("Production mode detected - validating configuration...")
        settings.validate_production_config()
        logger.info("Production configuration validated")

    validation = validate_provider_config(settings.MODEL_PROVIDER)
    if not validation["valid"]:
        logger.warning(
            f"Provider '{settings.MODEL_PROVIDER}' is missing configuration: {', '.join(validation['missing'])}"
        )


@app.get("/health", response_class=ORJSONResponse)
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "env": settings.FORGE_ENV,
        "version": __version__,
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return get_metrics()


@app.get("/admin/providers", response_class=ORJSONResponse)
async def get_providers():
    """Get status of configured LLM providers."""
    providers = list_available_providers()
    current = settings.MODEL_PROVIDER
    current_validation = validate_provider_config(current)

    return {
        "current_provider": current,
        "current_model": settings.MODEL_NAME,
        "current_valid": current_validation["valid"],
        "current_missing": current_validation["missing"],
        "providers": providers
    }

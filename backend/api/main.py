"""
FastAPI application entry point.

Run with: uvicorn api.main:app --reload
"""
import logging
import time
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Load environment variables from backend/.env (optional) before other imports that read env
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(env_path)

from api.dependencies import ServiceContainer, build_services
from api.routes import query
from settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def create_app(
    app_settings: Optional[Settings] = None,
    services: Optional[ServiceContainer] = None,
) -> FastAPI:
    """Build the application; ``services`` may be supplied to swap in test doubles."""
    cfg = app_settings or default_settings
    app = FastAPI(
        title="Place Query API",
        description="Natural-language place search with LLM summaries",
        version="0.1.0",
    )
    app.state.services = services or build_services(cfg)
    debug = app.state.services.debug

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in cfg.CORS_ORIGIN.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(query.router, prefix="/api", tags=["query"])

    @app.middleware("http")
    async def access_log_middleware(request: Request, call_next):
        """Log one line per request with status and duration."""
        start = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s -> %d (%.0fms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - start) * 1000.0,
        )
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"errors": jsonable_encoder(exc.errors())})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            return JSONResponse(status_code=404, content={"error": "Route not found"})
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        content = {"error": "Internal server error"}
        if debug:
            content["message"] = str(exc)
        return JSONResponse(status_code=500, content=content)

    @app.on_event("startup")
    def startup_event():
        """Log configuration and check that the LLM model is available."""
        logger.info("Environment: %s", cfg.APP_ENV)
        logger.info("LLM Provider: %s", cfg.LLM_PROVIDER)
        logger.info("LLM Model: %s", cfg.LLM_MODEL)
        if cfg.LLM_CHECK_ON_STARTUP:
            app.state.services.llm.check_model()

    @app.on_event("shutdown")
    def shutdown_event():
        app.state.services.cache.close()

    @app.get("/")
    async def root():
        """Service banner."""
        return {"status": "ok", "service": "Place Query API"}

    return app


configure_logging(default_settings.LOG_LEVEL)
app = create_app()

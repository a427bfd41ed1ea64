from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import vocabulary, srs, exercises, progress
from core.config import settings
from core.database import engine, init_models
from core.logging import configure_logging, get_logger
from core.middleware import RequestContextMiddleware
from core.errors import register_error_handlers

configure_logging(
    level=settings.LOG_LEVEL,
    json_logs=settings.LOG_JSON,
    log_sql=settings.LOG_SQL,
)

log = get_logger(__name__)

VERSION = "0.1.0"

ROUTERS = (
    (vocabulary.router, "/api/vocabulary", "vocabulary"),
    (srs.router, "/api/srs", "srs"),
    (exercises.router, "/api/exercises", "exercises"),
    (progress.router, "/api/progress", "progress"),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    log.info("startup", version=VERSION, oracle_configured=bool(settings.OPENAI_API_KEY))

    yield

    await engine.dispose()
    log.info("shutdown")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Lexis API",
        description="Vocabulary learning backend: spaced-repetition review, generated exercises and gamified progress",
        version=VERSION,
        lifespan=lifespan,
    )
    register_error_handlers(app)

    # Last added runs first: CORS wraps the request context
    app.add_middleware(RequestContextMiddleware, slow_threshold_ms=settings.SLOW_REQUEST_MS)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router, prefix, tag in ROUTERS:
        app.include_router(router, prefix=prefix, tags=[tag])

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "version": VERSION}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    log.info("server_config", host=settings.BACKEND_HOST, port=settings.BACKEND_PORT, debug=settings.APP_DEBUG)
    uvicorn.run(
        "main:app",
        host=settings.BACKEND_HOST,
        port=settings.BACKEND_PORT,
        reload=settings.APP_DEBUG,
        log_config=None,  # structlog owns logging
    )

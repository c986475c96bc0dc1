"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

import logging

from dotenv import load_dotenv

load_dotenv()

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from authify.api.v1 import router as v1_router
from authify.core.config import settings
from authify.exceptions import ConfigurationError
from authify.schemas.auth import ErrorDetail

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Authify API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.APP_ENV == "dev" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(v1_router, prefix=settings.API_V1_PREFIX)


@app.exception_handler(ConfigurationError)
def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """Incomplete server configuration (e.g. unset JWT secrets) surfaces as a 500 with its kind."""
    logger.error("Authify is misconfigured: %s", exc.message)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": ErrorDetail(kind=exc.kind.value, message=exc.message).model_dump()},
    )


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "Authify API"}


if __name__ == "__main__":
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    logger.info("Server listening on %s:%s", settings.SERVER_HOST, settings.SERVER_PORT)
    uvicorn.run(app, host=settings.SERVER_HOST, port=settings.SERVER_PORT)

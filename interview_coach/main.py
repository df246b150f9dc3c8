import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from interview_coach.api.v1.routes import router as api_v1_router
from interview_coach.core.config import settings
from interview_coach.core.error_handling import (
    ApplicationError, application_error_handler, http_exception_handler,
    validation_exception_handler, generic_exception_handler
)
from interview_coach.core.logging_config import setup_production_logging, RequestLoggingMiddleware
from interview_coach.core.metrics import collector
from interview_coach.services.session.registry import registry

logger = logging.getLogger("interview_coach")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    closed = registry.close_all()
    if closed:
        logger.info("Closed %d live sessions on shutdown", len(closed))


app = FastAPI(
    title="Interview Coach API",
    version="1.0.0",
    openapi_url="/api/openapi.json",
    docs_url="/api/docs",
    lifespan=lifespan,
)

# Exception handlers (enable in all envs; handlers are safe)
app.add_exception_handler(ApplicationError, application_error_handler)  # type: ignore[arg-type]
app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(ValidationError, validation_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(Exception, generic_exception_handler)  # type: ignore[arg-type]

# CORS – local dev origins plus configured ones
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
for o in settings.cors_allowed_origins:
    if o not in origins:
        origins.append(o)

# Credentials are required for the auth cookie
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*", "Content-Type"],
    expose_headers=["X-Clip-Id", "X-TTS-Provider", "X-Request-ID"],
    max_age=86400,
)

setup_production_logging()

app.add_middleware(RequestLoggingMiddleware)


@app.get("/healthz", tags=["health"])
def healthcheck():
    return {"status": "ok", "live_sessions": len(registry), **collector.snapshot()}


@app.get("/metrics", tags=["health"])
def metrics():
    return Response(content=json.dumps(collector.snapshot()), media_type="application/json")


# Versioned API
app.include_router(api_v1_router, prefix="/api/v1")

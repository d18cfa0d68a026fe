"""FastAPI application for the billing API."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from leasebill import __version__
from leasebill.api.billing import router as billing_router
from leasebill.api.errors import error_response
from leasebill.services import async_engine, engine
from leasebill.services.errors import ValidationError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    logger.info("Billing API starting (database: %s)", engine.url.render_as_string(hide_password=True))
    yield
    await async_engine.dispose()
    engine.dispose()
    logger.info("Billing API shutting down")


app = FastAPI(
    title="leasebill",
    description="Monthly unit billing: statements, meter readings and payment status",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed payloads answer like any other billing validation error."""
    fields = ", ".join(".".join(str(part) for part in err["loc"][1:]) for err in exc.errors())
    logger.warning("Invalid payload for %s %s: %s", request.method, request.url.path, fields)
    error = ValidationError(f"Invalid fields: {fields}" if fields else "Invalid request")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": error_response(error)},
    )


app.include_router(billing_router)


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint for monitoring."""
    return {"status": "ok"}

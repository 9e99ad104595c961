"""
main.py — FastAPI Application Entrypoint

Purpose:
- Initialize application services (logging, config).
- Register API routers.
- Render every error as `{"error": "<message>"}`.
- Provide `app` object used by ASGI server (uvicorn).

This file should stay clean — no business logic here.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from watchtower.core.config import settings
from watchtower.core.logging import configure_logging, get_logger
from watchtower.api.v1 import activity, users

# -----------------------------------------------------------------------------
# App Initialization
# -----------------------------------------------------------------------------

configure_logging(settings.LOG_LEVEL)  # Set logging defaults at startup

logger = get_logger(__name__)

app = FastAPI(
    title="Watchtower Backend",
    description="Cross-app user aggregation and write-back for the Watchtower dashboard",
    version="0.1.0",
)

# -----------------------------------------------------------------------------
# CORS (the dashboard is served from a different origin)
# -----------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[users.AGGREGATION_INFO_HEADER],
)

# -----------------------------------------------------------------------------
# Error Rendering
# -----------------------------------------------------------------------------

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request body") if errors else "Invalid request body"
    return JSONResponse(status_code=400, content={"error": f"Invalid request body: {message}"})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc)})

# -----------------------------------------------------------------------------
# Router Registration
# -----------------------------------------------------------------------------

# Mount all v1 API routers under /api/v1 prefix
app.include_router(users.router, prefix="/api/v1")
app.include_router(activity.router, prefix="/api/v1")

# -----------------------------------------------------------------------------
# Health Check
# -----------------------------------------------------------------------------

@app.get("/")
def root():
    return {"status": "ok", "message": "Watchtower backend running"}

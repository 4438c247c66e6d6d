from __future__ import annotations

import json

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api_client import PortalAPIError
from .config import get_settings
from .logging_config import configure_logging, get_logger
from .routes import api_router, views_router
from .utils.responses import api_error_response

logger = get_logger(__name__)


# Register global exception handlers for consistent error responses across the API
def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.debug("validation error", extra={"errors": exc.errors(), "path": str(request.url)})
        return JSONResponse(
            {"ok": False, "error": "Invalid request", "detail": json.loads(json.dumps(exc.errors(), default=str))},
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException):
        logger.debug(
            "http error",
            extra={"detail": exc.detail, "status": exc.status_code, "path": str(request.url)},
        )
        detail = exc.detail
        if not isinstance(detail, str):
            detail = json.dumps(detail)
        return JSONResponse({"ok": False, "error": detail}, status_code=exc.status_code)

    @app.exception_handler(PortalAPIError)
    async def _portal_api_exception_handler(request: Request, exc: PortalAPIError):
        logger.warning(f"Backend error on {request.url.path}: {exc.message}")
        return api_error_response(exc)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"path": str(request.url)})
        return JSONResponse(
            {"ok": False, "error": "Internal server error"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


configure_logging()
_settings = get_settings()

app = FastAPI(
    title=_settings.app_name,
    version=_settings.app_version,
    docs_url=_settings.resolved_docs_url,
    redoc_url=None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_allow_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(api_router)
app.include_router(views_router)


@app.on_event("startup")
# Restore the session and bring up the realtime channel when the app starts
async def _start_runtime() -> None:
    logger.info("🚀 Telemedicine portal starting up...")

    try:
        from .services.runtime import get_runtime

        runtime = get_runtime()
        await runtime.start()

        logger.info("✅ Telemedicine portal startup completed successfully")

    except Exception:
        logger.exception("❌ Error during startup")


@app.on_event("shutdown")
# Close widgets and the realtime channel when the app stops
async def _stop_runtime() -> None:
    logger.info("Telemedicine portal shutting down...")

    try:
        from .services.runtime import get_runtime

        await get_runtime().stop()

        logger.info("Telemedicine portal shutdown completed")

    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


__all__ = ["app"]

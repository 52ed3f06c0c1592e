"""
FastAPI application - Main entry point
"""

from dotenv import load_dotenv

load_dotenv()

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from fittings_portal.api.admin import router as admin_router
from fittings_portal.api.public import router as public_router
from fittings_portal.config import load_config
from fittings_portal.error_handler import ErrorHandler
from fittings_portal.errors import EmailDeliveryError, EntityNotFoundError, StatusTransitionError
from fittings_portal.portal import Portal, build_portal
from fittings_portal.validation import FormValidationError

logger = logging.getLogger(__name__)

error_handler = ErrorHandler()


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(FormValidationError)
    async def _form_validation(request: Request, exc: FormValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": {
                    "error": "validation_error",
                    "message": exc.message,
                    "field_errors": exc.field_errors,
                }
            },
        )

    @app.exception_handler(ValidationError)
    async def _model_validation(request: Request, exc: ValidationError):
        field_errors = {".".join(str(p) for p in e["loc"]): e["msg"] for e in exc.errors()}
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": {
                    "error": "validation_error",
                    "message": "Validation failed",
                    "field_errors": field_errors,
                }
            },
        )

    @app.exception_handler(EntityNotFoundError)
    async def _not_found(request: Request, exc: EntityNotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.to_payload()})

    @app.exception_handler(StatusTransitionError)
    async def _bad_transition(request: Request, exc: StatusTransitionError):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": {"error": "invalid_status_transition", "message": str(exc), "current": exc.current, "requested": exc.requested}},
        )

    @app.exception_handler(EmailDeliveryError)
    async def _email_failed(request: Request, exc: EmailDeliveryError):
        logger.error("Email delivery failed on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": {"error": "email_delivery_failed", "message": str(exc), "status_code": exc.status_code}},
        )

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception):
        payload = error_handler.handle_exception(exc, {"path": request.url.path, "method": request.method})
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": payload})


def create_app(portal: Optional[Portal] = None) -> FastAPI:
    if portal is None:
        config = load_config()
        logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO))
        portal = build_portal(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Warm every cache so admin edits and lookups see current data.
        await app.state.portal.refresh_all()
        logger.info("Portal caches loaded (%d products)", len(app.state.portal.products.items))
        yield

    app = FastAPI(
        title="Fittings Portal API",
        description="Product catalog, quote requests and admin dashboard for a fittings distributor",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.portal = portal

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)
    app.include_router(public_router, prefix="/api/v1")
    app.include_router(admin_router, prefix="/api/v1")

    @app.get("/", tags=["Health"])
    async def root():
        return {"service": "Fittings Portal API", "status": "healthy", "version": "1.0.0", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Remote store reachability and local store status."""
        remote = await app.state.portal.remote.check_connection()
        return {
            "status": "healthy" if remote["connected"] else "degraded",
            "remote_store": remote,
            "local_store": app.state.portal.local.ping(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()

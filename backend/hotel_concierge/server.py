# backend/hotel_concierge/server.py

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hotel_concierge.api.deps import Services, build_services
from hotel_concierge.api.routes_bookings import router as bookings_router
from hotel_concierge.api.routes_conversation import router as conversation_router
from hotel_concierge.api.routes_hotels import router as hotels_router
from hotel_concierge.api.routes_voice import router as voice_router
from hotel_concierge.core.config_loader import settings as default_settings
from hotel_concierge.core.errors import NotFound, StorageError, UpstreamServiceError, ValidationError
from hotel_concierge.core.logger import logger

GENERIC_ERROR = "Sorry, I encountered an error. Please try again."


def create_app(services: Optional[Services] = None) -> FastAPI:
    services = services or build_services(default_settings)
    settings = services.settings

    app = FastAPI(
        title="Hotel Concierge",
        description="Conversational hotel booking backend: chat, hotel catalog, bookings and voice",
        version="1.0.0",
    )
    app.state.services = services

    # -------------------------------------------------------------
    # CORS
    # -------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------
    # ERRORS
    # -------------------------------------------------------------
    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return JSONResponse(status_code=404, content={"success": False, "message": exc.message})

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        content = {"success": False, "message": exc.message}
        if exc.missing:
            content["missing"] = exc.missing
        return JSONResponse(status_code=400, content=content)

    async def internal_handler(request: Request, exc):
        logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
        content = {"success": False, "message": GENERIC_ERROR}
        if settings.is_development:
            content["error"] = str(exc)
        return JSONResponse(status_code=500, content=content)

    app.add_exception_handler(UpstreamServiceError, internal_handler)
    app.add_exception_handler(StorageError, internal_handler)

    # -------------------------------------------------------------
    # ROUTES
    # -------------------------------------------------------------
    app.include_router(conversation_router)
    app.include_router(hotels_router)
    app.include_router(bookings_router)
    app.include_router(voice_router)

    @app.get("/")
    def root():
        return {
            "success": True,
            "message": "Hotel Concierge backend is running",
            "env": settings.environment,
        }

    @app.get("/health")
    @app.get("/api/health")
    def health():
        return {
            "success": True,
            "status": "ok",
            "hotels": len(services.catalog),
            "env": settings.environment,
        }

    return app

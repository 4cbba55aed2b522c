"""
JoAi Connect - Core Application

Builds the FastAPI application that activates JoAi trigger nodes and
receives their inbound webhook callbacks.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from .config import Settings, get_settings
from .exceptions import BaseAPIException
from schemas.common import ErrorResponse

# Configure logging
logger = logging.getLogger(__name__)


class JoaiConnectApp:
    """Application wrapper owning the FastAPI instance and the trigger manager."""

    def __init__(self, settings: Optional[Settings] = None, trigger_manager=None):
        self.settings = settings or get_settings()
        self.trigger_manager = trigger_manager
        self.app = None
        self._create_app()

    def _create_app(self):
        """Create the FastAPI application instance."""
        from events.event_bus import event_bus
        from services.joai.trigger_manager import TriggerManager

        if self.trigger_manager is None:
            self.trigger_manager = TriggerManager(settings=self.settings)

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            """Application lifespan manager."""
            logger.info(f"Starting {self.settings.PROJECT_NAME} v{self.settings.VERSION}")
            await event_bus.start()

            yield

            await event_bus.stop()
            logger.info(f"{self.settings.PROJECT_NAME} stopped")

        self.app = FastAPI(
            title=self.settings.PROJECT_NAME,
            description="JoAi agent messaging integration for workflow automation",
            version=self.settings.VERSION,
            openapi_url=f"{self.settings.API_V1_STR}/openapi.json",
            docs_url=f"{self.settings.API_V1_STR}/docs",
            lifespan=lifespan,
        )
        self.app.state.trigger_manager = self.trigger_manager

        self._add_middleware()
        self._add_exception_handlers()
        self._add_routes()

    def _add_middleware(self):
        """Add middleware to the application."""
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=list(self.settings.BACKEND_CORS_ORIGINS),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def _add_exception_handlers(self):
        @self.app.exception_handler(BaseAPIException)
        async def api_exception_handler(request: Request, exc: BaseAPIException):
            if exc.status_code >= 500:
                logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
            error = ErrorResponse(
                error=type(exc).__name__,
                detail=exc.message,
                details=exc.details,
            )
            return JSONResponse(status_code=exc.status_code, content=error.model_dump(mode="json"))

    def _add_routes(self):
        """Add routes to the application."""
        @self.app.get("/")
        async def root():
            return {
                "name": self.settings.PROJECT_NAME,
                "version": self.settings.VERSION,
                "docs": f"{self.settings.API_V1_STR}/docs",
            }

        from api.v1 import api_router
        self.app.include_router(api_router, prefix=self.settings.API_V1_STR)

    def get_app(self) -> FastAPI:
        """Get the FastAPI application instance."""
        return self.app


def create_app(settings: Optional[Settings] = None, trigger_manager=None) -> FastAPI:
    """Create and return the FastAPI application."""
    app_instance = JoaiConnectApp(settings=settings, trigger_manager=trigger_manager)
    return app_instance.get_app()

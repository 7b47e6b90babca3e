from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional
import logging
import uvicorn

from . import __version__
from .config import settings
from .services.auth_service import AuthService
from .services.storage_backends import StorageBackend, collect_warnings, create_backend
from .services.visitor_service import VisitorService, utc_now
from .services.visitor_store import VisitorStore
from .routers import (
    auth_router,
    navigation_router,
    visitors_router,
    gate_router,
    dashboard_router
)

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

STORAGE_WARNING_HEADER = "X-Storage-Warning"


def create_app(
    backend: Optional[StorageBackend] = None,
    now_fn: Callable[[], datetime] = utc_now
) -> FastAPI:
    """
    Build the API. Stores are created at startup on the given backend, or on
    the one named by STORAGE_BACKEND.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events"""
        # Startup
        logger.info("Starting EstateWatch API...")

        storage = backend if backend is not None else create_backend(settings)
        logger.info(f"Storage backend: {type(storage).__name__}")

        visitor_store = VisitorStore(storage)
        app.state.visitor_store = visitor_store
        app.state.visitor_service = VisitorService(visitor_store, now_fn=now_fn)
        app.state.auth_service = AuthService(storage)

        expired = app.state.visitor_service.expire_stale()
        logger.info(f"Visitor store: {len(visitor_store.list())} records, {expired} expired at startup")

        logger.info("Application startup complete!")

        yield

        # Shutdown
        logger.info("Shutting down EstateWatch API...")

    app = FastAPI(
        title="EstateWatch API",
        description="""
    Visitor management for residential estates

    ## Features
    - **Sessions**: role selection at login, bearer tokens per session
    - **Navigation**: role-filtered routes and route checks
    - **Visitors**: pre-authorize visitors and issue access codes
    - **Gate**: verify access codes, check visitors in and out
    - **Dashboard**: role-specific landing view with visitor counts

    ## Roles
    - **Resident**: pre-authorize and revoke own visitors
    - **Security Operative**: verify codes, check-in/out, visitor logs
    - **Estate Manager**: visitor logs, expire stale authorizations
    - **Admin**: visitor logs, revoke any authorization
    - **Super Admin**: revoke any authorization, system management

    ## Authentication
    Use `/api/auth/login` to get a token. Include in header: `Authorization: Bearer <token>`
    """,
        version=__version__,
        lifespan=lifespan
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[STORAGE_WARNING_HEADER],
    )

    @app.middleware("http")
    async def storage_warnings(request: Request, call_next):
        """Surface non-fatal storage degradation to the client that hit it"""
        with collect_warnings() as warnings:
            response = await call_next(request)

        # Raised outside any request, e.g. the startup sweep
        for name in ("visitor_store", "auth_service"):
            source = getattr(request.app.state, name, None)
            if source is not None:
                warnings.extend(source.pop_warnings())

        if warnings:
            # Header values must be latin-1
            value = " | ".join(warnings).encode("latin-1", "replace").decode("latin-1")
            response.headers[STORAGE_WARNING_HEADER] = value

        return response

    # Include routers
    app.include_router(auth_router, prefix="/api")
    app.include_router(navigation_router, prefix="/api")
    app.include_router(visitors_router, prefix="/api")
    app.include_router(gate_router, prefix="/api")
    app.include_router(dashboard_router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "EstateWatch API",
            "version": __version__,
            "docs": "/docs",
            "status": "running"
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        visitor_store = getattr(app.state, "visitor_store", None)
        return {
            "status": "healthy",
            "storage": type(visitor_store.backend).__name__ if visitor_store else None,
            "degraded": visitor_store.degraded if visitor_store else False
        }

    return app


app = create_app()


def run():
    """Serve the API with uvicorn on API_HOST:API_PORT"""
    uvicorn.run(
        "estatewatch.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG
    )


if __name__ == "__main__":
    run()

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tasktrack import __version__
from tasktrack.core.config import Settings, get_settings
from tasktrack.core.logger import configure_logging
from tasktrack.core.rbac import AccessError, Unauthenticated
from tasktrack.api.routers import tasks, departments, members, audit
from tasktrack.api.middleware.audit import AuditMiddleware


async def access_error_handler(request: Request, exc: AccessError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


def create_app(session_factory=None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the API application.
    
    ``session_factory`` defaults to the configured ``SessionLocal``; tests pass
    their own so handlers and the audit middleware share one database.
    """
    settings = settings or get_settings()
    configure_logging(settings)
    
    if session_factory is None:
        from tasktrack.db.session import SessionLocal
        session_factory = SessionLocal
    
    app = FastAPI(
        title=settings.app_name,
        description="Multi-tenant task tracking with department RBAC and audit logging",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.session_factory = session_factory
    
    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    # Audit middleware - records mutating API requests and denials
    app.add_middleware(AuditMiddleware, settings=settings)
    
    app.add_exception_handler(AccessError, access_error_handler)
    
    # Include routers
    app.include_router(tasks.router, prefix="/api")
    app.include_router(departments.router, prefix="/api")
    app.include_router(members.router, prefix="/api")
    app.include_router(audit.router, prefix="/api")
    
    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "version": __version__}
    
    return app


app = create_app()

"""
Kenova LMS — School learning-management backend.
FastAPI entry point.
"""

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.errors import LMSError, lms_error_handler
from app.core.logging import setup_logging
from app.core.services import Services, build_services
from app.routers import activities, alerts, announcements, auth, groups, resources, tasks, users


def create_app(services: Optional[Services] = None) -> FastAPI:
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    app = FastAPI(
        title=settings.APP_NAME,
        description="Groups, tasks, AI-assisted grading and alerts for schools",
        version="1.0.0",
    )
    app.state.services = services or build_services(settings)

    # CORS
    origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LMSError, lms_error_handler)

    # Include routers
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(groups.router)
    app.include_router(tasks.router)
    app.include_router(activities.router)
    app.include_router(announcements.router)
    app.include_router(resources.router)
    app.include_router(alerts.router)

    @app.get("/")
    async def root():
        return {
            "name": settings.APP_NAME,
            "version": "1.0.0",
            "status": "running",
            "auth_mode": settings.AUTH_MODE,
        }

    @app.get("/api/health")
    async def health():
        return {"status": "healthy", "auth_mode": settings.AUTH_MODE}

    return app


app = create_app()

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from cissp_mastery.api.v1.admin import router as admin_router
from cissp_mastery.api.v1.bookmarks import router as bookmarks_router
from cissp_mastery.api.v1.sessions import router as sessions_router
from cissp_mastery.api.v1.study import rating_router, router as study_router
from cissp_mastery.api.v1.subscription import router as subscription_router
from cissp_mastery.core.config import Settings, get_settings
from cissp_mastery.core.exceptions import register_exception_handlers
from cissp_mastery.core.logging import setup_logging
from cissp_mastery.core.rate_limit import build_limiter, rate_limit_exceeded_handler
from cissp_mastery.db.session import Database
from cissp_mastery.services.audit import AuditLogger

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or get_settings()
    database = database or Database.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.debug:
            await database.create_all()
        yield
        await database.dispose()

    app = FastAPI(title=settings.project_name, debug=settings.debug, lifespan=lifespan)
    app.state.settings = settings
    app.state.db = database
    app.state.audit = AuditLogger(database.sessionmaker)
    app.dependency_overrides[get_settings] = lambda: settings

    setup_logging(app, logging.DEBUG if settings.debug else logging.INFO)
    logger.info("CISSP Mastery settings: JWT_ALGORITHM=%s, DATABASE=%s", settings.jwt_algorithm,
                settings.database_url.split("://")[0])

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = build_limiter()
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    register_exception_handlers(app)

    app.include_router(study_router, prefix="/api/v1")
    app.include_router(rating_router(limiter, settings.rating_rate_limit), prefix="/api/v1")
    app.include_router(sessions_router, prefix="/api/v1")
    app.include_router(bookmarks_router, prefix="/api/v1")
    app.include_router(subscription_router, prefix="/api/v1")
    app.include_router(admin_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("cissp_mastery.main:app", host="0.0.0.0", port=8000)

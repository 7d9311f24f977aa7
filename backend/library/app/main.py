from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.library import router as library_router
from app.api.routes import router as health_router
from app.core.config import Settings, settings as default_settings
from app.core.logging import configure_logging
from app.db.session import Database


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # ---- startup -------------------------------------------------------
        db = database or Database(settings.database_url, echo=settings.database_echo)
        app.state.database = db.open()
        try:
            yield
        finally:
            # ---- shutdown --------------------------------------------------
            db.close()

    app = FastAPI(title="library-service", lifespan=lifespan)
    app.state.settings = settings

    # --- CORS setup ----------------------------------------------------------
    # Explicit dev origins by default; override with ALLOWED_ORIGINS env (comma-separated).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=False,  # set True only if you use cookies
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept"],
        expose_headers=["Authorization"],
        max_age=86400,
    )

    app.include_router(health_router)
    app.include_router(library_router)
    return app


app = create_app()

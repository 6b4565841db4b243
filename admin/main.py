# Content Admin Application
# Purpose: Build the admin FastAPI app: login, content routes, shared state for the query service
# Main functions: create_admin_app()
# Dependent files: admin/routers/admin.py, admin/dependencies/access_control.py, projection/service.py

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import APIRouter, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import logging
import os

from admin.dependencies.access_control import authenticate_admin, create_access_token
from admin.routers import admin as admin_router
from config_loader import load_config, setup_logging
from db.models import init_db
from db.store import SQLiteContentStore
from projection.locale import DEFAULT_LOCALE, SUPPORTED_LOCALES
from projection.service import CollectionQueryService

logger = logging.getLogger(__name__)


class LoginRequest(BaseModel):
    username: str
    password: str


login_router = APIRouter()


@login_router.post("/login")
async def admin_login(body: LoginRequest):
    """Exchange the admin credentials (ADMIN_USERNAME / ADMIN_PASSWORD) for a bearer JWT."""
    if not authenticate_admin(body.username, body.password):
        logger.warning(f"Failed admin login for {body.username!r}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin credentials",
        )
    return {"access_token": create_access_token(subject=body.username), "token_type": "bearer"}


def _cors_origins() -> list[str]:
    return [o.strip() for o in os.environ.get("ADMIN_CORS_ORIGINS", "*").split(",") if o.strip()]


def create_admin_app(config: dict = None) -> FastAPI:
    """Admin app over the same content database and query service as the public API."""
    config = config if config is not None else load_config()
    db_path = Path(config.get("db_path", "db/content.db"))
    i18n_cfg = config.get("i18n", {})

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(db_path)
        logger.info(f"Content admin ready (db={db_path}, default locale={app.state.default_locale})")
        yield

    app = FastAPI(
        title="Content Admin Backend",
        description="Edit portfolio content, translations and the testimonial queue",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/admin/docs",
        redoc_url="/admin/redoc",
        openapi_url="/admin/openapi.json",
    )

    app.state.config = config
    app.state.db_path = db_path
    app.state.locales = frozenset(i18n_cfg.get("supported_locales") or SUPPORTED_LOCALES)
    app.state.default_locale = i18n_cfg.get("default_locale", DEFAULT_LOCALE)
    app.state.service = CollectionQueryService(SQLiteContentStore(db_path))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Login is open; every route in admin_router depends on a valid JWT
    app.include_router(login_router, prefix="/admin", tags=["auth"])
    app.include_router(admin_router.router, prefix="/admin", tags=["admin"])
    return app


app = create_admin_app()


if __name__ == "__main__":
    import uvicorn

    setup_logging(app.state.config)
    uvicorn.run(app, host="0.0.0.0", port=8081, log_level="info")

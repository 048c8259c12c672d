"""Application assembly: database, sessions, storage and routes."""

import hashlib
import logging
from pathlib import Path

from advanced_alchemy.config import EngineConfig
from advanced_alchemy.extensions.litestar import (
    AsyncSessionConfig,
    SQLAlchemyAsyncConfig,
    SQLAlchemyPlugin,
)
from litestar import Litestar
from litestar.datastructures import State
from litestar.exceptions import HTTPException
from litestar.middleware.session.client_side import CookieBackendConfig

from scenes.config import Settings, get_settings
from scenes.controllers.admin import AdminController
from scenes.controllers.api import ApiController
from scenes.db.base import Base
from scenes.lib.errors import ScenesError
from scenes.lib.exceptions import (
    http_exception_handler,
    internal_server_error_handler,
    scenes_error_handler,
)
from scenes.lib.storage import LocalAssetStore

logger = logging.getLogger(__name__)

# Room for multipart boundaries and part headers around an upload
MULTIPART_OVERHEAD = 1024 * 1024

EXCEPTION_HANDLERS = {
    HTTPException: http_exception_handler,
    ScenesError: scenes_error_handler,
    Exception: internal_server_error_handler,
}


def build_db_config(settings: Settings) -> SQLAlchemyAsyncConfig:
    """Build the SQLAlchemy async database configuration."""
    if "sqlite" in settings.db.url:
        engine_config = EngineConfig(echo=settings.db.echo)
    else:
        engine_config = EngineConfig(
            pool_size=settings.db.pool_size,
            max_overflow=settings.db.pool_overflow,
            pool_timeout=settings.db.pool_timeout,
            pool_pre_ping=settings.db.pool_pre_ping,
            echo=settings.db.echo,
        )

    # Schema is owned by alembic
    return SQLAlchemyAsyncConfig(
        connection_string=settings.db.url,
        metadata=Base.metadata,
        create_all=False,
        session_config=AsyncSessionConfig(expire_on_commit=False),
        engine_config=engine_config,
    )


def build_session_config(settings: Settings) -> CookieBackendConfig:
    """Build the client-side encrypted session configuration."""
    session_secret = hashlib.sha256(settings.secret_key.encode()).digest()
    return CookieBackendConfig(
        secret=session_secret,
        max_age=settings.session.max_age,
        httponly=True,
        secure=not settings.debug,
        samesite="lax",
        domain=settings.session.cookie_domain,
    )


def build_asset_store(settings: Settings) -> LocalAssetStore:
    return LocalAssetStore(Path(settings.storage.asset_dir))


def create_app(settings: Settings | None = None) -> Litestar:
    """Create and configure the Litestar application."""
    settings = settings or get_settings()
    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)

    db_config = build_db_config(settings)
    session_config = build_session_config(settings)
    asset_store = build_asset_store(settings)
    logger.info("Serving assets from %s", asset_store.base_path)

    return Litestar(
        route_handlers=[ApiController, AdminController],
        plugins=[SQLAlchemyPlugin(config=db_config)],
        middleware=[session_config.middleware],
        exception_handlers=EXCEPTION_HANDLERS,
        state=State({"asset_store": asset_store, "max_upload_size": settings.storage.max_upload_size}),
        request_max_body_size=settings.storage.max_upload_size + MULTIPART_OVERHEAD,
        debug=settings.debug,
    )

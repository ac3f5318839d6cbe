"""
EstateMap application factory

Builds the FastAPI app: REST routes under /api, the event socket at /ws,
and the services shared by both, wired up in the lifespan.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from estatemap import __version__
from estatemap.api import api_router, realtime_router
from estatemap.api.errors import register_error_handlers
from estatemap.core.config import Settings, settings as default_settings
from estatemap.core.logging import configure_logging
from estatemap.core.security import AuthGateway
from estatemap.realtime import Broadcaster
from estatemap.services import FeatureRequestDesk, FeatureRequestMailer, PropertyStore, UserDirectory
from estatemap.storage import create_persistence

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config: Settings = app.state.settings
    configure_logging(config.LOG_LEVEL)

    storage = create_persistence(config)
    await storage.connect()
    await storage.init_schema()

    broadcaster = Broadcaster(queue_size=config.BROADCAST_QUEUE_SIZE)
    mailer = FeatureRequestMailer(
        api_key=config.SENDGRID_API_KEY,
        sender=config.MAIL_FROM,
        recipient=config.FEATURE_REQUEST_EMAIL,
    )

    app.state.storage = storage
    app.state.broadcaster = broadcaster
    app.state.auth = AuthGateway(storage, config)
    app.state.properties = PropertyStore(storage, events=broadcaster)
    app.state.users = UserDirectory(storage, pwd_context=app.state.auth.pwd_context)
    app.state.feature_requests = FeatureRequestDesk(storage, mailer=mailer)

    await app.state.users.ensure_default_admin(
        config.ADMIN_EMAIL, config.ADMIN_PASSWORD, config.ADMIN_NAME
    )
    logger.info("%s started (%s backend)", config.APP_NAME, storage.backend)

    try:
        yield
    finally:
        await broadcaster.close_all()
        await storage.close()
        logger.info("%s stopped", config.APP_NAME)


def create_app(config: Optional[Settings] = None) -> FastAPI:
    config = config or default_settings

    app = FastAPI(
        title=config.APP_NAME,
        version=__version__,
        debug=config.DEBUG,
        lifespan=lifespan,
    )
    app.state.settings = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["ETag"],
    )
    register_error_handlers(app)

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok", "version": __version__}

    app.include_router(api_router, prefix=config.API_PREFIX)
    app.include_router(realtime_router)
    return app


app = create_app()

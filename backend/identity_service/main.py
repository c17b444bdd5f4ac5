"""
Application entry point.

Run with: uvicorn --factory identity_service.main:create_app
(settings come from the environment or .env, see core/config.py).
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI

from identity_service.core.config import Settings, SigningSecrets, get_settings
from identity_service.core.logging import setup_logging, get_logger
from identity_service.core.metrics import MetricsCollector
from identity_service.db.session import close_db, create_engine, create_session_factory, init_db
from identity_service.services.email.service import EmailService
from identity_service.services.identity import (
    IdentityService,
    PasswordHasher,
    TokenDelivery,
    TokenLifetimes,
)
from identity_service.api.routes import auth, health

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    setup_logging(debug=settings.DEBUG)
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    await init_db(app.state.engine)
    logger.info("Database initialized")

    yield

    await app.state.identity_service.wait_for_deliveries()
    await close_db(app.state.engine)
    logger.info("Application shutdown complete")


def create_app(
    settings: Settings | None = None,
    delivery: TokenDelivery | None = None,
) -> FastAPI:
    """
    Build the application and its single IdentityService instance.

    Raises before any engine exists when a signing secret is missing, so
    a misconfigured process never starts serving.
    """
    settings = settings or get_settings()
    secrets = SigningSecrets.from_settings(settings)

    engine = create_engine(settings)
    session_factory = create_session_factory(engine)
    metrics = MetricsCollector()
    service = IdentityService(
        session_factory,
        secrets,
        delivery or EmailService(settings),
        hasher=PasswordHasher(rounds=settings.BCRYPT_ROUNDS),
        lifetimes=TokenLifetimes.from_settings(settings),
        metrics=metrics,
    )

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.metrics = metrics
    app.state.identity_service = service

    app.include_router(health.router, tags=["Health"])
    app.include_router(auth.router, prefix="/api/v1", tags=["Auth"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs",
        }

    return app

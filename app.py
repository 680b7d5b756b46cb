"""
FastAPI application factory.
create_app() is the single entry point for building the app.

Every long-lived client (Mongo, Redis, the SMS HTTP client) is created once
in the lifespan, handed to the services that need it, and released on
shutdown.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.cache.code_store import CodeStore
from infrastructure.cache.redis_client import create_redis_client
from infrastructure.http_client import HttpClient
from infrastructure.sms.twilio import TwilioSmsProvider
from repositories.user_repository import USERS_COLLECTION, UserRepository
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router
from services.auth_service import AuthService
from services.token_service import TokenService
from services.verification_service import PasswordChangeVerifier, TwoFactorVerifier
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def build_auth_service(
    settings: AppSettings,
    store: CodeStore,
    users: UserRepository,
    sms: TwilioSmsProvider,
) -> tuple[AuthService, TokenService]:
    """Wire the verification, token and orchestration layers together."""
    verification = settings.verification
    tokens = TokenService(
        settings.jwt, store, pending_ttl_seconds=verification.pending_token_ttl_seconds
    )
    auth = AuthService(
        users=users,
        tokens=tokens,
        two_factor=TwoFactorVerifier(
            store,
            ttl_seconds=verification.code_ttl_seconds,
            max_attempts=verification.max_attempts,
            atomic=verification.atomic_attempts,
        ),
        password_change=PasswordChangeVerifier(
            store, ttl_seconds=verification.code_ttl_seconds
        ),
        sms=sms,
        revoke_code_on_send_failure=verification.revoke_code_on_send_failure,
    )
    return auth, tokens


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging, env=settings.env)

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry.sentry_profile_sample_rate,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(settings.db.mongodb_uri)
        db = mongo_client[settings.db.db_name]
        redis_client = await create_redis_client(settings.redis)
        sms_http = HttpClient(timeout=settings.sms.sms_timeout_seconds)

        users = UserRepository(db[USERS_COLLECTION])
        await users.ensure_indexes()

        sms = TwilioSmsProvider(settings.sms, sms_http, product_name=settings.app_name)
        if not sms.enabled:
            log.warning("sms_service_disabled", env=settings.env)

        auth, tokens = build_auth_service(settings, CodeStore(redis_client), users, sms)

        app.state.settings = settings
        app.state.mongo_client = mongo_client
        app.state.db = db
        app.state.redis = redis_client
        app.state.token_service = tokens
        app.state.auth_service = auth

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await sms_http.aclose()
        await redis_client.aclose()
        await mongo_client.close()
        log.info("shutdown_complete")

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)

    return app

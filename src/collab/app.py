"""Application entry point for the collaboration action service.

Runs the FastAPI server for brand action links together with the periodic
sweep that expires stale pending requests, in a single long-running
process.

Configures:
- **structlog** with JSON rendering (production) or colored console (development)
- **Sentry** forwarding of error-level log events when ``SENTRY_DSN`` is set
- **Prometheus** ``/metrics`` and request-ID middleware
- **Action log** wired into every state machine transition and side effect
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI
from pydantic import SecretStr

from collab.action.endpoint import ActionEndpoint
from collab.action.routes import router as action_router
from collab.audit.logger import ActionLogger
from collab.audit.store import close_db, init_action_log_table, open_db
from collab.config import Settings, get_settings, validate_credentials
from collab.contracts.generator import ContractJobQueue, init_contract_jobs_table
from collab.health import register_health_routes
from collab.notify.client import HttpNotifier, LoggingNotifier, Notifier
from collab.observability.metrics import setup_metrics
from collab.observability.middleware import SERVICE_NAME, RequestIdMiddleware
from collab.observability.sentry import get_sentry_processor, init_sentry
from collab.state_machine.machine import DealStateMachine
from collab.store.schema import init_collab_tables
from collab.store.store import SqliteCollabStore
from collab.tokens.codec import ActionTokenCodec
from collab.tokens.links import ActionLinkBuilder

logger = structlog.get_logger()


def configure_logging(production: bool = False, sentry_enabled: bool = False) -> None:
    """Configure structlog for production (JSON) or development (console).

    Production mode (*production=True*): JSON rendering at INFO level.
    Development mode: colored console rendering at DEBUG level.

    Args:
        production: Enable production mode if ``True``.
        sentry_enabled: Forward ERROR events to Sentry if ``True``.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
    ]
    if sentry_enabled:
        shared_processors.append(get_sentry_processor())
    shared_processors += [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if production:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        log_level = logging.INFO
    else:
        renderer = structlog.dev.ConsoleRenderer()
        log_level = logging.DEBUG

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service=SERVICE_NAME)


def _signing_secret(settings: Settings) -> SecretStr:
    """Return the configured token secret, or a per-process one in development.

    An ephemeral secret means every link stops working on restart, which is
    only acceptable outside production (``validate_credentials`` has
    already refused to start production without one).
    """
    if settings.action_token_secret.get_secret_value():
        return settings.action_token_secret
    logger.warning("action_token_secret_ephemeral", detail="links will not survive a restart")
    return SecretStr(secrets.token_urlsafe(48))


def _build_notifier(settings: Settings) -> Notifier:
    if settings.notifier_api_url and settings.notifier_api_key.get_secret_value():
        logger.info("notifier_initialized", provider="http")
        return HttpNotifier(
            settings.notifier_api_url,
            settings.notifier_api_key,
            timeout=settings.notifier_timeout_seconds,
        )
    logger.info("notifier_disabled", detail="NOTIFIER_API_URL or NOTIFIER_API_KEY not set")
    return LoggingNotifier()


def initialize_services(settings: Settings | None = None) -> dict[str, Any]:
    """Set up all shared services for the application.

    Opens the database (request, deal and action log tables on one
    connection; contract jobs on a second), then builds the token codec,
    link builder, notifier, contract queue, state machine and action
    endpoint.

    Args:
        settings: Application settings.  If ``None``, ``get_settings()`` is used.

    Returns:
        A dict of initialized service instances keyed by name.
    """
    if settings is None:
        settings = get_settings()

    services: dict[str, Any] = {"_settings": settings}

    db_path = settings.db_path
    if str(db_path) != ":memory:":
        db_path.parent.mkdir(parents=True, exist_ok=True)
    db_conn = open_db(db_path, timeout=settings.store_timeout_seconds)
    init_collab_tables(db_conn)
    init_action_log_table(db_conn)
    services["db_conn"] = db_conn

    store = SqliteCollabStore(db_conn, timeout=settings.store_timeout_seconds)
    services["store"] = store

    action_logger = ActionLogger(store)
    services["action_logger"] = action_logger

    codec = ActionTokenCodec(_signing_secret(settings))
    services["token_codec"] = codec

    link_builder = ActionLinkBuilder(
        codec,
        settings.public_base_url,
        ttl=timedelta(days=settings.action_token_ttl_days),
    )
    services["link_builder"] = link_builder

    notifier = _build_notifier(settings)
    services["notifier"] = notifier

    contracts_conn = open_db(db_path, timeout=settings.store_timeout_seconds)
    init_contract_jobs_table(contracts_conn)
    services["contracts_conn"] = contracts_conn
    contract_queue = ContractJobQueue(contracts_conn)
    services["contract_queue"] = contract_queue

    machine = DealStateMachine(
        store,
        action_logger,
        notifier,
        contract_queue,
        link_builder=link_builder,
    )
    services["state_machine"] = machine

    services["action_endpoint"] = ActionEndpoint(codec, machine, action_logger)

    logger.info("services_initialized", db_path=str(db_path))
    return services


def close_services(services: dict[str, Any]) -> None:
    """Release connections and clients held by *services*."""
    notifier = services.get("notifier")
    if isinstance(notifier, HttpNotifier):
        notifier.close()
    for key in ("contracts_conn", "db_conn"):
        conn = services.get(key)
        if conn is not None:
            close_db(conn)
    logger.info("database_connections_closed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Lifespan context manager for FastAPI startup and shutdown.

    On shutdown: closes database connections and the notifier client.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application.
    """
    logger.info("fastapi_application_starting")
    yield
    close_services(app.state.services)


def create_app(services: dict[str, Any]) -> FastAPI:
    """Create the FastAPI app with lifespan, action routes, health and metrics.

    Args:
        services: The initialized services dict from ``initialize_services``.

    Returns:
        The configured FastAPI application.
    """
    fastapi_app = FastAPI(title="Collaboration Actions", lifespan=lifespan)
    fastapi_app.state.services = services
    fastapi_app.state.settings = services.get("_settings") or get_settings()
    fastapi_app.add_middleware(RequestIdMiddleware)
    fastapi_app.include_router(action_router)
    register_health_routes(fastapi_app)
    setup_metrics(fastapi_app)
    return fastapi_app


async def expire_stale_requests_periodically(
    services: dict[str, Any],
    interval_seconds: int,
    max_age: timedelta,
) -> None:
    """Expire pending requests older than *max_age* every *interval_seconds*.

    Args:
        services: The initialized services dict.
        interval_seconds: Pause between sweeps.
        max_age: Age after which a pending request expires.
    """
    machine: DealStateMachine = services["state_machine"]
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            expired = await asyncio.to_thread(machine.expire_stale, max_age)
            logger.info("expiry_sweep_completed", expired=len(expired))
        except Exception:
            logger.exception("expiry_sweep_failed")


def build_server_config(fastapi_app: FastAPI, settings: Settings) -> uvicorn.Config:
    """Return the uvicorn config for *fastapi_app*.

    uvicorn's own access log prints the raw path and query string, which
    carry action tokens, so it is disabled; ``RequestIdMiddleware`` writes a
    redacted access line instead.
    """
    return uvicorn.Config(
        fastapi_app,
        host="0.0.0.0",
        port=settings.http_port,
        log_level="info",
        access_log=False,
    )


async def main() -> None:
    """Main entry point: run the HTTP server and the expiry sweep concurrently.

    1. Configure logging and Sentry
    2. Validate credentials
    3. Initialize services and create the FastAPI app
    4. Run uvicorn with the expiry sweep as a background task
    5. Close connections on exit
    """
    settings = get_settings()
    configure_logging(production=settings.production, sentry_enabled=bool(settings.sentry_dsn))
    init_sentry(
        settings.sentry_dsn,
        environment="production" if settings.production else "development",
    )
    logger.info("application_starting")

    validate_credentials(settings)

    services = initialize_services(settings)
    fastapi_app = create_app(services)

    server = uvicorn.Server(build_server_config(fastapi_app, settings))

    sweep = asyncio.create_task(
        expire_stale_requests_periodically(
            services,
            settings.expiry_sweep_interval_seconds,
            timedelta(days=settings.request_expiry_days),
        )
    )
    try:
        await server.serve()
    finally:
        sweep.cancel()
        close_services(services)


def run() -> None:
    """Console-script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()

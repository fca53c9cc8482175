"""Entrypoint for running the ledger API service under uvicorn."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from upline_commons.observability.logging import shutdown_logging
from upline_commons.observability.tracing import configure_tracing
from upline_ledger.infrastructure.http.middleware import request_logging_middleware
from upline_ledger.infrastructure.http.routes import (
    add_ledger_routes,
    add_optimizer_routes,
    add_payout_routes,
    add_status_routes,
)
from upline_ledger.infrastructure.observability.logging import (
    configure_logging,
    enable_cloud_logging,
    init_logging,
)
from upline_ledger.runtime.bootstrap import RuntimeContext, build_runtime, close_runtime_resources
from upline_ledger.runtime.settings import Settings

WORKER_STOP_TIMEOUT_SECONDS = 30.0


def _configure_observability(settings: Settings) -> None:
    observability = settings.observability
    if observability.enable_cloud_logging:
        gcp_project = observability.gcp_project_id
        if gcp_project is None:
            raise RuntimeError("Cloud logging enabled but no GCP project configured")
        enable_cloud_logging(
            gcp_project=gcp_project,
            cloud_log_name=observability.cloud_log_name,
            cloud_log_labels={"service": "upline-ledger"},
        )
    else:
        configure_logging(cloud_logging_enabled=False, gcp_project=observability.gcp_project_id)


def create_app(runtime: RuntimeContext) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if runtime.optimizer_worker is not None:
            runtime.optimizer_worker.start()
        yield
        close_runtime_resources(runtime, timeout=WORKER_STOP_TIMEOUT_SECONDS)
        shutdown_logging()

    app = FastAPI(title="Upline Ledger API", version="0.1.0", lifespan=lifespan)
    app.middleware("http")(request_logging_middleware)

    add_ledger_routes(app, runtime.ledger_route_deps_provider)
    add_optimizer_routes(app, runtime.optimizer_route_deps_provider)
    add_payout_routes(app, runtime.payout_route_deps_provider)
    add_status_routes(app, runtime.status_deps_provider)

    return app


def main() -> None:
    import uvicorn

    init_logging()
    configure_tracing(service_name="upline-ledger")
    settings = Settings.load()
    _configure_observability(settings)
    runtime = build_runtime(settings)

    uvicorn.run(
        create_app(runtime),
        host=settings.listen_host,
        port=settings.port,
        timeout_graceful_shutdown=int(WORKER_STOP_TIMEOUT_SECONDS),
        # logging already setup
        log_config=None,
    )


__all__ = ["create_app", "main"]

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request

from .api import config as config_api
from .api import status as status_api
from .dependencies import (
    get_config_store,
    get_desired_properties,
    get_poll_loop,
    get_reconfiguration_handler,
    get_reported_properties,
    get_settings,
    get_telemetry_sink,
)
from .logging_config import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    settings = get_settings()
    setup_logging(settings)

    config_info = settings.config_file_info
    logging.info("[bold]----------iot filewatcher---------[/]")
    logging.info(f"Configuration loaded from: {config_info['active_config_file']}")
    logging.info(f"Running on hostname: {config_info['hostname']}")

    watch_directory = Path(settings.watch_directory)
    if watch_directory.is_dir():
        logging.info(f"Found watched directory '{watch_directory.resolve()}'")
    else:
        logging.warning(f"No watched directory '{watch_directory.resolve()}' found")

    # Failure to reach the sink is fatal: the poll loop never starts
    sink = get_telemetry_sink()
    await sink.connect()

    # Apply the persisted desired configuration before the first cycle
    desired_document = await get_desired_properties().load()
    await get_reconfiguration_handler().on_update(desired_document)
    await get_reported_properties().report(get_config_store().get().to_reported())

    poll_loop = get_poll_loop()
    await poll_loop.start()

    yield

    logging.info("File Telemetry Agent shutting down...")
    await poll_loop.stop()
    await sink.close()
    logging.info("All background tasks stopped")


app = FastAPI(
    title="File Telemetry Agent",
    description="Publishes rows of delimited files as telemetry messages",
    version="0.1.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logging.debug(
        f"{request.method} {request.url.path} -> {response.status_code}",
        extra={
            "operation": "http_request",
            "client_ip": request.client.host if request.client else "unknown",
        },
    )
    return response


app.include_router(config_api.router)
app.include_router(status_api.router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "File Telemetry Agent is running"}


@app.get("/health")
async def health():
    """Detailed health check."""
    poll_loop = get_poll_loop()
    return {
        "status": "healthy" if poll_loop.is_running else "degraded",
        "service": "file-telemetry-agent",
        "poll_loop_running": poll_loop.is_running,
    }


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "telemetry_agent.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()

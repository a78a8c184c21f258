"""
AirGradient Bridge - HTTP Server
================================
Receives readings from AirGradient sensors and re-exposes the latest one
for Prometheus.

ARCHITECTURE:
    Two listeners share one ReadingBridge:

    [AirGradient sensor] --POST--> [public listener :12321]  (basic auth, optional)
                                           |
                                           v
                                    [ReadingBridge] <---> [backup file]
                                           ^
                                           |
    [Prometheus] -------GET /metrics--> [internal listener :12322]  (no auth)

    The internal listener is meant for a private network (docker network,
    localhost) so Prometheus can scrape without credentials.

HOW TO RUN:
    pip install -e .

    # Optional: put settings in .env (see config.py for the full list)
    airgradient-bridge

    # Point the sensor at it
    http://<bridge-host>:12321/sensors/airgradient:<serial>/measures

Author: AirGradient Bridge Team
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse

from airgradient_bridge import __version__
from airgradient_bridge.auth import CHALLENGE_HEADER, BasicAuthGate
from airgradient_bridge.config import Config, split_listen_addr
from airgradient_bridge.errors import AuthRejected, ConfigError, MalformedInput, OutputWriteFailed
from airgradient_bridge.routers import measures_router
from airgradient_bridge.services import BackupStore, LastValueCache, ReadingBridge

logger = logging.getLogger(__name__)

# Per-connection timeouts and graceful shutdown bound (seconds)
HTTP_TIMEOUT = 10


# =============================================================================
# LOGGING
# =============================================================================

def configure_logging(level: str = "INFO") -> None:
    """Timestamped log lines on stderr, uvicorn's loggers included."""
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

async def malformed_input_handler(request: Request, exc: MalformedInput):
    logger.error(f"{exc}: {exc.__cause__}")
    return PlainTextResponse(str(exc), status_code=400)


async def auth_rejected_handler(request: Request, exc: AuthRejected):
    logger.error(str(exc))
    return PlainTextResponse(
        str(exc),
        status_code=401,
        headers={"WWW-Authenticate": CHALLENGE_HEADER},
    )


async def output_write_failed_handler(request: Request, exc: OutputWriteFailed):
    logger.error(f"{exc}: {exc.__cause__}")
    return PlainTextResponse(str(exc), status_code=500)


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(
    bridge: ReadingBridge,
    gate: Optional[BasicAuthGate] = None,
    title: str = "AirGradient Bridge",
) -> FastAPI:
    """
    Build one FastAPI app around a shared bridge.

    Args:
        bridge: the ReadingBridge (shared between listeners)
        gate: when given, every measures/metrics request needs basic auth
        title: shows up in the docs and the startup log
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"{title} ready (auth {'on' if gate else 'off'})")
        yield
        logger.info(f"{title} stopped")

    app = FastAPI(
        title=title,
        description="Last-value bridge from AirGradient sensors to Prometheus.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.bridge = bridge

    app.add_exception_handler(MalformedInput, malformed_input_handler)
    app.add_exception_handler(AuthRejected, auth_rejected_handler)
    app.add_exception_handler(OutputWriteFailed, output_write_failed_handler)

    dependencies = [] if gate is None else [Depends(gate.dependency())]
    app.include_router(measures_router, dependencies=dependencies)

    @app.get("/health", summary="Health Check")
    async def health():
        """Health check endpoint. Never needs auth."""
        return {
            "status": "healthy",
            "has_reading": bridge.cache.get() is not None,
        }

    return app


def build_bridge(config: Config) -> ReadingBridge:
    return ReadingBridge(
        cache=LastValueCache(),
        backup=BackupStore(config.BACKUP_FILENAME),
        max_time_delta=config.MAX_TIME_DELTA,
    )


def build_gate(config: Config) -> Optional[BasicAuthGate]:
    if not config.ENABLE_BASIC_AUTH:
        return None
    return BasicAuthGate(config.BASIC_AUTH_USERNAME, config.BASIC_AUTH_PASSWORD)


def build_apps(config: Config, bridge: Optional[ReadingBridge] = None) -> List[tuple]:
    """
    (listen address, app) pairs: the public one first, then the internal
    one if INTERNAL_LISTEN_ADDR is set. Both use the same bridge.
    """
    bridge = bridge or build_bridge(config)
    apps = [(config.LISTEN_ADDR, create_app(bridge, gate=build_gate(config)))]
    if config.INTERNAL_LISTEN_ADDR:
        apps.append(
            (config.INTERNAL_LISTEN_ADDR, create_app(bridge, title="AirGradient Bridge (internal)"))
        )
    return apps


# =============================================================================
# SERVING
# =============================================================================

def make_server(app: FastAPI, listen_addr: str) -> uvicorn.Server:
    host, port = split_listen_addr(listen_addr)
    server_config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_config=None,  # keep our logging setup
        timeout_keep_alive=HTTP_TIMEOUT,
        timeout_graceful_shutdown=HTTP_TIMEOUT,
    )
    return uvicorn.Server(server_config)


async def serve_all(servers: List[uvicorn.Server]) -> None:
    """
    Run every server in this event loop. When one stops (SIGINT/SIGTERM or
    a crash), the rest are told to stop too.
    """
    tasks = [asyncio.create_task(server.serve()) for server in servers]
    done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)

    logger.info("Shutting down http servers...")
    for server in servers:
        server.should_exit = True
    await asyncio.gather(*pending)

    for task in done:
        task.result()


def main() -> int:
    configure_logging()

    try:
        config = Config.from_env()
    except ConfigError as e:
        logger.critical(f"Failed to parse env: {e}")
        return 1

    logging.getLogger().setLevel(config.LOG_LEVEL)

    logger.info(f"Backup file: {config.BACKUP_FILENAME} (max age {config.MAX_TIME_DELTA}s)")
    servers = []
    for listen_addr, app in build_apps(config):
        logger.info(f"Serving {app.title} at {listen_addr}...")
        servers.append(make_server(app, listen_addr))

    try:
        asyncio.run(serve_all(servers))
    except KeyboardInterrupt:
        pass

    logger.info("Shutdown complete")
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()

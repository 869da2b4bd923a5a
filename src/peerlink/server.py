"""
Starlette-based signaling server for peerlink.

Endpoints:
- /ws: WebSocket signaling (join, offer, answer, candidate)
- /sessions/{session_id}/status: slot occupancy of one session
- /sessions: active sessions
- /health: liveness of the server itself

Session state lives in memory for the lifetime of the process.
"""

import contextlib
import os

from dotenv import load_dotenv
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import Route, WebSocketRoute

from peerlink.config import CONFIG, PROJECT_DIR, Config
from peerlink.logger import get_logger, setup_logging
from peerlink.relay.dispatcher import RelayDispatcher
from peerlink.relay.liveness import LivenessMonitor
from peerlink.relay.registry import SessionRegistry
from peerlink.routes.health_routes import health_check
from peerlink.routes.session_routes import get_session_status, list_sessions
from peerlink.routes.signaling_routes import signaling_websocket_endpoint

logger = get_logger(__name__)


def create_app(config: Config | None = None) -> Starlette:
    """
    Build the ASGI application.

    Args:
        config: Settings to use; defaults to the process-wide CONFIG.
    """
    config = config or CONFIG

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        logger.info("Application startup - initializing relay")
        registry = SessionRegistry()
        monitor = LivenessMonitor(interval=config.probe_interval)

        app.state.registry = registry
        app.state.dispatcher = RelayDispatcher(registry)
        app.state.liveness_monitor = monitor

        await monitor.start()
        try:
            yield
        finally:
            logger.info("Application shutdown - stopping relay")
            await monitor.stop()

    return Starlette(
        debug=False,
        routes=[
            WebSocketRoute("/ws", signaling_websocket_endpoint),
            Route("/sessions", list_sessions, methods=["GET"]),
            Route(
                "/sessions/{session_id}/status",
                get_session_status,
                methods=["GET"],
            ),
            Route("/health", health_check, methods=["GET"]),
        ],
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=config.cors_origins,
                allow_methods=["GET", "POST", "OPTIONS"],
                allow_headers=["Content-Type"],
            )
        ],
        lifespan=lifespan,
    )


app = create_app()


def run(
    host: str | None = None,
    port: int | None = None,
    probe_interval: float | None = None,
    debug: bool = False,
) -> None:
    """Serve the relay with uvicorn until interrupted."""
    import uvicorn

    load_dotenv(PROJECT_DIR / ".env")
    CONFIG.reload()

    if debug:
        os.environ["LOG_LEVEL"] = "DEBUG"
        CONFIG.log_level = "DEBUG"

    setup_logging(level=CONFIG.log_level, log_file=CONFIG.log_file)

    if host is not None:
        CONFIG.host = host
    if port is not None:
        CONFIG.port = port
    if probe_interval is not None:
        if probe_interval <= 0:
            raise ValueError("Probe interval must be greater than 0")
        CONFIG.probe_interval = probe_interval

    logger.info(f"Starting peerlink relay on ws://{CONFIG.host}:{CONFIG.port}/ws")
    uvicorn.run(
        create_app(CONFIG),
        host=CONFIG.host,
        port=CONFIG.port,
        log_level=CONFIG.log_level.lower(),
        ws="websockets",
        ws_ping_interval=CONFIG.probe_interval,
        ws_ping_timeout=CONFIG.probe_interval,
        log_config=None,
    )


if __name__ == "__main__":
    run()

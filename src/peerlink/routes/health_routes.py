"""
Health check endpoint.
"""

import time
from datetime import datetime

from starlette.requests import Request
from starlette.responses import JSONResponse

start_time = time.time()


async def health_check(request: Request) -> JSONResponse:
    """
    Basic health check endpoint.

    Returns 200 if service is running.
    """
    state = request.app.state
    registry = getattr(state, "registry", None)
    monitor = getattr(state, "liveness_monitor", None)

    return JSONResponse(
        {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "uptime_seconds": int(time.time() - start_time),
            "sessions": len(registry) if registry is not None else 0,
            "connections": len(monitor) if monitor is not None else 0,
            "liveness": monitor.get_status() if monitor is not None else None,
        }
    )

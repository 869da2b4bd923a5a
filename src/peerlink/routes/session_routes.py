"""
Session query routes.

Provides:
- GET /sessions/{session_id}/status: slot occupancy for one session
- GET /sessions: every active session
"""

from starlette.requests import Request
from starlette.responses import JSONResponse

from peerlink.relay.models import ErrorResponse, SessionListResponse


def _get_registry(request: Request):
    return getattr(request.app.state, "registry", None)


async def get_session_status(request: Request) -> JSONResponse:
    """GET /sessions/{session_id}/status: which slots are occupied."""
    registry = _get_registry(request)
    if registry is None:
        return JSONResponse({"error": "Relay not initialized"}, status_code=503)

    session_id = request.path_params["session_id"]
    status = registry.status(session_id)
    if status is None:
        err = ErrorResponse(error="Session not found")
        return JSONResponse(err.model_dump(), status_code=404)

    return JSONResponse(status.model_dump(by_alias=True))


async def list_sessions(request: Request) -> JSONResponse:
    """GET /sessions: list active sessions."""
    registry = _get_registry(request)
    if registry is None:
        return JSONResponse({"sessions": [], "error": "Relay not initialized"})

    sessions = registry.list_sessions()
    resp = SessionListResponse(sessions=sessions, count=len(sessions))
    return JSONResponse(resp.model_dump(by_alias=True))

"""
Shared HTTP helpers for CLI commands that talk to the running relay.
"""

import os
from typing import Optional

import typer


def get_server_url() -> str:
    """Get the relay URL from environment or default."""
    from peerlink.config import CONFIG

    explicit = os.getenv("PEERLINK_SERVER_URL")
    if explicit:
        return explicit.rstrip("/")
    return CONFIG.base_url


def _http_get(path: str, allow_statuses: Optional[tuple[int, ...]] = None) -> dict:
    """
    Make a GET request to the running relay.

    Args:
        path: Path below the server URL.
        allow_statuses: Error statuses whose JSON body should be returned
            instead of aborting.
    """
    import httpx

    url = f"{get_server_url()}{path}"
    try:
        resp = httpx.get(url, timeout=10.0)
        if allow_statuses and resp.status_code in allow_statuses:
            return resp.json()
        resp.raise_for_status()
        return resp.json()
    except httpx.ConnectError:
        typer.echo("Cannot connect to the peerlink relay. Is it running?")
        raise typer.Exit(code=1)
    except httpx.HTTPStatusError as e:
        try:
            detail = e.response.json().get("error", str(e))
        except Exception:
            detail = str(e)
        typer.echo(f"Server error: {detail}")
        raise typer.Exit(code=1)
    except Exception as e:
        typer.echo(f"Error: {e}")
        raise typer.Exit(code=1)

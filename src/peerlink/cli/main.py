"""
Top-level CLI commands: serve, health.
"""

import os
from typing import Optional

import typer

from peerlink.cli._http import _http_get


def configure_logging(verbose: bool = False):
    """Configure logging for the CLI."""
    from peerlink.logger import setup_logging

    log_level = "DEBUG" if verbose else "WARNING"
    setup_logging(level=log_level)

    if verbose:
        os.environ["LOG_LEVEL"] = "DEBUG"


def register_commands(app: typer.Typer) -> None:
    @app.command()
    def serve(
        host: Optional[str] = typer.Option(None, "--host", help="Bind host"),
        port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port"),
        probe_interval: Optional[float] = typer.Option(
            None, "--probe-interval", help="Seconds between liveness probes"
        ),
        debug: bool = typer.Option(False, "--debug", help="Log at DEBUG level"),
    ):
        """Run the signaling relay."""
        from peerlink.server import run

        try:
            run(host=host, port=port, probe_interval=probe_interval, debug=debug)
        except ValueError as e:
            typer.echo(f"Invalid configuration: {e}")
            raise typer.Exit(code=1)

    @app.command()
    def health():
        """Show relay health."""
        data = _http_get("/health")
        typer.echo(f"Status: {data.get('status', 'unknown')}")
        typer.echo(f"Uptime: {data.get('uptime_seconds', 0)}s")
        typer.echo(f"Sessions: {data.get('sessions', 0)}")
        typer.echo(f"Connections: {data.get('connections', 0)}")

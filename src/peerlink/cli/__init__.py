"""
peerlink CLI.

- main:     serve, health
- sessions: list, status
"""

import typer

from peerlink.cli._http import _http_get  # noqa: F401
from peerlink.cli.main import configure_logging, register_commands
from peerlink.cli.sessions import sessions_app

app = typer.Typer(help="peerlink - two-party WebRTC signaling relay")


@app.callback()
def root_callback(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging (DEBUG level)"
    ),
):
    """
    peerlink - two-party WebRTC signaling relay.
    """
    configure_logging(verbose)


register_commands(app)

app.add_typer(sessions_app, name="sessions")

if __name__ == "__main__":
    app()

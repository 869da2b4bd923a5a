"""
CLI subcommands for inspecting signaling sessions.

Usage:
    peerlink sessions list
    peerlink sessions status <session_id>
"""

import typer

from peerlink.cli._http import _http_get

sessions_app = typer.Typer(help="Inspect signaling sessions")


def _slot_icon(present: bool) -> str:
    return "🟢" if present else "⚪"


@sessions_app.command("list")
def sessions_list():
    """List all active sessions."""
    data = _http_get("/sessions")
    sessions = data.get("sessions", [])

    if not sessions:
        typer.echo("No active sessions.")
        return

    typer.echo(f"Active sessions ({len(sessions)}):\n")
    for session in sessions:
        typer.echo(
            f"  {session['sessionId']}\n"
            f"     {_slot_icon(session['initiatorPresent'])} initiator  "
            f"{_slot_icon(session['responderPresent'])} responder\n"
            f"     Created: {session.get('createdAt', 'unknown')}\n"
        )


@sessions_app.command("status")
def sessions_status(
    session_id: str = typer.Argument(help="Session identifier"),
):
    """Show which slots of a session are occupied."""
    from urllib.parse import quote

    path = f"/sessions/{quote(session_id, safe='')}/status"
    data = _http_get(path, allow_statuses=(404,))

    if "error" in data:
        typer.echo(f"❌ {data['error']}: {session_id}")
        raise typer.Exit(code=1)

    typer.echo(f"Session: {session_id}")
    typer.echo(f"  {_slot_icon(data['initiatorPresent'])} initiator")
    typer.echo(f"  {_slot_icon(data['responderPresent'])} responder")

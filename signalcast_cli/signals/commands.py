import getpass
import json
import time
from datetime import datetime, timezone
from typing import Optional

import typer

from signalcast_cli.core.api import ApiError, api_create_signal, api_list_signals
from signalcast_cli.core.live import ClientState, LiveSession
from signalcast_cli.core.session import load_email, load_token, save_token
from signalcast_cli.core.view import SignalView

app = typer.Typer(help="Create, list, delete and watch signals")

DEFAULT_TYPE = "demo"
DEFAULT_PAYLOAD = {"note": "this is the payload"}


def _require_token() -> str:
    token = load_token()
    if not token:
        typer.echo("No active session. Login first.")
        raise typer.Exit(code=1)
    return token


def _to_iso(value: Optional[str]) -> Optional[str]:
    """Accepts ISO dates/times and returns a UTC ISO timestamp."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        typer.echo(f"Invalid date/time: {value}")
        raise typer.Exit(code=1)
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed.astimezone(timezone.utc).isoformat()


def format_record(record: dict) -> str:
    payload = json.dumps(record.get("payload") or {}, sort_keys=True)
    return (
        f"{record.get('eventTimestamp')}  {str(record.get('type')):<12} "
        f"{record.get('owner')}  {record.get('id')}  {payload}"
    )


def print_view(view: SignalView) -> None:
    records = view.records()
    typer.echo(f"--- {len(records)} signal(s) ---")
    for record in records:
        typer.echo(format_record(record))


@app.command("create")
def create(
    signal_type: str = typer.Option(DEFAULT_TYPE, "--type", "-t", help="Signal type"),
    at: Optional[str] = typer.Option(None, "--at", help="Event time (ISO 8601), default now"),
    payload: Optional[str] = typer.Option(None, "--payload", "-p", help="JSON object payload"),
):
    """
    Record a signal.
    """
    token = _require_token()

    if payload is None:
        data = dict(DEFAULT_PAYLOAD)
    else:
        try:
            data = json.loads(payload)
        except ValueError:
            typer.echo("Payload must be valid JSON.")
            raise typer.Exit(code=1)
        if not isinstance(data, dict):
            typer.echo("Payload must be a JSON object.")
            raise typer.Exit(code=1)

    event_timestamp = _to_iso(at) or datetime.now(timezone.utc).isoformat()

    try:
        record = api_create_signal(token, signal_type, event_timestamp, data)
    except ApiError as exc:
        typer.echo(f"Error: {exc.message}")
        raise typer.Exit(code=1)

    typer.echo(f"Signal created: {record.get('id')}")


@app.command("list")
def list_signals(
    signal_type: Optional[str] = typer.Option(None, "--type", "-t", help="Only this type"),
    start: Optional[str] = typer.Option(None, "--from", help="Earliest event time (inclusive)"),
    end: Optional[str] = typer.Option(None, "--to", help="Latest event time (inclusive)"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Max records (<= 500)"),
):
    """
    List signals, newest event first.
    """
    token = _require_token()
    try:
        records = api_list_signals(token, signal_type, _to_iso(start), _to_iso(end), limit)
    except ApiError as exc:
        typer.echo(f"Error: {exc.message}")
        raise typer.Exit(code=1)

    view = SignalView()
    view.replace(records)
    print_view(view)


@app.command("delete")
def delete(signal_id: str = typer.Argument(..., help="Signal id")):
    """
    Delete one of your own signals.
    """
    session = LiveSession(token=_require_token())
    try:
        session.delete(signal_id)
    except ApiError as exc:
        typer.echo(f"Error: {exc.message}")
        raise typer.Exit(code=1)
    typer.echo(f"Signal {signal_id} deleted.")


@app.command("watch")
def watch(
    signal_type: Optional[str] = typer.Option(None, "--type", "-t", help="Only this type in snapshots"),
    email: Optional[str] = typer.Option(None, "--email", "-e", help="Login as this account when no session is active"),
):
    """
    Follow signals live: an initial snapshot plus pushed creates and deletes.
    """
    filters = {"signal_type": signal_type} if signal_type else {}
    session = LiveSession(
        view=SignalView(on_change=print_view),
        on_error=lambda message: typer.echo(f"Error: {message}"),
    )

    token = load_token()
    if token:
        email = load_email() or "unknown"
        session.start(token, **filters)
    elif email:
        password = getpass.getpass("Password: ")
        try:
            token = session.login(email, password, **filters)
        except ApiError:
            # on_error already printed the server message
            raise typer.Exit(code=1)
        save_token(token, email)
    else:
        typer.echo("No active session. Login first.")
        raise typer.Exit(code=1)

    typer.echo(f"Watching as '{email}'. Press Ctrl-C to stop.")
    try:
        while session.state is ClientState.LIVE and not session.stopped:
            time.sleep(0.5)
    except KeyboardInterrupt:
        pass
    finally:
        session.close()

    if session.state is not ClientState.LIVE:
        raise typer.Exit(code=1)

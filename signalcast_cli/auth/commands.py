import getpass
import re
import typer

from signalcast_cli.core.session import save_token, load_email, clear_token, is_logged_in
from signalcast_cli.core.api import ApiError, api_login, api_register


app = typer.Typer(help="Authentication commands (register, login, logout)")

EMAIL_REGEX = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 8


def _read_email(email: str | None) -> str:
    if email is None:
        email = typer.prompt("Email")
    if not EMAIL_REGEX.match(email):
        typer.echo("Invalid email address.")
        raise typer.Exit(code=1)
    return email


@app.command("register")
def register(
    email: str = typer.Option(None, "--email", "-e", help="Email"),
):
    """
    Create an account.
    """
    email = _read_email(email)
    password = getpass.getpass("Password: ")
    password_confirm = getpass.getpass("Confirm password: ")

    if password != password_confirm:
        typer.echo("Passwords do not match.")
        raise typer.Exit(code=1)

    if len(password) < MIN_PASSWORD_LENGTH:
        typer.echo(f"Password too short (minimum {MIN_PASSWORD_LENGTH} characters).")
        raise typer.Exit(code=1)

    try:
        api_register(email, password)
    except ApiError as exc:
        typer.echo(f"Registration failed: {exc.message}")
        raise typer.Exit(code=1)

    typer.echo(f"Account '{email}' created. You can now login.")


@app.command("login")
def login(
    email: str = typer.Option(None, "--email", "-e", help="Email"),
):
    """
    Login to the system. Only allowed if no session is active.
    """
    if is_logged_in():
        typer.echo("Session already active. Logout first to remove current session token.")
        raise typer.Exit(code=1)

    email = _read_email(email)
    password = getpass.getpass("Password: ")

    try:
        token = api_login(email, password)
    except ApiError as exc:
        typer.echo(f"Login failed: {exc.message}")
        raise typer.Exit(code=1)

    save_token(token, email)
    typer.echo(f"Login successful as '{email}'.")


@app.command("logout")
def logout():
    """
    End session and delete local token.
    """
    email = load_email()
    clear_token()
    if email:
        typer.echo(f"Session for '{email}' ended.")
    else:
        typer.echo("Session ended.")

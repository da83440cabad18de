# signalcast_cli/main.py


import logging

import typer
from signalcast_cli.auth.commands import app as auth_app
from signalcast_cli.signals.commands import app as signals_app

app = typer.Typer()
app.add_typer(auth_app, name="auth")
app.add_typer(signals_app, name="signals")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

if __name__ == "__main__":
    app()

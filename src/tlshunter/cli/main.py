"""Root CLI application for tlshunter."""

import typer

from tlshunter import __version__
from tlshunter.cli import scan

app = typer.Typer(
    name="tlshunter",
    help="Flag TLS misconfigurations in Android applications.",
    no_args_is_help=True,
)

# Register subcommands
app.add_typer(scan.app, name="scan", help="Scan APK files for TLS risks")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"tlshunter {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """tlshunter - static TLS risk triage for APK corpora."""
    pass


if __name__ == "__main__":
    app()

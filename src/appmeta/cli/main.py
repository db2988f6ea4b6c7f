"""Root CLI application for appmeta."""

import typer

from appmeta import __version__
from appmeta.cli import parse

app = typer.Typer(
    name="appmeta",
    help="Extract metadata from Android (.apk) and iOS (.ipa) packages.",
    no_args_is_help=True,
)

# Register subcommands
app.command("parse")(parse.parse_command)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"appmeta {__version__}")
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
    """appmeta - mobile package metadata extractor."""
    pass


if __name__ == "__main__":
    app()

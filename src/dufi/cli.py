"""dufi - duplicate file finder CLI."""

import typer

from dufi import __version__
from dufi.commands import cache, config, scan


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        typer.echo(f"dufi version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="dufi",
    help="Find duplicate files by hashing their first and last bytes.",
    no_args_is_help=True,
)


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    )
):
    """dufi - duplicate file finder."""
    pass

app.command(name="scan")(scan.scan)
app.add_typer(cache.app, name="cache")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()

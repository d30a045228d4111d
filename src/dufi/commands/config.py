"""Configuration management commands."""

import typer

from dufi.utils.config import get_config
from dufi.utils.console import console

app = typer.Typer(help="Configuration management")


@app.command()
def init():
    """Create a default config file at ~/.config/dufi/config.toml."""
    config = get_config()

    if config.config_file.exists():
        console.print(f"[warning]Config file already exists:[/warning] {config.config_file}")
        console.print("[info]Edit the file directly or delete it to regenerate[/info]")
        raise typer.Exit(0)

    config.create_example_config()
    console.print(f"[success]Created config file:[/success] {config.config_file}")


@app.command()
def show():
    """Show the current config file location and contents."""
    config = get_config()

    console.print(f"[bold]Config file location:[/bold] {config.config_file}")
    console.print()

    if not config.config_file.exists():
        console.print("[warning]Config file does not exist[/warning]")
        console.print("[info]Run 'dufi config init' to create one[/info]")
        raise typer.Exit(0)

    try:
        content = config.config_file.read_text()
    except OSError as e:
        console.print(f"[error]Error reading config file: {e}[/error]")
        raise typer.Exit(1)

    console.print("[bold]Current configuration:[/bold]")
    console.print()
    console.print(content, markup=False)


@app.command()
def path():
    """Show the config file path."""
    console.print(str(get_config().config_file))

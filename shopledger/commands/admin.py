"""Admin commands for setting up shopledger."""

import sys

from rich.console import Console

from shopledger.config import create_default_config, get_config_path

console = Console()


def init_command(base_url: str, force: bool = False) -> None:
    """Initialize shopledger configuration."""
    config_path = get_config_path()

    if config_path.exists() and not force:
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        console.print("[dim]Use --force to overwrite[/dim]")
        sys.exit(1)

    try:
        create_default_config(config_path, base_url=base_url)
    except OSError as e:
        console.print(f"[red]Could not write config: {e}[/red]", style="bold")
        sys.exit(1)

    console.print(f"[green]✓[/green] Config created at {config_path}")
    console.print("[dim]Set SHOPLEDGER_TOKEN to authenticate against the shop backend[/dim]")

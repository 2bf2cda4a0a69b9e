#!/usr/bin/env python3
"""
SaaS Kit CLI - Main Entry Point

Usage:
    saaskit webhooks sign <payload.json>
    saaskit webhooks replay <payload.json> [--url http://localhost:8000]
    saaskit usage stats <email>
    saaskit models list
    saaskit config
"""
import typer
from rich.console import Console

from . import __version__
from .commands import models, usage, webhooks

# Create main Typer app
app = typer.Typer(
    name="saaskit",
    help="SaaS Kit CLI - billing webhooks and AI usage tooling",
    add_completion=False
)

# Add sub-commands
app.add_typer(webhooks.app, name="webhooks", help="Sign and replay payment webhooks")
app.add_typer(usage.app, name="usage", help="AI usage statistics")
app.add_typer(models.app, name="models", help="AI model tier")

console = Console()


@app.command()
def version():
    """Show CLI version."""
    console.print(f"[bold blue]SaaS Kit CLI[/bold blue] v{__version__}")


@app.command("config")
def check_config():
    """Check CLI configuration."""
    from .config import get_config

    config = get_config()
    missing = config.validate()

    if missing:
        console.print("[bold red]❌ Missing Configuration:[/bold red]")
        for item in missing:
            console.print(f"   • {item}")
        console.print("\n[dim]Set these as environment variables or in ~/.saaskit/.env[/dim]")
        raise typer.Exit(1)

    console.print("[bold green]✅ Configuration Valid[/bold green]")
    console.print(f"   API: {config.api.base_url}{config.api.api_prefix}")
    console.print(f"   Supabase: {config.supabase.url[:40]}...")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

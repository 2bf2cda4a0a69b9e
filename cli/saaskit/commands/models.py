"""
Models Command Module

Show the AI model tier the API falls back through.
"""
import typer
import httpx
from typing import Optional
from rich.console import Console
from rich.table import Table

app = typer.Typer(help="AI model tier")
console = Console()


@app.command("list")
def list_models(
    url: Optional[str] = typer.Option(
        None, "--url", "-u",
        help="API base URL (default: SAASKIT_API_URL or http://localhost:8000)"
    ),
):
    """List models in fallback order, as served by the running API."""
    from ..config import get_config

    target = get_config().api.url("/ai/models", base_url=url)

    try:
        response = httpx.get(target, timeout=10.0)
        response.raise_for_status()
    except httpx.HTTPError as e:
        console.print(f"[bold red]❌ Could not load model tier: {e}[/bold red]")
        raise typer.Exit(1)

    data = response.json()

    table = Table(title="Model tier (tried in order)")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Model", style="bold cyan")
    table.add_column("Tier")
    for position, model in enumerate(data.get("models", []), start=1):
        table.add_row(str(position), model, "free" if model.endswith(":free") else "paid")

    console.print(table)
    console.print(
        f"[dim]Defaults: temperature {data.get('default_temperature')}, "
        f"max tokens {data.get('default_max_tokens')}[/dim]"
    )

"""
Webhooks Command Module

Sign payment webhook payloads with the Standard Webhooks scheme and replay
them against a running API, for local testing without the provider.
"""
import typer
import httpx
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional
from rich.console import Console
from rich.table import Table
from standardwebhooks import Webhook

app = typer.Typer(help="Sign and replay payment webhooks")
console = Console()

WEBHOOK_PATH = "/webhooks/dodo-payments"


def read_payload(file_path: Path) -> str:
    """Read a webhook payload file; the bytes are signed exactly as read."""
    if not file_path.exists():
        console.print(f"[bold red]❌ File not found: {file_path}[/bold red]")
        raise typer.Exit(1)
    return file_path.read_text()


def build_signed_headers(
    secret: str,
    payload: str,
    msg_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, str]:
    """Headers a Standard Webhooks sender attaches to `payload`."""
    msg_id = msg_id or f"msg_{uuid.uuid4().hex}"
    now = now or datetime.now(timezone.utc)

    return {
        "webhook-id": msg_id,
        "webhook-timestamp": str(int(now.timestamp())),
        "webhook-signature": Webhook(secret).sign(msg_id, now, payload),
        "content-type": "application/json",
    }


def _require_secret() -> str:
    from ..config import get_config

    secret = get_config().webhook.secret
    if not secret:
        console.print("[bold red]❌ DODO_PAYMENTS_WEBHOOK_KEY is not set[/bold red]")
        raise typer.Exit(1)
    return secret


@app.command("sign")
def sign_payload(
    file: Path = typer.Argument(..., help="Path to a JSON webhook payload")
):
    """Print Standard Webhooks headers for a payload."""
    headers = build_signed_headers(_require_secret(), read_payload(file))

    table = Table(title="Webhook headers")
    table.add_column("Header", style="bold cyan")
    table.add_column("Value")
    for name, value in headers.items():
        table.add_row(name, value)

    console.print(table)


@app.command("replay")
def replay_payload(
    file: Path = typer.Argument(..., help="Path to a JSON webhook payload"),
    url: Optional[str] = typer.Option(
        None, "--url", "-u",
        help="API base URL (default: SAASKIT_API_URL or http://localhost:8000)"
    ),
):
    """
    Sign a payload and POST it to the webhook endpoint.

    Example:
        saaskit webhooks replay fixtures/payment_succeeded.json
    """
    from ..config import get_config

    config = get_config()
    payload = read_payload(file)
    headers = build_signed_headers(_require_secret(), payload)

    target = config.api.url(WEBHOOK_PATH, base_url=url)
    console.print(f"[dim]POST {target}[/dim]")

    try:
        response = httpx.post(target, content=payload.encode(), headers=headers, timeout=30.0)
    except httpx.HTTPError as e:
        console.print(f"[bold red]❌ Request failed: {e}[/bold red]")
        raise typer.Exit(1)

    style = "green" if response.is_success else "red"
    console.print(f"[bold {style}]{response.status_code}[/bold {style}] {response.text}")

    if not response.is_success:
        raise typer.Exit(1)

"""
Usage Command Module

AI usage statistics for a customer, read from the ai_logs table.
"""
import typer
from collections import Counter
from datetime import datetime, timezone
from rich.console import Console
from rich.table import Table

app = typer.Typer(help="AI usage statistics")
console = Console()


@app.command("stats")
def usage_stats(
    email: str = typer.Argument(..., help="Customer email")
):
    """Show all-time and today's AI usage for a customer."""
    from ..config import get_supabase_client

    try:
        client = get_supabase_client()

        customer = client.table('customers').select(
            'customer_id, email, name'
        ).eq('email', email.strip().lower()).limit(1).execute()

        if not customer.data:
            console.print(f"[bold red]❌ Customer not found: {email}[/bold red]")
            raise typer.Exit(1)

        customer_id = customer.data[0]['customer_id']
        rows = client.table('ai_logs').select(
            'model, total_tokens, created_at'
        ).eq('customer_id', customer_id).execute().data or []

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[bold red]❌ Error: {e}[/bold red]")
        raise typer.Exit(1)

    today = datetime.now(timezone.utc).date().isoformat()
    today_rows = [r for r in rows if (r.get('created_at') or '')[:10] == today]
    models = Counter(r['model'] for r in rows if r.get('model'))

    console.print(f"\n[bold blue]AI usage: {email}[/bold blue] ({customer_id})")
    console.print(f"   Requests: {len(rows):,} total, {len(today_rows):,} today")
    console.print(f"   Tokens: {sum(r.get('total_tokens') or 0 for r in rows):,} total, "
                  f"{sum(r.get('total_tokens') or 0 for r in today_rows):,} today")

    if not models:
        console.print("\n[yellow]No AI requests logged.[/yellow]")
        return

    table = Table(title="Requests by model")
    table.add_column("Model", style="bold cyan")
    table.add_column("Requests", justify="right")
    for model, count in models.most_common():
        table.add_row(model, str(count))

    console.print(table)

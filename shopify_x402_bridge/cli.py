"""Command-line interface for the Shopify x402 bridge."""

import logging
from pathlib import Path
from typing import Optional
import typer
from rich.console import Console
from rich.table import Table

from .config import BridgeConfig, DEFAULT_FACILITATOR_URL
from .database import create_db_engine, create_session_factory, init_db
from .errors import ShopNotFoundError
from .storage import PaymentStore, ShopConfigStore

app = typer.Typer(
    name="shopify-x402",
    help="Shopify x402 Payment Bridge CLI"
)
console = Console()

EXAMPLE_ENV = f"""\
SHOPIFY_API_KEY=your_api_key
SHOPIFY_API_SECRET=your_api_secret
SHOPIFY_SCOPES=write_orders,read_products
SHOPIFY_API_VERSION=2025-07
HOST=https://your-bridge.example.com
X402_FACILITATOR_URL={DEFAULT_FACILITATOR_URL}
X402_FACILITATOR_TIMEOUT=30
DATABASE_URL=sqlite:///x402_bridge.db
PORT=3000
"""


def load_config(env_file: Optional[str]) -> BridgeConfig:
    """Load configuration from the environment and an optional .env file."""
    if env_file and not Path(env_file).exists():
        console.print(f"[red]Error: Env file not found: {env_file}[/red]")
        raise typer.Exit(1)
    return BridgeConfig.from_env(env_file)


@app.command()
def init(
    output: str = typer.Option(".env.example", help="Output environment file path")
):
    """Write an example environment file."""
    output_path = Path(output)
    output_path.write_text(EXAMPLE_ENV)

    console.print(f"[green]✓[/green] Environment file created: {output}")
    console.print("\n[yellow]⚠ Please edit the file and add your Shopify app credentials![/yellow]")


@app.command()
def validate(
    env_file: Optional[str] = typer.Option(None, help="Path to a .env file"),
):
    """Validate configuration."""
    try:
        cfg = load_config(env_file)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]✗ Configuration error:[/red] {str(e)}")
        raise typer.Exit(1)

    missing = [name for name, value in (
        ("SHOPIFY_API_KEY", cfg.shopify.api_key),
        ("SHOPIFY_API_SECRET", cfg.shopify.api_secret),
    ) if not value]
    if missing:
        console.print(f"[red]✗ Missing settings:[/red] {', '.join(missing)}")
        raise typer.Exit(1)

    console.print("[green]✓[/green] Configuration is valid!")
    console.print(f"\n[bold]Host:[/bold] {cfg.shopify.host}")
    console.print(f"[bold]Scopes:[/bold] {','.join(cfg.shopify.scopes)}")
    console.print(f"[bold]Admin API version:[/bold] {cfg.shopify.api_version}")
    console.print(f"[bold]Facilitator:[/bold] {cfg.facilitator.url}")
    console.print(f"[bold]Port:[/bold] {cfg.port}")


@app.command("init-db")
def init_database(
    env_file: Optional[str] = typer.Option(None, help="Path to a .env file"),
):
    """Create the shops and payments tables."""
    cfg = load_config(env_file)
    init_db(create_db_engine(cfg.database))
    console.print(f"[green]✓[/green] Database ready: {cfg.database.url}")


@app.command()
def serve(
    env_file: Optional[str] = typer.Option(None, help="Path to a .env file"),
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: Optional[int] = typer.Option(None, help="Port to bind to (defaults to PORT)"),
    log_level: str = typer.Option("info", help="Logging level"),
):
    """Start the bridge HTTP server."""
    from .app import create_app
    import uvicorn

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    cfg = load_config(env_file)
    bridge_app = create_app(cfg)
    bind_port = port or cfg.port

    console.print(f"[green]Shopify x402 Bridge running on {host}:{bind_port}[/green]")
    console.print(f"[blue]App URL: {cfg.shopify.host}[/blue]")

    uvicorn.run(bridge_app, host=host, port=bind_port, log_level=log_level.lower())


@app.command()
def payments(
    shop: str = typer.Argument(..., help="Shop domain (e.g., 'mystore.myshopify.com')"),
    env_file: Optional[str] = typer.Option(None, help="Path to a .env file"),
    limit: int = typer.Option(50, help="Number of payments to show"),
):
    """Show the most recent payments recorded for a shop."""
    cfg = load_config(env_file)
    engine = create_db_engine(cfg.database)
    init_db(engine)
    session_factory = create_session_factory(engine)

    try:
        shop_record = ShopConfigStore(session_factory).get(shop)
    except ShopNotFoundError:
        console.print(f"[red]Error: Shop not found: {shop}[/red]")
        raise typer.Exit(1)

    records = PaymentStore(session_factory).list_for_shop(shop_record, limit)

    table = Table(title=f"Payments for {shop}")
    table.add_column("Created", style="cyan")
    table.add_column("Tx Hash", style="green")
    table.add_column("Amount", justify="right", style="yellow")
    table.add_column("Status", style="magenta")
    table.add_column("Product")

    for payment in records:
        tx_hash = payment.tx_hash
        table.add_row(
            payment.created_at.strftime("%Y-%m-%d %H:%M:%S") if payment.created_at else "",
            tx_hash[:18] + "..." if len(tx_hash) > 18 else tx_hash,
            payment.amount,
            payment.status,
            payment.product_title,
        )

    console.print(table)


if __name__ == "__main__":
    app()

"""
Espetaria CLI.

Command-line interface for setup and day-to-day operations.

Usage:
    python cli.py init-db
    python cli.py create-admin admin@espetaria.com --nome "Dona Maria"
    python cli.py seed-menu
    python cli.py list-orders --status pendente
"""

import sys
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="espetaria",
    help="Espetaria online ordering CLI",
    add_completion=False,
)
console = Console()


# =============================================================================
# Database Commands
# =============================================================================

@app.command()
def init_db():
    """Create all database tables (idempotent)."""
    from shared.infrastructure.db import engine
    from rest_api.models import Base

    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        console.print(f"[red]✗ Could not create tables: {e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓ {len(Base.metadata.tables)} tables created/verified[/green]")


@app.command()
def seed_menu(
    force: bool = typer.Option(False, "--force", "-f", help="Allow seeding in production"),
):
    """Seed the demo menu, restaurant config and delivery zones."""
    from shared.config.settings import settings
    from shared.infrastructure.db import get_db_context
    from rest_api.seed import seed_demo_menu

    if settings.environment == "production" and not force:
        console.print("[red]Cannot seed production without --force[/red]")
        raise typer.Exit(1)

    with get_db_context() as db:
        created = seed_demo_menu(db)

    if created:
        console.print("[green]✓ Demo menu seeded[/green]")
    else:
        console.print("[yellow]Menu already has categories, nothing to do[/yellow]")


# =============================================================================
# User Commands
# =============================================================================

@app.command()
def create_admin(
    email: str = typer.Argument(..., help="Admin email"),
    nome: str = typer.Option(..., prompt=True, help="Display name"),
    password: str = typer.Option(
        ..., prompt=True, confirmation_prompt=True, hide_input=True, help="Password (min 8 chars)"
    ),
):
    """Create an admin user."""
    from pydantic import ValidationError as SchemaValidationError

    from shared.config.constants import Roles
    from shared.infrastructure.db import get_db_context
    from shared.utils.admin_schemas import UserCreate
    from shared.utils.exceptions import AppException
    from rest_api.services.domain import UserService

    try:
        body = UserCreate(email=email, password=password, nome=nome, role=Roles.ADMIN)
    except SchemaValidationError as e:
        for error in e.errors():
            console.print(f"[red]✗ {'.'.join(map(str, error['loc']))}: {error['msg']}[/red]")
        raise typer.Exit(1)

    with get_db_context() as db:
        try:
            user = UserService(db).create_user(body, actor_id=None, actor_email=None)
        except AppException as e:
            console.print(f"[red]✗ {e.detail}[/red]")
            raise typer.Exit(1)

    console.print(f"[green]✓ Admin created: {user.email} (id {user.id})[/green]")


# =============================================================================
# Order Commands
# =============================================================================

@app.command()
def list_orders(
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Filter by status"),
    limit: int = typer.Option(20, help="Maximum orders to show"),
):
    """Show recent orders, newest first."""
    from shared.config.constants import OrderStatus
    from shared.infrastructure.db import get_db_context
    from shared.utils.validators import format_brl
    from rest_api.services.domain import OrderService

    if status is not None and status not in OrderStatus.ALL:
        console.print(f"[red]Unknown status '{status}'. Use one of: {', '.join(OrderStatus.ALL)}[/red]")
        raise typer.Exit(1)

    with get_db_context() as db:
        orders = OrderService(db).list_orders(status, limit=limit)

        table = Table(title="Orders")
        table.add_column("Ref", style="cyan")
        table.add_column("Created", style="dim")
        table.add_column("Customer")
        table.add_column("Type")
        table.add_column("Status", style="magenta")
        table.add_column("Total", justify="right", style="green")

        for order in orders:
            table.add_row(
                order.short_ref,
                order.created_at.strftime("%d/%m %H:%M"),
                order.customer.nome if order.customer else "-",
                order.tipo_entrega,
                order.status,
                format_brl(order.total_cents),
            )

    if not orders:
        console.print("[yellow]No orders found[/yellow]")
        return
    console.print(table)


# =============================================================================
# Health Commands
# =============================================================================

@app.command()
def health(
    url: str = typer.Option("http://localhost:8000/api/health/detailed", help="Health endpoint"),
):
    """Check the API and its dependencies."""
    import httpx

    try:
        response = httpx.get(url, timeout=5.0)
    except httpx.HTTPError as e:
        console.print(f"[red]✗ API unreachable: {type(e).__name__}[/red]")
        raise typer.Exit(1)

    body = response.json()
    table = Table(title=f"Service Health ({body.get('status', response.status_code)})")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Latency", style="yellow")

    for name, component in body.get("dependencies", {}).items():
        latency = component.get("latency_ms")
        table.add_row(
            name,
            component.get("status", "?"),
            f"{latency:.0f}ms" if latency is not None else "-",
        )
    console.print(table)

    if response.status_code != 200:
        raise typer.Exit(1)


@app.command()
def version():
    """Show version information."""
    table = Table(title="Espetaria Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("API", "0.1.0")
    table.add_row("Python", sys.version.split()[0])

    console.print(table)


if __name__ == "__main__":
    app()

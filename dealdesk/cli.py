"""DealDesk CLI - database bootstrap, dev tokens, demo data and the API server."""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import settings
from .models.enums import Role

app = typer.Typer(
    name="dealdesk",
    help="DealDesk sales CRM - admin and development commands",
    no_args_is_help=True,
)
console = Console()


async def _create_tables() -> None:
    from .database import engine
    from .models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def _create_user(email: str, name: str, role: Role, password: str | None):
    from .database import async_session_factory
    from .models.user import User
    from .security.passwords import hash_password
    from .services import user_svc

    async with async_session_factory() as db:
        if await user_svc.get_user_by_email(db, email) is not None:
            return None
        user = User(
            email=email.strip().lower(),
            name=name,
            role=role,
            password_hash=hash_password(password) if password else None,
        )
        db.add(user)
        await db.commit()
        return user


async def _issue_token(email: str) -> str | None:
    from .database import async_session_factory
    from .security.session import issue_session_token
    from .services import user_svc

    async with async_session_factory() as db:
        user = await user_svc.get_user_by_email(db, email)
    if user is None or not user.is_active:
        return None
    return issue_session_token(settings, user.id, user.role)


# ============================================================================
# Database
# ============================================================================


@app.command("init-db")
def init_db():
    """Create all tables (use Alembic for PostgreSQL deployments)."""
    asyncio.run(_create_tables())
    console.print(f"[green]Tables created[/green] at {settings.database_url}")


@app.command("create-user")
def create_user(
    email: str = typer.Argument(..., help="Login email for the new user"),
    name: str = typer.Option(..., "--name", "-n", help="Display name"),
    role: Role = typer.Option(Role.ADMIN, "--role", "-r", help="Role to grant"),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="Optional password"),
):
    """Bootstrap a user without going through the API."""
    user = asyncio.run(_create_user(email, name, role, password))
    if user is None:
        console.print(f"[red]A user with email {email} already exists[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]Created[/green] {user.email} ({user.role.value}) id={user.id}")


@app.command()
def token(email: str = typer.Argument(..., help="Email of an existing active user")):
    """Print a session token for an existing user (development only)."""
    if not settings.auth_secret.strip():
        console.print("[red]DEALDESK_AUTH_SECRET must be set to issue tokens[/red]")
        raise typer.Exit(code=1)
    value = asyncio.run(_issue_token(email))
    if value is None:
        console.print(f"[red]No active user with email {email}[/red]")
        raise typer.Exit(code=1)
    typer.echo(value)


# ============================================================================
# Demo data
# ============================================================================


async def _seed() -> dict[str, int]:
    from .database import async_session_factory
    from .models.enums import ActivityType, DealStage, LeadSource, Priority
    from .models.user import User
    from .schemas.activity import ActivityCreate
    from .schemas.contact import ContactCreate
    from .schemas.deal import DealFromContact
    from .schemas.lead import LeadConversion, LeadCreate
    from .security.policy import Actor
    from .services import activity_svc, contact_svc, deal_svc, lead_svc, user_svc

    await _create_tables()
    counts = {"users": 0, "contacts": 0, "leads": 0, "deals": 0, "activities": 0}
    async with async_session_factory() as db:
        people = (
            ("admin@dealdesk.local", "Avery Admin", Role.ADMIN),
            ("manager@dealdesk.local", "Morgan Manager", Role.MANAGER),
            ("rep@dealdesk.local", "Riley Rep", Role.REP),
            ("viewer@dealdesk.local", "Val Viewer", Role.READ_ONLY),
        )
        users = {}
        for email, name, role in people:
            user = await user_svc.get_user_by_email(db, email)
            if user is None:
                user = User(email=email, name=name, role=role)
                db.add(user)
                counts["users"] += 1
            users[role] = user
        await db.commit()

        rep = Actor(id=users[Role.REP].id, role=Role.REP)
        manager = Actor(id=users[Role.MANAGER].id, role=Role.MANAGER)

        acme = await contact_svc.create_contact(
            db, rep, ContactCreate(first_name="Dana", last_name="Reyes", company="Acme Corp", tags=["tech"])
        )
        globex = await contact_svc.create_contact(
            db, manager, ContactCreate(first_name="Sam", last_name="Okafor", company="Globex")
        )
        counts["contacts"] += 2

        lead = await lead_svc.create_lead(
            db,
            rep,
            LeadCreate(
                title="CRM for Acme",
                first_name="Dana",
                last_name="Reyes",
                company="Acme Corp",
                source=LeadSource.REFERRAL,
                value=Decimal("50000"),
                tags=["tech"],
                contact_id=acme.id,
            ),
        )
        await lead_svc.create_lead_from_contact(db, manager, globex.id)
        counts["leads"] += 2

        won = await lead_svc.convert_lead_to_deal(db, rep, lead.id, LeadConversion())
        await deal_svc.change_stage(db, rep, won.id, DealStage.NEGOTIATION)
        globex_deal = await deal_svc.create_deal_from_contact(
            db, manager, globex.id, DealFromContact(value=Decimal("12500"), stage=DealStage.PROPOSAL)
        )
        counts["deals"] += 2

        await activity_svc.create_activity(
            db,
            rep,
            ActivityCreate(
                title="Send revised proposal",
                type=ActivityType.EMAIL,
                priority=Priority.HIGH,
                deal_id=won.id,
                contact_id=acme.id,
            ),
        )
        await activity_svc.create_activity(
            db,
            manager,
            ActivityCreate(
                title="Pricing review call",
                type=ActivityType.CALL,
                assignee_id=users[Role.REP].id,
                deal_id=globex_deal.id,
            ),
        )
        counts["activities"] += 2
    return counts


@app.command()
def seed():
    """Load demo users, contacts, leads, deals and activities."""
    counts = asyncio.run(_seed())

    table = Table(title="Seeded records")
    table.add_column("Entity", style="cyan")
    table.add_column("Created", style="green", justify="right")
    for entity, n in counts.items():
        table.add_row(entity, str(n))
    console.print(table)


# ============================================================================
# Server
# ============================================================================


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Bind port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Run the API with uvicorn."""
    import uvicorn

    if not settings.auth_secret.strip():
        console.print(
            Panel(
                "[yellow]DEALDESK_AUTH_SECRET is not set.[/yellow]\n\n"
                "Every API request will answer 503 until it is configured.",
                title="Authentication",
            )
        )
    uvicorn.run("dealdesk.app:app", host=host, port=port, reload=reload)


@app.command()
def version():
    """Show version information."""
    from . import __version__

    console.print(f"DealDesk v{__version__}")


if __name__ == "__main__":
    app()

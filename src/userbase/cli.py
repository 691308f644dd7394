"""
Command-line interface for userbase.
"""

import asyncio
import sys
from functools import wraps
from pathlib import Path
from typing import Any, Dict, Type, TypeVar

import click
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.table import Table

from . import __version__
from .accounts import UserLogin, UserRegistration
from .bootstrap import build_account_service, open_database
from .config import UserbaseConfig, configure_logging
from .database.catalog import CatalogLookup
from .exceptions import ConfigurationError, UserbaseError, ValidationError
from .schema.descriptors import EXPECTED_TABLES
from .schema.operations import OperationMode
from .schema.reconciler import (
    ReconciliationResult,
    ReconciliationStatus,
    SchemaReconciler,
    ensure_database_schema,
)


console = Console()

ModelT = TypeVar("ModelT", bound=BaseModel)


def handle_errors(func):
    """Decorator to handle errors gracefully in CLI commands."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except UserbaseError as e:
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/yellow]")
            sys.exit(0)
        except Exception as e:
            console.print(f"[red]Unexpected error:[/red] {e}")
            if "--debug" in sys.argv:
                import traceback
                traceback.print_exc()
            sys.exit(1)
    return wrapper


def config_option(func):
    return click.option(
        "--config",
        "-c",
        type=click.Path(exists=True),
        required=True,
        help="Configuration file path",
    )(func)


def _load_config(path: str, debug: bool = False) -> UserbaseConfig:
    config = UserbaseConfig.from_yaml(path)
    configure_logging(config.logging, debug or config.debug)
    return config


def _validate(model: Type[ModelT], **data: Any) -> ModelT:
    try:
        return model(**data)
    except PydanticValidationError as e:
        messages = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ValidationError("; ".join(messages)) from e


@click.group()
@click.version_option(__version__)
@click.option(
    "--debug", is_flag=True, help="Enable debug mode"
)
@click.pass_context
def main(ctx, debug):
    """userbase: Minimal PostgreSQL user-account backend."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="userbase-config.yaml",
    help="Output configuration file path",
)
@handle_errors
def init(output: str):
    """Initialize a new userbase configuration file."""
    if Path(output).exists():
        if not click.confirm(f"Configuration file {output} already exists. Overwrite?"):
            return

    config = _create_default_config()
    config.to_yaml(output)

    console.print(f"[green]✓[/green] Configuration file created: {output}")
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print("1. Edit the configuration file with your database details")
    console.print("2. Set USERBASE_JWT_KEY to a long random secret")
    console.print("3. Run: userbase schema-reconcile --config your-config.yaml")


@main.command()
@config_option
@handle_errors
def validate_config(config: str):
    """Validate configuration file."""
    console.print(f"Validating configuration: {config}")

    userbase_config = UserbaseConfig.from_yaml(config)
    console.print("[green]✓[/green] Configuration is valid")
    _display_config_summary(userbase_config)


@main.command()
@config_option
@click.pass_obj
@handle_errors
def test_connection(obj: Dict[str, Any], config: str):
    """Test the database connection."""
    userbase_config = _load_config(config, obj.get("debug", False))

    async def run_test() -> Dict[str, str]:
        async with open_database(userbase_config, prepare_schema=False) as pool:
            return await pool.server_info()

    info = asyncio.run(run_test())
    console.print(f"[green]✓[/green] Connected to {info['database']} as {info['user']}")
    console.print(f"  PostgreSQL version: {info['version'].split(',')[0]}")


@main.command()
@config_option
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be done without making changes",
)
@click.pass_obj
@handle_errors
def schema_reconcile(obj: Dict[str, Any], config: str, dry_run: bool):
    """Reconcile database schema with the expected tables."""
    console.print("[blue]Schema reconciliation[/blue]")

    userbase_config = _load_config(config, obj.get("debug", False))
    settings = userbase_config.schema_management
    settings.reconcile_on_startup = True
    if dry_run:
        settings.mode = OperationMode.DRY_RUN.value
        console.print("[yellow]Dry run mode - no changes will be made[/yellow]")

    async def run_reconcile() -> ReconciliationResult:
        async with open_database(userbase_config, prepare_schema=False) as pool:
            return await ensure_database_schema(pool, settings)

    result = asyncio.run(run_reconcile())
    _display_reconciliation_result(result)

    if result.status in (ReconciliationStatus.FAILED, ReconciliationStatus.PARTIAL):
        sys.exit(1)


@main.command()
@config_option
@click.pass_obj
@handle_errors
def schema_status(obj: Dict[str, Any], config: str):
    """Show the expected tables as found in the catalog and any pending changes."""
    console.print("[blue]Schema Status[/blue]")

    userbase_config = _load_config(config, obj.get("debug", False))

    async def run_status():
        async with open_database(userbase_config, prepare_schema=False) as pool:
            async with pool.acquire() as conn:
                catalog = CatalogLookup(conn)
                found = []
                for table in EXPECTED_TABLES:
                    name = await catalog.find_table_exact(table.name)
                    if name is None and table.legacy_name:
                        name = await catalog.find_table_case_insensitive(table.legacy_name)
                    found.append((table, name, await catalog.list_columns(name) if name else []))

                pending = await SchemaReconciler(conn, OperationMode.DRY_RUN).reconcile()
                return found, pending

    found, pending = asyncio.run(run_status())

    status_table = Table(title=f"Expected tables ({pending.schema})")
    status_table.add_column("Table", style="cyan")
    status_table.add_column("Found as", style="magenta")
    status_table.add_column("Columns", style="green")
    status_table.add_column("Missing columns", style="yellow")
    for table, name, columns in found:
        absent = [c for c in table.column_names if c not in columns]
        status_table.add_row(
            table.name,
            name or "[red]missing[/red]",
            ", ".join(columns),
            ", ".join(absent),
        )
    console.print(status_table)

    if pending.changes_applied:
        console.print(f"\n[yellow]{len(pending.changes_applied)} pending change(s)[/yellow]")
    else:
        console.print("\n[green]✓[/green] Schema is up to date")
    _display_reconciliation_result(pending)


@main.command()
@config_option
@click.option("--name", required=True, help="Full name")
@click.option("--email", required=True, help="Email address")
@click.option("--phone", required=True, help="Phone number, e.g. +15551234567")
@click.option(
    "--gender",
    type=click.Choice(["Male", "Female", "Other"]),
    required=True,
    help="Gender",
)
@click.password_option(help="Account password (prompted if omitted)")
@click.pass_obj
@handle_errors
def register_user(
    obj: Dict[str, Any],
    config: str,
    name: str,
    email: str,
    phone: str,
    gender: str,
    password: str,
):
    """Register a new user account."""
    userbase_config = _load_config(config, obj.get("debug", False))
    registration = _validate(
        UserRegistration,
        name=name,
        email=email,
        phone=phone,
        gender=gender,
        password=password,
    )

    async def run_register() -> int:
        async with open_database(userbase_config) as pool:
            service = build_account_service(userbase_config, pool)
            return await service.register(registration)

    user_id = asyncio.run(run_register())
    console.print(f"[green]✓[/green] Registration successful (user id {user_id})")


@main.command()
@config_option
@click.option("--email", required=True, help="Email address")
@click.option("--password", prompt=True, hide_input=True, help="Account password")
@click.pass_obj
@handle_errors
def login(obj: Dict[str, Any], config: str, email: str, password: str):
    """Log in and print a session token."""
    userbase_config = _load_config(config, obj.get("debug", False))
    credentials = _validate(UserLogin, email=email, password=password)

    async def run_login():
        async with open_database(userbase_config) as pool:
            service = build_account_service(userbase_config, pool)
            return await service.login(credentials)

    result = asyncio.run(run_login())
    console.print(f"[green]✓[/green] Logged in as {result.user.name} <{result.user.email}>")
    click.echo(result.token)


@main.command()
@config_option
@click.option(
    "--token",
    envvar="USERBASE_TOKEN",
    required=True,
    help="Session token (defaults to $USERBASE_TOKEN)",
)
@click.pass_obj
@handle_errors
def whoami(obj: Dict[str, Any], config: str, token: str):
    """Show the profile of the user a session token belongs to."""
    userbase_config = _load_config(config, obj.get("debug", False))

    async def run_whoami():
        async with open_database(userbase_config) as pool:
            service = build_account_service(userbase_config, pool)
            user_id = service.authenticate(token)
            return await service.get_user_info(user_id)

    profile = asyncio.run(run_whoami())
    if profile is None:
        console.print("[yellow]User not found[/yellow]")
        sys.exit(1)

    profile_table = Table(title="User Info")
    profile_table.add_column("Field", style="cyan")
    profile_table.add_column("Value", style="green")
    for key, value in profile.model_dump().items():
        profile_table.add_row(key, str(value))
    console.print(profile_table)


@main.command()
@config_option
@click.option(
    "--token",
    envvar="USERBASE_TOKEN",
    required=True,
    help="Session token (defaults to $USERBASE_TOKEN)",
)
@click.pass_obj
@handle_errors
def users(obj: Dict[str, Any], config: str, token: str):
    """List active users."""
    userbase_config = _load_config(config, obj.get("debug", False))

    async def run_users():
        async with open_database(userbase_config) as pool:
            service = build_account_service(userbase_config, pool)
            service.authenticate(token)
            return await service.list_active_users()

    items = asyncio.run(run_users())

    users_table = Table(title="Active Users")
    for heading in ("Id", "Name", "Email", "Phone", "Gender", "Registered"):
        users_table.add_column(heading)
    for item in items:
        users_table.add_row(
            str(item.id), item.name, item.email, item.phone, item.gender, item.registration_date
        )
    console.print(users_table)


@main.command()
@config_option
@click.option(
    "--token",
    envvar="USERBASE_TOKEN",
    required=True,
    help="Session token (defaults to $USERBASE_TOKEN)",
)
@click.pass_obj
@handle_errors
def stats(obj: Dict[str, Any], config: str, token: str):
    """Show user counts."""
    userbase_config = _load_config(config, obj.get("debug", False))

    async def run_stats():
        async with open_database(userbase_config) as pool:
            service = build_account_service(userbase_config, pool)
            service.authenticate(token)
            return await service.get_stats()

    result = asyncio.run(run_stats())
    console.print(f"Total users: {result.total_users}")
    console.print(f"Active users: {result.active_users}")


@main.command()
@config_option
@click.option(
    "--token",
    envvar="USERBASE_TOKEN",
    required=True,
    help="Session token (defaults to $USERBASE_TOKEN)",
)
@click.pass_obj
@handle_errors
def courses(obj: Dict[str, Any], config: str, token: str):
    """List courses."""
    userbase_config = _load_config(config, obj.get("debug", False))

    async def run_courses():
        async with open_database(userbase_config) as pool:
            service = build_account_service(userbase_config, pool)
            service.authenticate(token)
            return await service.list_courses()

    items = asyncio.run(run_courses())

    courses_table = Table(title="Courses")
    for heading in ("Id", "Course", "Description", "Created"):
        courses_table.add_column(heading)
    for item in items:
        courses_table.add_row(str(item.id), item.course_name, item.description, item.created_at)
    console.print(courses_table)


def _create_default_config() -> UserbaseConfig:
    """Create a default configuration with placeholders."""
    from .config import AuthConfig, DatabaseConnection

    return UserbaseConfig(
        database=DatabaseConnection(
            host="localhost",
            port=5432,
            database="userbase",
            user="postgres",
            password="${POSTGRES_PASSWORD}",
        ),
        auth=AuthConfig(jwt_key="${USERBASE_JWT_KEY}"),
    )


def _display_config_summary(config: UserbaseConfig):
    """Display a summary of the configuration."""
    console.print("\n[blue]Configuration Summary[/blue]")

    summary = Table(title="Settings")
    summary.add_column("Setting", style="cyan")
    summary.add_column("Value", style="green")

    summary.add_row("Database", config.database.target)
    summary.add_row("JWT key", _describe_jwt_key(config))
    summary.add_row("Token lifetime", f"{config.auth.token_lifetime_hours}h")
    summary.add_row("Create baseline", str(config.schema_management.create_baseline))
    summary.add_row("Reconcile on startup", str(config.schema_management.reconcile_on_startup))
    summary.add_row("Reconcile mode", config.schema_management.mode)
    summary.add_row("Log level", config.logging.level)

    console.print(summary)


def _describe_jwt_key(config: UserbaseConfig) -> str:
    try:
        config.auth.require_key()
    except ConfigurationError as e:
        return f"[red]missing[/red] ({e.message})"
    return "configured"


def _display_reconciliation_result(result: ReconciliationResult):
    """Display changes and column outcomes of a reconciliation pass."""
    colour = {
        ReconciliationStatus.SUCCESS: "green",
        ReconciliationStatus.SKIPPED: "yellow",
        ReconciliationStatus.PARTIAL: "yellow",
        ReconciliationStatus.FAILED: "red",
    }[result.status]
    console.print(
        f"Status: [{colour}]{result.status.value}[/{colour}] "
        f"({result.successful_changes} applied, {result.failed_changes} failed, "
        f"{result.execution_time_ms:.1f}ms)"
    )

    if result.changes_applied:
        changes_table = Table(title="Schema Changes")
        changes_table.add_column("Change", style="cyan")
        changes_table.add_column("SQL", style="magenta")
        changes_table.add_column("Result", style="green")
        for change in result.changes_applied:
            if change.has_error:
                outcome = f"[red]{change.error}[/red]"
            elif change.executed:
                outcome = "applied"
            else:
                outcome = "planned"
            changes_table.add_row(change.description, change.sql, outcome)
        console.print(changes_table)

    if result.skipped_tables:
        console.print(f"Skipped (table absent): {', '.join(result.skipped_tables)}")
    if result.unresolved_columns:
        console.print(
            f"[yellow]Unresolved columns:[/yellow] {', '.join(result.unresolved_columns)}"
        )
    for error in result.errors:
        console.print(f"[red]Error:[/red] {error}")


if __name__ == "__main__":
    main()

from __future__ import annotations

import asyncio
from typing import Optional

import httpx
import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from msdata import __version__
from msdata.cli.client import ApiClient
from msdata.config import get_settings
from msdata.infra.db.session import Database


app = typer.Typer(help="msdata users service")
users_app = typer.Typer(help="Call the users API")
app.add_typer(users_app, name="users")
console = Console()

DEFAULT_BASE_URL = "http://127.0.0.1:8080/api/v1"


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Host interface (default from settings)"),
    port: Optional[int] = typer.Option(None, help="Port to bind (default from settings)"),
    reload: bool = typer.Option(False, help="Enable autoreload (dev only)"),
):
    """Start the API server."""
    settings = get_settings()
    host = host or settings.host
    port = port or settings.port
    console.print(f"[green]Starting {settings.app_name} at http://{host}:{port}[/green]")
    uvicorn.run(
        "msdata.main:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
        limit_concurrency=settings.limit_concurrency,
        timeout_keep_alive=settings.timeout_keep_alive,
    )


@app.command("init-db")
def init_db():
    """Create the users table through the command data source."""
    database = Database.from_settings(get_settings())

    async def _run() -> None:
        try:
            await database.create_schema()
        finally:
            await database.dispose()

    asyncio.run(_run())
    console.print("[green]Schema created[/green]")


@app.command()
def version():
    """Show version."""
    console.print(f"msdata {__version__}")


# ============================================================================
# users
# ============================================================================

def _client(base_url: str, token: Optional[str]) -> ApiClient:
    return ApiClient(base_url, token=token)


def _fail(error: httpx.HTTPError) -> None:
    if isinstance(error, httpx.HTTPStatusError):
        try:
            detail = error.response.json().get("detail")
        except ValueError:
            detail = error.response.text
        console.print(f"[red]{error.response.status_code}: {detail}[/red]")
    else:
        console.print(f"[red]Error: {error}[/red]")
    raise typer.Exit(code=1)


def _users_table(title: str) -> Table:
    table = Table(title=title)
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Email")
    table.add_column("Created")
    return table


TOKEN_OPTION = typer.Option(None, envvar="MSDATA_TOKEN", help="Bearer token")
BASE_URL_OPTION = typer.Option(DEFAULT_BASE_URL, envvar="MSDATA_API_URL", help="API base URL")


@users_app.command("list")
def users_list(
    page: int = typer.Option(1, help="1-based page"),
    size: int = typer.Option(20, help="Page size"),
    token: Optional[str] = TOKEN_OPTION,
    base_url: str = BASE_URL_OPTION,
):
    """List users."""
    try:
        with _client(base_url, token) as client:
            result = client.list_users(page=page, size=size)
    except httpx.HTTPError as e:
        _fail(e)
        return

    table = _users_table(f"Users (page {result.page}/{max(result.pages, 1)}, {result.total} total)")
    for u in result.items:
        table.add_row(str(u.id), u.name, u.email, u.created_at.isoformat())
    console.print(table)


@users_app.command("get")
def users_get(
    user_id: int = typer.Argument(..., help="User ID"),
    token: Optional[str] = TOKEN_OPTION,
    base_url: str = BASE_URL_OPTION,
):
    """Show one user as JSON."""
    try:
        with _client(base_url, token) as client:
            user = client.get_user(user_id)
    except httpx.HTTPError as e:
        _fail(e)
        return
    console.print_json(user.model_dump_json(exclude_none=True))


@users_app.command("count")
def users_count(
    token: Optional[str] = TOKEN_OPTION,
    base_url: str = BASE_URL_OPTION,
):
    """Count users."""
    try:
        with _client(base_url, token) as client:
            count = client.count_users()
    except httpx.HTTPError as e:
        _fail(e)
        return
    console.print(count)


@users_app.command("create")
def users_create(
    name: str = typer.Option(..., help="Display name"),
    email: str = typer.Option(..., help="Unique email"),
    token: Optional[str] = TOKEN_OPTION,
    base_url: str = BASE_URL_OPTION,
):
    """Create a user."""
    try:
        with _client(base_url, token) as client:
            user = client.create_user(name, email)
    except httpx.HTTPError as e:
        _fail(e)
        return
    console.print(f"[green]Created user {user.id} (version {user.version})[/green]")


if __name__ == "__main__":
    app()

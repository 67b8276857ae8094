"""TaskVault CLI — run the server and manage your tasks from a terminal.

Usage:
    taskvault serve                              # Run the API with uvicorn
    taskvault register me@example.com            # Create an account (prompts for password)
    taskvault login me@example.com               # Log in, cache tokens locally
    taskvault whoami                             # Show the logged-in user
    taskvault tasks list --status pending        # List tasks
    taskvault tasks add "Write report" -d "Q3"   # Create a task
    taskvault tasks toggle <id>                  # pending → in_progress → completed
    taskvault logout                             # Forget cached tokens
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from pathlib import Path
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:3000"


def _api_url() -> str:
    return os.environ.get("TASKVAULT_API_URL", DEFAULT_API_URL).rstrip("/")


def _credentials_path() -> Path:
    override = os.environ.get("TASKVAULT_CREDENTIALS")
    if override:
        return Path(override)
    return Path.home() / ".config" / "taskvault" / "credentials.json"


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the TaskVault backend."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _load_credentials() -> dict:
    path = _credentials_path()
    if not path.exists():
        return {}
    try:
        return json.loads(path.read_text())
    except (OSError, json.JSONDecodeError):
        return {}


def _save_credentials(creds: dict) -> None:
    path = _credentials_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(creds, indent=2))
    # Tokens are bearer secrets
    path.chmod(0o600)


def _require_credentials() -> dict:
    creds = _load_credentials()
    if not creds.get("access_token"):
        click.secho("Not logged in. Run: taskvault login <email>", fg="red", err=True)
        sys.exit(1)
    return creds


def _fail(r: httpx.Response) -> None:
    """Print the envelope's message and exit non-zero."""
    try:
        body = r.json()
        message = body.get("message") or r.reason_phrase
        errors = body.get("errors") or []
    except ValueError:
        message, errors = r.reason_phrase, []
    click.secho(f"Error ({r.status_code}): {message}", fg="red", err=True)
    for err in errors:
        click.secho(f"  {err.get('field')}: {err.get('message')}", fg="red", err=True)
    sys.exit(1)


def _status_color(status: str) -> str:
    colors = {
        "pending": "yellow",
        "in_progress": "cyan",
        "completed": "green",
    }
    return colors.get(status, "white")


def _print_task(task: dict) -> None:
    status_str = click.style(task["status"], fg=_status_color(task["status"]))
    click.echo(f"{task['id']}  {status_str}")
    click.secho(f"  {task['title']}", bold=True)
    if task.get("description"):
        click.echo(f"  {task['description']}")
    click.echo(f"  created {task['createdAt']}  updated {task['updatedAt']}")


async def _authed_request(
    c: httpx.AsyncClient, method: str, url: str, **kwargs
) -> httpx.Response:
    """Send a request with the cached access token.

    On a 401, try once to mint a new access token from the cached refresh
    token, then retry. A second 401 is returned to the caller as is.
    """
    creds = _require_credentials()
    headers = {"Authorization": f"Bearer {creds['access_token']}"}
    r = await c.request(method, url, headers=headers, **kwargs)
    if r.status_code != 401 or not creds.get("refresh_token"):
        return r

    rr = await c.post("/api/auth/refresh", json={"refreshToken": creds["refresh_token"]})
    if rr.status_code != 200:
        return r
    creds["access_token"] = rr.json()["data"]["accessToken"]
    _save_credentials(creds)

    headers = {"Authorization": f"Bearer {creds['access_token']}"}
    return await c.request(method, url, headers=headers, **kwargs)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="taskvault")
def main():
    """TaskVault — personal task tracking behind JWT auth."""


# ---------------------------------------------------------------------------
# taskvault serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default: TASKVAULT_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: TASKVAULT_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
@click.option("--create-tables", is_flag=True, help="Create tables before starting (dev only)")
def serve(host: Optional[str], port: Optional[int], reload: bool, create_tables: bool):
    """Run the API server with uvicorn."""
    import uvicorn

    from taskvault.config import settings

    if create_tables:
        _run(_create_tables())
        click.echo("Tables created.")

    uvicorn.run(
        "taskvault.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


async def _create_tables():
    from taskvault.db.engine import engine, init_models

    await init_models()
    # Pooled connections belong to this event loop; uvicorn starts another
    await engine.dispose()


# ---------------------------------------------------------------------------
# Auth commands
# ---------------------------------------------------------------------------


async def _auth_impl(path: str, email: str, password: str, verb: str):
    async with _client() as c:
        r = await c.post(path, json={"email": email, "password": password})
    if r.status_code not in (200, 201):
        _fail(r)
    data = r.json()["data"]
    _save_credentials({
        "email": data["user"]["email"],
        "access_token": data["accessToken"],
        "refresh_token": data["refreshToken"],
    })
    click.secho(f"{verb} as {data['user']['email']}", fg="green")


@main.command()
@click.argument("email")
@click.password_option()
def register(email: str, password: str):
    """Create an account and log in."""
    _run(_auth_impl("/api/auth/register", email, password, "Registered"))


@main.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True)
def login(email: str, password: str):
    """Log in and cache the token pair."""
    _run(_auth_impl("/api/auth/login", email, password, "Logged in"))


@main.command()
def refresh():
    """Mint a new access token from the cached refresh token."""
    _run(_refresh_impl())


async def _refresh_impl():
    creds = _require_credentials()
    async with _client() as c:
        r = await c.post(
            "/api/auth/refresh", json={"refreshToken": creds.get("refresh_token", "")}
        )
    if r.status_code != 200:
        _fail(r)
    creds["access_token"] = r.json()["data"]["accessToken"]
    _save_credentials(creds)
    click.secho("Access token refreshed", fg="green")


@main.command()
def logout():
    """Forget the cached tokens."""
    _run(_logout_impl())


async def _logout_impl():
    async with _client() as c:
        try:
            await c.post("/api/auth/logout")
        except httpx.HTTPError:
            # Server-side logout is a no-op; local cleanup is what matters
            pass
    path = _credentials_path()
    if path.exists():
        path.unlink()
    click.secho("Logged out", fg="green")


@main.command()
def whoami():
    """Show the logged-in user."""
    _run(_whoami_impl())


async def _whoami_impl():
    async with _client() as c:
        r = await _authed_request(c, "GET", "/api/auth/me")
    if r.status_code != 200:
        _fail(r)
    user = r.json()["data"]
    click.echo(f"{user['email']}  ({user['id']})")


# ---------------------------------------------------------------------------
# taskvault tasks ...
# ---------------------------------------------------------------------------


@main.group()
def tasks():
    """Manage your tasks."""


@tasks.command("list")
@click.option("--page", "-p", default=1, type=int)
@click.option("--limit", "-n", default=10, type=int)
@click.option("--status", "-s", type=click.Choice(["pending", "in_progress", "completed"]))
@click.option("--search", "-q", help="Substring of the title")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def list_tasks(page: int, limit: int, status: Optional[str], search: Optional[str], as_json: bool):
    """List tasks, newest first."""
    _run(_list_impl(page, limit, status, search, as_json))


async def _list_impl(page, limit, status, search, as_json):
    params: dict = {"page": page, "limit": limit}
    if status:
        params["status"] = status
    if search:
        params["search"] = search

    async with _client() as c:
        r = await _authed_request(c, "GET", "/api/tasks", params=params)
    if r.status_code != 200:
        _fail(r)
    data = r.json()["data"]
    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    items = data["tasks"]
    if not items:
        click.echo("No tasks.")
        return
    for t in items:
        status_str = click.style(f"{t['status']:12s}", fg=_status_color(t["status"]))
        click.echo(f"{t['id']}  {status_str}  {t['title'][:60]}")
    p = data["pagination"]
    click.echo(f"\nPage {p['page']}/{p['totalPages']}, {p['total']} task(s)")


@tasks.command("show")
@click.argument("task_id")
def show_task(task_id: str):
    """Show one task."""
    _run(_simple_task_impl("GET", task_id))


@tasks.command("add")
@click.argument("title")
@click.option("--description", "-d", default=None)
def add_task(title: str, description: Optional[str]):
    """Create a task."""
    _run(_add_impl(title, description))


async def _add_impl(title, description):
    body: dict = {"title": title}
    if description is not None:
        body["description"] = description
    async with _client() as c:
        r = await _authed_request(c, "POST", "/api/tasks", json=body)
    if r.status_code != 201:
        _fail(r)
    _print_task(r.json()["data"])


@tasks.command("update")
@click.argument("task_id")
@click.option("--title", "-t", default=None)
@click.option("--description", "-d", default=None)
@click.option("--status", "-s", default=None)
def update_task(task_id: str, title: Optional[str], description: Optional[str], status: Optional[str]):
    """Change a task's title, description or status."""
    body = {
        k: v
        for k, v in {"title": title, "description": description, "status": status}.items()
        if v is not None
    }
    if not body:
        click.secho("Nothing to update (use --title, --description or --status)", fg="yellow")
        return
    _run(_simple_task_impl("PATCH", task_id, json=body))


@tasks.command("toggle")
@click.argument("task_id")
def toggle_task(task_id: str):
    """Advance a task: pending → in_progress → completed → pending."""
    _run(_simple_task_impl("PATCH", task_id, suffix="/toggle"))


@tasks.command("delete")
@click.argument("task_id")
@click.confirmation_option(prompt="Delete this task?")
def delete_task(task_id: str):
    """Delete a task."""
    _run(_delete_impl(task_id))


async def _delete_impl(task_id):
    async with _client() as c:
        r = await _authed_request(c, "DELETE", f"/api/tasks/{task_id}")
    if r.status_code != 200:
        _fail(r)
    click.secho("Task deleted", fg="green")


async def _simple_task_impl(method: str, task_id: str, suffix: str = "", **kwargs):
    async with _client() as c:
        r = await _authed_request(c, method, f"/api/tasks/{task_id}{suffix}", **kwargs)
    if r.status_code != 200:
        _fail(r)
    _print_task(r.json()["data"])


if __name__ == "__main__":
    main()

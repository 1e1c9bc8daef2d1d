#!/usr/bin/env python3
"""LabTasker CLI.

Usage:
    labtasker check-deadlines            - Run the deadline notification check now (admin)
    labtasker deadlines [--limit N]      - Show recent deadline notifications (admin)
    labtasker notifications USER_ID      - Show a user's notifications
"""

import os
import sys
from typing import Optional

import click
import httpx
from rich.console import Console
from rich.table import Table

# API base URL
API_BASE = os.getenv("LABTASKER_API_URL", "http://localhost:8000")
ADMIN_TOKEN = os.getenv("LABTASKER_ADMIN_TOKEN", "")

console = Console()


def _handle_api_error(error: Exception, endpoint: str) -> None:
    """Handle API errors with user-friendly messages."""
    if isinstance(error, httpx.ConnectError):
        console.print()
        console.print("[red]⚠️  Cannot connect to LabTasker API[/red]")
        console.print()
        console.print(f"[dim]Tried: {API_BASE}{endpoint}[/dim]")
        console.print()
        console.print("[dim]Possible causes:[/dim]")
        console.print("[dim]  • API server is not running[/dim]")
        console.print("[dim]  • LABTASKER_API_URL environment variable is incorrect[/dim]")
        console.print("[dim]  • Network connectivity issues[/dim]")
    elif isinstance(error, httpx.TimeoutException):
        console.print()
        console.print("[red]⚠️  Request timed out[/red]")
        console.print(
            "[dim]The API is taking too long to respond. Try again later.[/dim]"
        )
    elif isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        console.print()
        if status in (401, 403):
            console.print("[red]⚠️  Not authorized[/red]")
            console.print("[dim]Set LABTASKER_ADMIN_TOKEN to the server's admin token.[/dim]")
        elif status == 404:
            console.print(f"[red]⚠️  Endpoint not found: {endpoint}[/red]")
        elif status == 503:
            console.print("[red]⚠️  Service unavailable[/red]")
            try:
                detail = error.response.json().get("detail")
                if detail:
                    console.print(f"[dim]{detail}[/dim]")
            except ValueError:
                pass
        elif status >= 500:
            console.print("[red]⚠️  Server error - the API is having issues[/red]")
        else:
            console.print(f"[red]⚠️  API Error: HTTP {status}[/red]")
    else:
        console.print()
        console.print(f"[red]⚠️  Unexpected error: {error}[/red]")
    sys.exit(1)


def _headers(admin: bool) -> dict:
    return {"X-Admin-Token": ADMIN_TOKEN} if admin and ADMIN_TOKEN else {}


def api_get(endpoint: str, params: Optional[dict] = None, admin: bool = False) -> dict:
    """Make GET request to API."""
    try:
        response = httpx.get(
            f"{API_BASE}{endpoint}", params=params, headers=_headers(admin), timeout=30
        )
        response.raise_for_status()
        return response.json()
    except Exception as e:
        _handle_api_error(e, endpoint)


def api_post(endpoint: str, data: Optional[dict] = None, admin: bool = False) -> dict:
    """Make POST request to API."""
    try:
        # A full cycle can take a while
        response = httpx.post(
            f"{API_BASE}{endpoint}", json=data or {}, headers=_headers(admin), timeout=300
        )
        response.raise_for_status()
        return response.json()
    except Exception as e:
        _handle_api_error(e, endpoint)


def notifications_table(notifications: list[dict], show_recipient: bool = False) -> Table:
    """Format notifications as a rich Table."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("When", style="dim", width=19)
    if show_recipient:
        table.add_column("Recipient", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Message")
    table.add_column("Offset", justify="right")

    for n in notifications:
        created = (n.get("created_at") or "")[:19].replace("T", " ")
        offset = n.get("offset_days")
        row = [created]
        if show_recipient:
            row.append(n.get("recipient_id", "?"))
        row.extend(
            [
                n.get("title", ""),
                n.get("message", ""),
                f"{offset}d" if offset is not None else "-",
            ]
        )
        table.add_row(*row)
    return table


@click.group()
def cli():
    """LabTasker - laboratory operations command line."""
    pass


@cli.command("check-deadlines")
def check_deadlines():
    """Run the deadline notification check now."""
    console.print()

    with console.status("[bold blue]Running deadline check...", spinner="dots"):
        data = api_post("/admin/deadline-check", admin=True)

    if not data.get("success"):
        console.print(f"[red]✗ {data.get('message', 'Deadline check failed')}[/red]")
        console.print("[dim]Check the API logs for details.[/dim]")
        sys.exit(1)

    report = data.get("report") or {}
    console.print(f"[green]✓[/green] {data.get('message', 'Deadline check completed')}")
    console.print()
    console.print(f"  Matched entities:        {report.get('entities_matched', 0)}")
    console.print(f"  Notifications created:   {report.get('notifications_created', 0)}")
    console.print(f"  Already notified:        {report.get('notifications_existing', 0)}")
    console.print(f"  Emails sent:             {report.get('emails_sent', 0)}")

    problems = [
        ("failed scans", report.get("pairs_failed", 0)),
        ("failed entities", report.get("entities_failed", 0)),
        ("store failures", report.get("store_failures", 0)),
        ("email failures", report.get("email_failures", 0)),
    ]
    problems = [(label, count) for label, count in problems if count]
    if problems or report.get("timed_out"):
        console.print()
        console.print("[bold yellow]⚠️  Some units had issues:[/bold yellow]")
        for label, count in problems:
            console.print(f"[yellow]  • {count} {label}[/yellow]")
        if report.get("timed_out"):
            console.print("[yellow]  • cycle timed out before finishing[/yellow]")
    console.print()


@cli.command()
@click.option("--limit", "-l", default=10, help="Max notifications to show")
def deadlines(limit: int):
    """Show the most recent deadline notifications."""
    with console.status("[bold blue]Loading deadline notifications...", spinner="dots"):
        data = api_get("/notifications/deadlines", params={"limit": limit}, admin=True)

    notifications = data.get("notifications", [])
    console.print()
    if not notifications:
        console.print("[dim]No deadline notifications yet.[/dim]")
    else:
        console.print(notifications_table(notifications, show_recipient=True))
    console.print()
    console.print(f"[dim]Total deadline notifications: {data.get('total', 0)}[/dim]")
    console.print()


@cli.command()
@click.argument("user_id")
@click.option("--unread", is_flag=True, help="Only unread notifications")
@click.option("--limit", "-l", default=20, help="Max notifications to show")
def notifications(user_id: str, unread: bool, limit: int):
    """Show notifications for a user."""
    with console.status("[bold blue]Loading notifications...", spinner="dots"):
        data = api_get(
            "/notifications",
            params={"recipient_id": user_id, "unread_only": unread, "limit": limit},
        )

    console.print()
    if not data:
        console.print(f"[dim]No notifications for {user_id}.[/dim]")
    else:
        console.print(notifications_table(data))
    console.print()


if __name__ == "__main__":
    cli()

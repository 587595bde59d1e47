"""
PredictX client - command line front-end.

Signs in against the PredictX backend and keeps the session in a file
under the user's home directory, so later commands reuse it.
"""

import argparse
import asyncio
import getpass
import logging
import sys

from rich.console import Console
from rich.table import Table

from modules.auth import AuthClient, get_auth_client
from shared.config import get_settings
from shared.exceptions import PredictXError

console = Console()


def print_user(client: AuthClient) -> None:
    session = client.get_session()
    if session.user is None:
        console.print("[yellow]Not signed in[/yellow]")
        return

    user = session.user
    table = Table(show_header=False, box=None)
    table.add_row("[bold]ID[/bold]", user.id or "-")
    table.add_row("[bold]Name[/bold]", user.full_name or user.name or "-")
    table.add_row("[bold]Email[/bold]", user.email or "-")
    table.add_row("[bold]Roles[/bold]", ", ".join(user.roles))
    table.add_row("[bold]Balance[/bold]", f"{user.balance:.2f}")
    console.print(table)


async def run_command(args: argparse.Namespace, client: AuthClient) -> None:
    """Dispatch one sub-command."""
    if args.command == "login":
        password = getpass.getpass("Password: ")
        await client.login(args.email, password)
        console.print("[green]Signed in[/green]")
        print_user(client)

    elif args.command == "logout":
        await client.logout()
        console.print("[green]Signed out[/green]")

    elif args.command == "whoami":
        if client.get_session().is_authenticated:
            await client.get_profile()
        print_user(client)

    elif args.command == "refresh":
        await client.refresh()
        console.print("[green]Access token refreshed[/green]")

    elif args.command == "sessions":
        sessions = await client.get_user_sessions()
        table = Table(title="Active sessions")
        table.add_column("ID")
        table.add_column("Device")
        table.add_column("Last seen")
        for item in sessions if isinstance(sessions, list) else []:
            table.add_row(
                str(item.get("id", "")),
                str(item.get("userAgent") or item.get("device") or ""),
                str(item.get("lastSeenAt") or item.get("createdAt") or ""),
            )
        console.print(table)


async def main(args: argparse.Namespace) -> int:
    client = get_auth_client()
    try:
        await run_command(args, client)
    except PredictXError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        return 1
    finally:
        await client.aclose()
    return 0


def cli() -> None:
    """Console script entry point."""
    parser = argparse.ArgumentParser(description="PredictX session and account client")
    subparsers = parser.add_subparsers(dest="command", required=True)

    login_parser = subparsers.add_parser("login", help="Sign in with email and password")
    login_parser.add_argument("email", help="Account email")
    subparsers.add_parser("logout", help="Sign out and clear the stored session")
    subparsers.add_parser("whoami", help="Show the signed-in user")
    subparsers.add_parser("refresh", help="Refresh the access token")
    subparsers.add_parser("sessions", help="List active sessions")

    args = parser.parse_args()

    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.exit(asyncio.run(main(args)))


if __name__ == "__main__":
    cli()

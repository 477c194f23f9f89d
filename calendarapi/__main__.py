"""Command-line entry for calendarapi.

``serve`` runs the server; ``get``, ``set`` and ``clear`` talk to a running
server over its REST API.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import NoReturn, Optional

import yaml

from calendarapi import __version__, run_server
from calendarapi.api.client import DEFAULT_SERVER_URL, ApiClientError, CalendarApiClient
from calendarapi.calendar.models import ALL_CALENDARS, CustomStatus
from calendarapi.cli_output import format_event, format_snapshot, format_status
from calendarapi.core.timezone_utils import now_local

DEFAULT_ICON = "warning_icon"
DEFAULT_ICON_SIZE = 196


def _add_server_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--server",
        default=DEFAULT_SERVER_URL,
        metavar="URL",
        help=f"Base URL of the calendarapi server (default: {DEFAULT_SERVER_URL})",
    )


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the calendarapi CLI."""
    parser = argparse.ArgumentParser(
        prog="calendarapi",
        description="Calendar API - aggregate calendar feeds into today's events",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  calendarapi serve --config config.yaml     # Run the server
  calendarapi get calendar work -o json      # Today's events of calendar 'work'
  calendarapi set status "In a meeting" --calendar room-a
  calendarapi clear calendar                 # Force the server to refetch all feeds
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    commands = parser.add_subparsers(dest="command")

    serve = commands.add_parser("serve", help="Run the REST server")
    serve.add_argument("-c", "--config", metavar="PATH", help="Path to the config file")
    serve.add_argument("-s", "--host", help="Bind address (overrides server.host)")
    serve.add_argument("--port", type=int, help="HTTP port (overrides server.httpPort)")
    serve.add_argument("-d", "--debug", action="store_true", help="Enable debug logging")

    get = commands.add_parser("get", help="Read calendars or custom status").add_subparsers(
        dest="resource", required=True
    )
    get_calendar = get.add_parser("calendar", help="Show today's events")
    get_calendar.add_argument("calendar", nargs="?", default=ALL_CALENDARS)
    get_calendar.add_argument("-o", "--out", choices=("text", "json", "yaml"), default="text")
    get_current = get.add_parser("current", help="Show the event happening now")
    get_current.add_argument("calendar", nargs="?", default=ALL_CALENDARS)
    get_current.add_argument("-o", "--out", choices=("text", "json", "yaml"), default="text")
    get_status = get.add_parser("status", help="Show a calendar's custom status")
    get_status.add_argument("-q", "--calendar", required=True)

    set_ = commands.add_parser("set", help="Set a custom status").add_subparsers(
        dest="resource", required=True
    )
    set_status = set_.add_parser("status", help="Set a calendar's custom status")
    set_status.add_argument("title")
    set_status.add_argument("-t", "--description", default="")
    set_status.add_argument("-i", "--icon", default=DEFAULT_ICON)
    set_status.add_argument("--icon-size", type=int, default=DEFAULT_ICON_SIZE)
    set_status.add_argument("-q", "--calendar", required=True)

    clear = commands.add_parser("clear", help="Clear custom status or the calendar cache").add_subparsers(
        dest="resource", required=True
    )
    clear_status = clear.add_parser("status", help="Clear a calendar's custom status")
    clear_status.add_argument("-q", "--calendar", required=True)
    clear_calendar = clear.add_parser("calendar", help="Force the server to refetch every calendar")

    for sub in (get_calendar, get_current, get_status, set_status, clear_status, clear_calendar):
        _add_server_option(sub)

    return parser


def _dump(data: object, out: str) -> str:
    if out == "yaml":
        return yaml.safe_dump(data, sort_keys=False).rstrip()
    return json.dumps(data)


async def _run_client_command(args: argparse.Namespace) -> str:
    now = now_local()
    color = sys.stdout.isatty()

    async with CalendarApiClient(args.server) as client:
        if args.command == "get" and args.resource == "calendar":
            snapshot = await client.get_calendar(args.calendar)
            if args.out == "text":
                return format_snapshot(snapshot, now, color=color)
            return _dump(snapshot.model_dump(mode="json"), args.out)

        if args.command == "get" and args.resource == "current":
            event = await client.get_current_event(args.calendar)
            if args.out != "text":
                return _dump(event.model_dump(mode="json") if event else {}, args.out)
            if event is None:
                return f"No event in progress for {args.calendar}"
            return format_event(event, 1, now, show_calendar=True, color=color)

        if args.command == "get" and args.resource == "status":
            return format_status(args.calendar, await client.get_status(args.calendar))

        if args.command == "set" and args.resource == "status":
            status = CustomStatus(
                title=args.title,
                description=args.description,
                icon=args.icon,
                icon_size=args.icon_size,
            )
            return format_status(args.calendar, await client.set_status(args.calendar, status))

        if args.command == "clear" and args.resource == "status":
            await client.clear_status(args.calendar)
            return f"Cleared custom status for {args.calendar}"

        if args.command == "clear" and args.resource == "calendar":
            await client.refresh()
            return "Cleared calendar cache"

    raise ValueError(f"unknown command {args.command} {getattr(args, 'resource', '')}")


def main(argv: Optional[list[str]] = None) -> NoReturn:
    """Run the calendarapi CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    if args.command in (None, "serve"):
        run_server(
            config_path=getattr(args, "config", None),
            host=getattr(args, "host", None),
            port=getattr(args, "port", None),
            debug=getattr(args, "debug", False),
        )
        sys.exit(0)

    try:
        output = asyncio.run(_run_client_command(args))
    except ApiClientError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    print(output)
    sys.exit(0)


if __name__ == "__main__":
    main()

"""portalchat entry point.

Commands:
  portalchat serve       Start the API server
  portalchat sessions    Print stored chat sessions, newest first
  portalchat clear       Delete all stored chat history
"""

import argparse
import logging
import sys
from datetime import datetime

from portalchat.config import get_settings
from portalchat.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _cmd_serve(args: argparse.Namespace) -> int:
    from portalchat.api.serve import run_api_server

    settings = get_settings()
    run_api_server(
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        dev=args.dev,
    )
    return 0


def _cmd_sessions(args: argparse.Namespace) -> int:
    from portalchat.chat.manager import ChatSessionManager

    manager = ChatSessionManager.from_settings(get_settings())
    count = 0
    for summary in manager.list_sessions():
        when = datetime.fromtimestamp(summary.last_modified).strftime("%Y-%m-%d %H:%M")
        print(f"{summary.id}  {when}  ({summary.message_count} msgs)  {summary.title}")
        count += 1
        if args.limit and count >= args.limit:
            break
    if count == 0:
        print("No chat sessions stored.")
    return 0


def _cmd_clear(args: argparse.Namespace) -> int:
    from portalchat.chat.manager import ChatSessionManager

    if not args.yes:
        answer = input("Delete all chat history? [y/N] ").strip().lower()
        if answer not in ("y", "yes"):
            print("Aborted.")
            return 1
    manager = ChatSessionManager.from_settings(get_settings())
    manager.clear_history()
    print("Chat history cleared.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="portalchat",
        description="Local-first chat sessions for the university student portal",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Start the API server")
    serve.add_argument("--host", default=None, help="Bind address (default from settings)")
    serve.add_argument("--port", type=int, default=None, help="Port (default from settings)")
    serve.add_argument("--dev", action="store_true", help="Auto-reload on code changes")
    serve.set_defaults(func=_cmd_serve)

    sessions = sub.add_parser("sessions", help="List stored chat sessions")
    sessions.add_argument("--limit", type=int, default=0, help="Show at most N sessions")
    sessions.set_defaults(func=_cmd_sessions)

    clear = sub.add_parser("clear", help="Delete all chat history")
    clear.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    clear.set_defaults(func=_cmd_clear)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(level=get_settings().log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

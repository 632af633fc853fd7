"""k4 command-line interface.

Usage::

    k4 init my-monorepo
    k4 app jobs --node
    k4 app site --next
    k4 app dashboard          # asks which kind of app to create
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from rich.prompt import Prompt

from k4 import __version__
from k4.config import Config
from k4.errors import ExternalCommandFailed, K4Error
from k4.scaffolder.topology import APP_KINDS
from k4.scaffolder.workspace import add_app, init_workspace
from k4.utils import console, print_error

APP_KIND_LABELS = {"next": "Next.js", "node": "Node.js"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="k4",
        description="CLI to bootstrap and manage pnpm/turborepo monorepos",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  k4 init my-monorepo\n"
            "  k4 app jobs --node\n"
            "  k4 app site --next\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", metavar="<command>")
    subparsers.required = True

    init_parser = subparsers.add_parser("init", help="Initialize a new monorepo")
    init_parser.add_argument("name", help="Name of the monorepo directory to create")

    app_parser = subparsers.add_parser("app", help="Initialize a new app in the monorepo")
    app_parser.add_argument("name", help="Name of the app (creates apps/<name>)")
    kind = app_parser.add_mutually_exclusive_group()
    kind.add_argument(
        "--next", dest="kind", action="store_const", const="next", help="Create a Next.js app"
    )
    kind.add_argument(
        "--node", dest="kind", action="store_const", const="node", help="Create a Node.js app"
    )
    return parser


def ask_app_kind() -> str:
    """Block until the user picks one app kind; there is no default."""
    for key in APP_KINDS:
        console.print(f"  [bold]{key}[/bold]  {APP_KIND_LABELS[key]}")
    return Prompt.ask(
        "What type of app do you want to create?",
        choices=list(APP_KINDS),
        console=console,
    )


async def _dispatch(args: argparse.Namespace, config: Config, cwd: Path) -> None:
    if args.command == "init":
        await init_workspace(args.name, cwd, config)
    elif args.command == "app":
        await add_app(args.name, args.kind, cwd, config)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``k4``; returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = Config.from_env()
        # Must stay outside asyncio.run so Ctrl-C interrupts the prompt.
        if args.command == "app" and args.kind is None:
            args.kind = ask_app_kind()
        asyncio.run(_dispatch(args, config, Path.cwd()))
    except ExternalCommandFailed as exc:
        print_error(str(exc))
        return exc.exit_code
    except K4Error as exc:
        print_error(f"Error: {exc}")
        return exc.exit_code
    except ValueError as exc:
        print_error(f"Error: {exc}")
        return 1
    except EOFError:
        print_error("No app kind given and no input to ask for one; pass --next or --node.")
        return 1
    except KeyboardInterrupt:
        print_error("Aborted.")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Command-line entry point for ftcli.

Usage:
    ftcli user show spoody
    ftcli user image spoody ./profile_photo.png
    ftcli points add spoody 5 --reason "Helped at the exam"
    ftcli projects path libft --user spoody
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

from loguru import logger
from pydantic import BaseModel

from . import __version__
from .auth import open_api
from .client import FtAPI
from .config import Settings
from .errors import (
    ConfigurationError,
    EncodingError,
    FtAPIError,
    NotFoundError,
    RateLimitedError,
)
from .models import Close, User, UserPatch

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_NOT_FOUND = 3
EXIT_RATE_LIMITED = 4
EXIT_ENCODING = 5
EXIT_CONFIG = 6

Command = Callable[[FtAPI, argparse.Namespace], Awaitable[int]]


def _default_user() -> str:
    return os.environ.get("USER", "")


def _print_model(model: BaseModel) -> None:
    print(model.model_dump_json(indent=2, by_alias=True, exclude_none=True))


async def _user_show(api: FtAPI, args: argparse.Namespace) -> int:
    user = await api.get_user_by_login(args.login)
    if args.primary_campus:
        campus = user.primary_campus()
        if campus is None:
            print(f"{args.login} has no primary campus", file=sys.stderr)
            return EXIT_NOT_FOUND
        _print_model(campus)
        return EXIT_OK
    _print_model(user)
    return EXIT_OK


async def _user_create(api: FtAPI, args: argparse.Namespace) -> int:
    user = User(
        login=args.login,
        email=args.email,
        first_name=args.first_name,
        last_name=args.last_name,
        kind=args.kind,
    )
    await api.create_user(user, args.campus_id)
    _print_model(user)
    return EXIT_OK


async def _user_update(api: FtAPI, args: argparse.Namespace) -> int:
    updates = {
        name: getattr(args, name)
        for name in UserPatch.model_fields
        if getattr(args, name, None) is not None
    }
    if not updates:
        print("nothing to update", file=sys.stderr)
        return EXIT_USAGE
    await api.update_user(args.login, UserPatch(**updates))
    return EXIT_OK


async def _user_image(api: FtAPI, args: argparse.Namespace) -> int:
    try:
        stream = args.image.open("rb")
    except OSError as exc:
        raise EncodingError(f"cannot open {args.image}: {exc}") from exc
    await api.set_user_image(args.login, stream)
    return EXIT_OK


async def _user_close(api: FtAPI, args: argparse.Namespace) -> int:
    close = Close(
        kind=args.kind,
        reason=args.reason,
        user=User(login=args.login),
        closer=User(id=args.closer_id),
    )
    await api.create_close(close)
    _print_model(close)
    return EXIT_OK


async def _points_add(api: FtAPI, args: argparse.Namespace) -> int:
    await api.add_correction_points(args.login, args.amount, args.reason)
    return EXIT_OK


async def _points_remove(api: FtAPI, args: argparse.Namespace) -> int:
    await api.remove_correction_points(args.login, args.amount, args.reason)
    return EXIT_OK


async def _projects_show(api: FtAPI, args: argparse.Namespace) -> int:
    _print_model(await api.get_project_by_name(args.slug))
    return EXIT_OK


async def _projects_list(api: FtAPI, args: argparse.Namespace) -> int:
    filters = {"status": args.status} if args.status else None
    async for entry in api.iter_user_projects(args.user, filters=filters):
        print(f"{entry.project.slug}\t{entry.status or '-'}\t{entry.final_mark}")
    return EXIT_OK


async def _projects_path(api: FtAPI, args: argparse.Namespace) -> int:
    entry = await api.find_user_project(args.user, args.slug)
    if entry is None:
        print(f"{args.slug} is not in the projects of {args.user}", file=sys.stderr)
        return EXIT_NOT_FOUND
    team = entry.current_team()
    if team is None:
        print(f"Team of {args.slug} is not locked.", file=sys.stderr)
        return EXIT_NOT_FOUND
    if not team.repo_url:
        print(f"repository not found: {args.slug}", file=sys.stderr)
        return EXIT_NOT_FOUND
    print(team.repo_url)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ftcli", description="CLI tool to interact with 42's API")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config", type=Path, help="config file (default ~/.config/ftcli/config.yml)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    groups = parser.add_subparsers(dest="group", required=True)

    user = groups.add_parser("user", help="Manage users").add_subparsers(
        dest="command", required=True
    )

    show = user.add_parser("show", help="Show a user profile")
    show.add_argument("login")
    show.add_argument("--primary-campus", action="store_true", help="only print the primary campus")
    show.set_defaults(handler=_user_show)

    create = user.add_parser("create", help="Create a user")
    create.add_argument("login")
    create.add_argument("--email", required=True)
    create.add_argument("--first-name", required=True)
    create.add_argument("--last-name", required=True)
    create.add_argument("--kind", default="student")
    create.add_argument("--campus-id", type=int, required=True)
    create.set_defaults(handler=_user_create)

    update = user.add_parser("update", help="Update fields of a user")
    update.add_argument("login")
    for name in UserPatch.model_fields:
        update.add_argument(f"--{name.replace('_', '-')}", dest=name)
    update.set_defaults(handler=_user_update)

    image = user.add_parser("image", help="Set the profile image of a user")
    image.add_argument("login")
    image.add_argument("image", type=Path)
    image.set_defaults(handler=_user_image)

    close = user.add_parser("close", help="Close a user account")
    close.add_argument("login")
    close.add_argument("--closer-id", type=int, required=True)
    close.add_argument("--kind", default="other")
    close.add_argument("--reason", required=True)
    close.set_defaults(handler=_user_close)

    points = groups.add_parser("points", help="Manage correction points").add_subparsers(
        dest="command", required=True
    )
    for name, handler in (("add", _points_add), ("remove", _points_remove)):
        sub = points.add_parser(name, help=f"{name.capitalize()} correction points")
        sub.add_argument("login")
        sub.add_argument("amount", type=int)
        sub.add_argument("--reason", required=True)
        sub.set_defaults(handler=handler)

    projects = groups.add_parser("projects", help="Browse projects").add_subparsers(
        dest="command", required=True
    )

    project_show = projects.add_parser("show", help="Show a project")
    project_show.add_argument("slug")
    project_show.set_defaults(handler=_projects_show)

    project_list = projects.add_parser("list", help="List the projects of a user")
    project_list.add_argument("-u", "--user", default=_default_user())
    project_list.add_argument("--status", help="e.g. in_progress, finished")
    project_list.set_defaults(handler=_projects_list)

    project_path = projects.add_parser("path", help="Show project repository path")
    project_path.add_argument("slug")
    project_path.add_argument("-u", "--user", default=_default_user())
    project_path.set_defaults(handler=_projects_path)

    return parser


def configure_logging(verbose: bool) -> None:
    logger.remove()
    level = "DEBUG" if verbose else "WARNING"
    logger.add(sys.stderr, level=level, format="<level>{message}</level>")


async def run_command(settings: Settings, handler: Command, args: argparse.Namespace) -> int:
    async with open_api(settings) as api:
        return await handler(api, args)


def exit_code_for(error: Exception) -> int:
    """Map a client error to the process exit code."""
    if isinstance(error, ConfigurationError):
        return EXIT_CONFIG
    if isinstance(error, RateLimitedError):
        return EXIT_RATE_LIMITED
    if isinstance(error, NotFoundError):
        return EXIT_NOT_FOUND
    if isinstance(error, EncodingError):
        return EXIT_ENCODING
    return EXIT_FAILURE


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.verbose)

    try:
        settings = Settings.from_file(args.config)
        return asyncio.run(run_command(settings, args.handler, args))
    except (ConfigurationError, FtAPIError) as error:
        print(f"{args.group} {args.command}: {error}", file=sys.stderr)
        return exit_code_for(error)


if __name__ == "__main__":
    raise SystemExit(main())

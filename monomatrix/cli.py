"""CLI entrypoint for monomatrix."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import Any, Dict, Mapping, NoReturn

from .config import ConfigError, find_config_file, load_config
from .events import load_event
from .logging import configure_logging, get_logger, in_github_actions
from .orchestrator import Orchestrator
from .output import build_outputs, format_failure, write_outputs


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="monomatrix",
        description="List the monorepo packages changed by a push or pull request.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=None,
        help="Increase log verbosity for troubleshooting.",
    )
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file.")
    parser.add_argument(
        "--path",
        dest="root",
        help="Root directory containing the packages (defaults to '/').",
    )
    parser.add_argument("--include", help="Glob of files to consider (use '*' for all).")
    parser.add_argument("--exclude", help="Glob of files to ignore.")
    parser.add_argument(
        "--max-changed",
        dest="max_changed",
        help="Fail when more packages than this changed.",
    )
    parser.add_argument("--token", help="Token for the GitHub API (prefer INPUT_TOKEN).")
    parser.add_argument(
        "--provider",
        choices=("github", "git"),
        help="Where to compare commits: the GitHub API or a local git clone.",
    )
    parser.add_argument("--repository", help="Repository as 'owner/repo'.")
    parser.add_argument("--api-url", dest="api_url", help="GitHub API base URL.")
    parser.add_argument(
        "--repo-path", dest="repo_path", type=Path, help="Local clone for --provider git."
    )
    parser.add_argument("--event-name", dest="event_name", help="Triggering event, e.g. push.")
    parser.add_argument("--event-path", dest="event_path", type=Path, help="Event payload JSON file.")
    parser.add_argument("--output", dest="output_path", type=Path, help="File to append outputs to.")
    parser.add_argument(
        "--config",
        type=Path,
        help="YAML file with default options (defaults to ./.monomatrix.yml when present).",
    )
    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    keys = (
        "root",
        "include",
        "exclude",
        "max_changed",
        "token",
        "provider",
        "repository",
        "api_url",
        "repo_path",
        "event_name",
        "event_path",
        "output_path",
        "verbose",
    )
    return {key: getattr(args, key) for key in keys if getattr(args, key, None) is not None}


def main(argv: list[str] | None = None, environ: Mapping[str, str] | None = None) -> None:
    """CLI entrypoint for monomatrix."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    environ = os.environ if environ is None else environ

    github_actions = in_github_actions(environ)

    config_file = args.config or find_config_file(Path.cwd())
    try:
        config = load_config(environ, _overrides(args), config_file)
    except ConfigError as exc:
        configure_logging(
            verbose=bool(args.verbose), github_actions=github_actions, log_file=args.log_file
        )
        _fail(parser, str(exc))

    configure_logging(
        verbose=config.verbose, github_actions=github_actions, log_file=args.log_file
    )
    logger = get_logger("cli")
    logger.debug("Loaded %r", config)

    try:
        event = load_event(config.event_name, config.event_path)
        outcome = asyncio.run(Orchestrator().run(config, event))
    except RuntimeError as exc:
        _fail(parser, str(exc))

    write_outputs(build_outputs(outcome.packages), config.output_path)


def _fail(parser: argparse.ArgumentParser, message: str) -> NoReturn:
    print(format_failure(message), flush=True)
    parser.exit(1, f"monomatrix failed: {message}\nRun with --verbose for more details.\n")


if __name__ == "__main__":
    main(sys.argv[1:])

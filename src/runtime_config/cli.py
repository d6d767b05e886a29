"""
Command line interface for runtime-config.

    runtime-config show  --file base.yml --file local.yml [--key port] [--json]
    runtime-config watch --file base.yml [--run-seconds 30]
    runtime-config get   port [--runtime-file /tmp/runtime.yml]
"""

import argparse
import asyncio
import json
import sys
from typing import Any, List, Optional

import yaml
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

from . import __version__
from .configuration.builder import ConfigurationBuilder
from .configuration.core import RuntimeConfiguration
from .configuration.loader import ConfigurationLoader
from .configuration.models import LoaderSettings, LoggingConfiguration
from .exceptions import RuntimeConfigError
from .observability.factory import configure_logging

console = Console()
err_console = Console(stderr=True)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="runtime-config", description="Inspect layered runtime configuration")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--env-file", default=None, help="Load RUNTIME_CONFIG_* settings from this .env file")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log to stderr at this level (default: no logging)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    def add_loader_arguments(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "--file", "-f",
            dest="files",
            action="append",
            default=[],
            help="YAML file to merge; repeat to add more, later files win",
        )
        sub.add_argument("--defaults", default=None, help="YAML file used as the defaults layer")
        sub.add_argument("--no-snapshot", action="store_true", help="Do not write the runtime snapshot file")
        sub.add_argument("--timeout", type=float, default=10.0, help="Seconds to wait for the initial load")

    show_parser = subparsers.add_parser("show", help="Print the merged configuration")
    add_loader_arguments(show_parser)
    show_parser.add_argument("--key", default=None, help="Dotted path of a single value to print")
    show_parser.add_argument("--json", action="store_true", help="Print JSON instead of YAML")

    watch_parser = subparsers.add_parser("watch", help="Print every newly published configuration")
    add_loader_arguments(watch_parser)
    watch_parser.add_argument(
        "--run-seconds",
        type=float,
        default=None,
        help="Stop after N seconds (default: run until interrupted)",
    )

    get_parser = subparsers.add_parser("get", help="Read a value from a published runtime file")
    get_parser.add_argument("key", help="Dotted path of the value")
    get_parser.add_argument("--runtime-file", default=None, help="Snapshot path (default: $RUNTIME_CONFIG_PATH)")

    return parser


def _render(data: Any, as_json: bool = False) -> None:
    if as_json:
        console.print_json(json.dumps(data, default=str))
    elif isinstance(data, (dict, list)):
        text = yaml.safe_dump(data, default_flow_style=False, sort_keys=True)
        console.print(Syntax(text, "yaml", theme="ansi_dark", background_color="default"))
    else:
        console.print(repr(data) if data is None else str(data))


def _read_defaults(path: Optional[str]) -> dict:
    if not path:
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _build_loader(args: argparse.Namespace) -> ConfigurationLoader:
    settings = LoaderSettings.from_environment(env_file=args.env_file)
    if args.no_snapshot:
        settings = settings.model_copy(update={"write_snapshot": False})
    return (
        ConfigurationBuilder()
        .add_yaml_sources(*args.files)
        .add_defaults(_read_defaults(args.defaults))
        .with_settings(settings)
        .build()
    )


async def _show(args: argparse.Namespace) -> int:
    loader = _build_loader(args)
    try:
        await loader.start()
        try:
            await loader.wait_until_ready(timeout=args.timeout)
        except asyncio.TimeoutError:
            err_console.print(f"[yellow]Remote store not ready after {args.timeout}s; showing local layers[/yellow]")

        if args.key:
            value = loader.get(args.key)
            if value is None:
                err_console.print(f"[red]Key not found:[/red] {args.key}")
                return 1
            _render(value, args.json)
        else:
            _render(loader.get_all(), args.json)
        if loader.runtime_file is not None:
            err_console.print(f"[dim]runtime file: {loader.runtime_file}[/dim]")
        return 0
    finally:
        await loader.close()


async def _watch(args: argparse.Namespace) -> int:
    loader = _build_loader(args)

    def on_change() -> None:
        console.print(Panel(f"configuration version {loader.version}", expand=False))
        _render(loader.get_all())

    loader.add_change_callback(on_change)
    try:
        await loader.start()
        if args.run_seconds is not None:
            await asyncio.sleep(args.run_seconds)
        else:
            while True:
                await asyncio.sleep(3600)
    finally:
        await loader.close()
    return 0


def _get(args: argparse.Namespace) -> int:
    config = RuntimeConfiguration(args.runtime_file, enable_hot_reload=False)
    value = config.get(args.key)
    if value is None:
        err_console.print(f"[red]Key not found:[/red] {args.key}")
        return 1
    _render(value)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        configure_logging(LoggingConfiguration(level=args.log_level, output="console"))

    try:
        if args.command == "show":
            return asyncio.run(_show(args))
        if args.command == "watch":
            return asyncio.run(_watch(args))
        return _get(args)
    except KeyboardInterrupt:
        return 130
    except RuntimeConfigError as e:
        err_console.print(f"[red]{type(e).__name__}:[/red] {e.message}")
        for line in e.details.get("validation_errors", []):
            err_console.print(f"  {line}")
        return 2


if __name__ == "__main__":
    sys.exit(main())

# luaubuild/orchestrator/__main__.py
from __future__ import annotations

import argparse
import sys
from typing import Dict, List, Optional, Sequence

import structlog

from luaubuild.core.domain.exceptions import ConfigurationError, GraphConstructionError
from luaubuild.core.domain.models import OptimizeMode
from luaubuild.shared.config import Settings, get_settings
from luaubuild.shared.logging_config import configure_logging
from luaubuild.shared.telemetry import setup_telemetry, shutdown_telemetry

from .build import build_luau_project, configure, create_build

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_BUILD_FAILED = 1
EXIT_CONFIG_ERROR = 2


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="luaubuild",
        description="Build the Luau VM as a native static library or a wasm32-emscripten side module.",
    )
    p.add_argument("steps", nargs="*", help="Entry points to build (install, test, luau.wasm). None lists them.")
    p.add_argument(
        "--target",
        default=None,
        help="'native' or <arch>-<os>[-<abi>]. wasm32-emscripten selects the WebAssembly path.",
    )
    p.add_argument(
        "-O",
        "--optimize",
        choices=[m.value for m in OptimizeMode],
        default=None,
        help="Optimization mode (default Debug).",
    )
    p.add_argument(
        "-D",
        dest="options",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Build option, e.g. -Dluau_use_4_vector=true.",
    )
    p.add_argument("--prefix", default=None, help="Install prefix.")
    p.add_argument("--cache-dir", default=None, help="Directory for objects, generated files and step logs.")
    p.add_argument("--max-workers", type=int, default=None, help="Thread pool size for step execution.")
    p.add_argument("--clean", action="store_true", help="Remove the cache directory before building.")
    p.add_argument("--list-steps", action="store_true", help="List entry points and options, build nothing.")
    p.add_argument("--verbose", action="store_true", help="Verbose logging.")
    return p.parse_args(argv)


def parse_options(items: List[str]) -> Dict[str, str]:
    options: Dict[str, str] = {}
    for item in items:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise ConfigurationError(f"option '{item}' is not of the form NAME=VALUE")
        options[name] = value
    return options


def _list_steps(args: argparse.Namespace, options: Dict[str, str], settings: Settings) -> None:
    b = create_build(settings, target=args.target, optimize=args.optimize, options=options,
                     prefix=args.prefix, cache_dir=args.cache_dir)
    configure(b, settings)

    print("Entry points:")
    for s in b.describe_steps():
        print(f"  {s['name']:<12} {s['description']}")
    print("Options:")
    for name, description in b.declared_options.items():
        print(f"  -D{name}=[true|false]  {description}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)

    # CLI owns logging configuration; library modules just use structlog.get_logger().
    try:
        settings = get_settings()
    except ConfigurationError as e:
        # Logging is not configured yet; its own settings are the ones that failed.
        print(f"luaubuild: {e.message}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    configure_logging(settings, verbose=args.verbose)
    setup_telemetry(settings)

    try:
        options = parse_options(args.options)
        if args.list_steps or not args.steps:
            _list_steps(args, options, settings)
            return EXIT_OK

        summary = build_luau_project(
            args.steps,
            target=args.target,
            optimize=args.optimize,
            options=options,
            prefix=args.prefix,
            cache_dir=args.cache_dir,
            clean=args.clean,
            max_workers=args.max_workers,
            settings=settings,
        )
    except ConfigurationError as e:
        logger.error("configuration_error", error=e.message)
        return EXIT_CONFIG_ERROR
    except GraphConstructionError as e:
        logger.error("graph_error", error=e.message)
        return EXIT_CONFIG_ERROR
    finally:
        shutdown_telemetry()

    return EXIT_OK if summary.ok else EXIT_BUILD_FAILED


if __name__ == "__main__":
    sys.exit(main())

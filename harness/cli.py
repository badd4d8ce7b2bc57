"""CLI entrypoints for harness commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from .builder import Builder
from .config import ConfigError, HarnessConfig, load_config
from .logging import configure_logging
from .models import BuildError, HarnessError


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Log toolchain commands and their output.",
    }
    kwargs["default"] = argparse.SUPPRESS if suppress_default else False
    parser.add_argument("-v", "--verbose", **kwargs)


def _add_app_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the application base directory (defaults to current directory).",
    )
    parser.add_argument(
        "--import-path",
        default=None,
        help="Go import path of the application (overrides app.import_path).",
    )
    parser.add_argument(
        "--tags",
        default=None,
        help="Build tags passed to `go build` (overrides build.tags).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="harness",
        description="Generate the entry point of a revel application and build it.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build",
        help="Analyse the application, generate main.go and compile the binary.",
    )
    _add_verbose_option(build_parser, suppress_default=True)
    _add_app_options(build_parser)
    build_parser.add_argument(
        "--run-mode",
        default="dev",
        help="Run mode used when printing the start command.",
    )

    generate_parser = subparsers.add_parser(
        "generate",
        help="Print the generated main.go without compiling it.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_app_options(generate_parser)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Expose builds over HTTP for development error pages.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=9001, help="Port to listen on.")

    return parser


def _load(args: argparse.Namespace) -> HarnessConfig:
    config = load_config(Path(args.path), import_path=args.import_path)
    if args.tags is not None:
        config.build.tags = args.tags
    return config


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entrypoint for harness commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    if args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
        return

    try:
        config = _load(args)
        builder = Builder(config)
        if args.command == "generate":
            sys.stdout.write(builder.generate())
            return
        app = builder.build()
    except BuildError as exc:
        parser.exit(1, f"{exc.error.format()}\n")
    except ConfigError as exc:
        parser.exit(1, f"Invalid configuration: {exc}\n")
    except HarnessError as exc:
        parser.exit(1, f"harness {args.command} failed: {exc}\nRun with --verbose for more details.\n")

    print(f"Binary built at {_relativize(app.binary_path)}")
    print("Start with: " + " ".join(app.command(run_mode=args.run_mode)))


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])

"""CLI entrypoints for codeindex commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Sequence

from .config import ConfigError, load_config
from .extractors import BUILTIN_EXTRACTORS
from .indexer import CodeIndexer, IndexResult
from .logging import configure_logging
from .runtime import RuntimeSnapshotError


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codeindex",
        description="Extract typed code units and dependency edges from a Rails-style application.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract_parser = subparsers.add_parser(
        "extract",
        help="Extract code units and print them as JSON.",
    )
    _add_verbose_option(extract_parser, suppress_default=True)
    extract_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the application root (defaults to current directory).",
    )
    extract_parser.add_argument(
        "--kind",
        dest="kinds",
        action="append",
        metavar="KIND",
        help="Restrict extraction to this kind (repeatable; see `codeindex kinds`).",
    )
    extract_parser.add_argument(
        "--runtime",
        type=Path,
        help="Runtime snapshot (YAML or JSON) with routes, middleware and models.",
    )
    extract_parser.add_argument(
        "--include-join-models",
        action="store_true",
        help="Emit framework-generated join models, flagged as such.",
    )
    extract_parser.add_argument(
        "--workers",
        type=_positive_int,
        help="Number of extractors to run concurrently.",
    )
    extract_parser.add_argument(
        "--summary",
        action="store_true",
        help="Print unit counts per kind instead of the full JSON payload.",
    )

    kinds_parser = subparsers.add_parser("kinds", help="List the built-in extractor kinds.")
    _add_verbose_option(kinds_parser, suppress_default=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service (requires the service extra).")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entrypoint for codeindex commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    if args.command == "extract":
        try:
            result = _run_extract(args)
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        except (ConfigError, RuntimeSnapshotError, ValueError) as exc:
            parser.exit(1, f"codeindex extract failed: {exc}\n")
        if args.summary:
            _print_summary(result)
        else:
            json.dump(result.to_dict(), sys.stdout, indent=2, default=str)
            sys.stdout.write("\n")
    elif args.command == "kinds":
        for kind in BUILTIN_EXTRACTORS:
            print(kind)
    elif args.command == "serve":
        try:
            from .service.app import run_service
        except ModuleNotFoundError as exc:
            parser.exit(
                1,
                f"Service mode requires the 'service' extra ({exc.name} is missing). "
                "Install it with `pip install codeindex[service]`.\n",
            )
        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run_extract(args: argparse.Namespace) -> IndexResult:
    root = Path(args.path).expanduser().resolve()
    if not root.is_dir():
        raise FileNotFoundError(f"Application root {root} does not exist")
    config = load_config(root)
    if args.runtime is not None:
        config.runtime.snapshot = args.runtime.expanduser().resolve()
    if args.include_join_models:
        config.runtime.include_join_models = True
    indexer = CodeIndexer(config=config, max_workers=args.workers)
    return indexer.run(root, kinds=args.kinds)


def _print_summary(result: IndexResult) -> None:
    counts = result.counts()
    width = max([len(kind) for kind in BUILTIN_EXTRACTORS] + [len(kind) for kind in counts])
    for kind in [*BUILTIN_EXTRACTORS, *sorted(set(counts) - set(BUILTIN_EXTRACTORS))]:
        print(f"{kind.ljust(width)}  {counts.get(kind, 0)}")
    print(f"{'total'.ljust(width)}  {len(result.units)}")
    for kind, message in sorted(result.failures.items()):
        print(f"failed {kind}: {message}")


if __name__ == "__main__":
    main(sys.argv[1:])

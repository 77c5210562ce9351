# src/main.py — v1
"""CLI entry point: item, source, search, impls, resolve, implementation,
crates, info and cache commands.

Usage:
    dociium item <package> <path> [-p VERSION] [--page]
    dociium source <package> <path> [--context N] [-p VERSION]
    dociium search <package> <query> [--kind KIND ...] [--limit N]
    dociium impls <package> (--trait PATH | --type PATH)
    dociium resolve <language> <package> [<statement>] [--code-file FILE] [--context DIR]
    dociium implementation <language> <package> <file#name> [--context DIR]
    dociium crates <query> [--limit N]
    dociium info <crate>
    dociium cache stats|clear [scope]|sweep

Results go to stdout as JSON; logs go to stderr. Typed errors are printed
as ``{"error": {"kind": ..., "message": ...}}`` with a kind-specific exit
code.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from dociium.config.settings import ConfigurationError, Settings, load_settings
from dociium.core.errors import DociiumError
from dociium.logging.logger import setup_logging
from dociium.version import __version__

logger = logging.getLogger(__name__)

EXIT_CODES = {
    "invalid_input": 2,
    "not_found": 3,
    "parse_drift": 4,
    "transient": 5,
}


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = _load_settings(args)
    except (ConfigurationError, ValidationError) as exc:
        _emit({"error": {"kind": "configuration", "message": str(exc)}})
        return 2

    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(_dispatch(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except DociiumError as exc:
        logger.debug("Command failed", exc_info=True)
        _emit({"error": exc.to_dict()})
        return EXIT_CODES.get(exc.kind, 1)
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="dociium",
        description=f"dociium v{__version__}: package documentation and import lookup",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--cache-dir", type=Path, default=None,
        help="Cache directory (default: DOCIIUM_CACHE_DIR or ~/.cache/dociium)",
    )
    parser.add_argument(
        "--no-disk-cache", action="store_true",
        help="Keep the documentation cache in memory only",
    )
    parser.add_argument(
        "--log-format", choices=["text", "json"], default=None,
        help="Log record format on stderr",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- item ---
    p_item = subparsers.add_parser("item", help="Show one documented item")
    p_item.add_argument("package", help="Crate name")
    p_item.add_argument("path", help="Item path, e.g. de::Deserialize")
    _add_version(p_item)
    p_item.add_argument(
        "--page", action="store_true",
        help="Always read the item page (source location, full docs)",
    )
    p_item.set_defaults(func=_cmd_item)

    # --- source ---
    p_source = subparsers.add_parser("source", help="Source lines of one item")
    p_source.add_argument("package", help="Crate name")
    p_source.add_argument("path", help="Item path, e.g. de::Deserialize")
    p_source.add_argument(
        "--context", type=int, default=5, dest="context_lines",
        help="Lines of context on each side (0-100, default: 5)",
    )
    _add_version(p_source)
    p_source.set_defaults(func=_cmd_source)

    # --- search ---
    p_search = subparsers.add_parser("search", help="Fuzzy symbol search in a crate")
    p_search.add_argument("package", help="Crate name")
    p_search.add_argument("query", help="Search text")
    p_search.add_argument(
        "--kind", action="append", dest="kinds", default=None,
        help="Restrict to an item kind (repeatable): struct, fn, trait, ...",
    )
    p_search.add_argument("--limit", type=int, default=10, help="Maximum hits (default: 10)")
    _add_version(p_search)
    p_search.set_defaults(func=_cmd_search)

    # --- impls ---
    p_impls = subparsers.add_parser("impls", help="Trait implementation lookups")
    p_impls.add_argument("package", help="Crate name")
    target = p_impls.add_mutually_exclusive_group(required=True)
    target.add_argument("--trait", dest="trait_path", help="List types implementing this trait")
    target.add_argument("--type", dest="type_path", help="List traits implemented by this type")
    _add_version(p_impls)
    p_impls.set_defaults(func=_cmd_impls)

    # --- resolve ---
    p_resolve = subparsers.add_parser("resolve", help="Resolve an import to a file and symbol")
    p_resolve.add_argument("language", help="rust, python or node")
    p_resolve.add_argument("package", help="Installed package name")
    p_resolve.add_argument("statement", nargs="?", default=None, help="One import statement")
    p_resolve.add_argument(
        "--code-file", type=Path, default=None,
        help="Resolve every import statement found in this file",
    )
    p_resolve.add_argument(
        "--context", default=None,
        help="Project directory (node) or importing module (python relative imports)",
    )
    p_resolve.set_defaults(func=_cmd_resolve)

    # --- implementation ---
    p_impl = subparsers.add_parser("implementation", help="Read one definition from an installed package")
    p_impl.add_argument("language", help="rust, python or node")
    p_impl.add_argument("package", help="Installed package name")
    p_impl.add_argument("item_path", help="relative/file#item_name, e.g. src/lib.rs#Parser")
    p_impl.add_argument("--context", default=None, help="Project directory (node)")
    p_impl.set_defaults(func=_cmd_implementation)

    # --- crates ---
    p_crates = subparsers.add_parser("crates", help="Search the crate registry")
    p_crates.add_argument("query", help="Search text")
    p_crates.add_argument("--limit", type=int, default=10, help="Maximum results (default: 10)")
    p_crates.set_defaults(func=_cmd_crates)

    # --- info ---
    p_info = subparsers.add_parser("info", help="Registry metadata and versions of one crate")
    p_info.add_argument("package", help="Crate name")
    p_info.set_defaults(func=_cmd_info)

    # --- cache ---
    p_cache = subparsers.add_parser("cache", help="Cache administration")
    cache_sub = p_cache.add_subparsers(dest="cache_command", required=True)
    cache_sub.add_parser("stats", help="Hit/miss/eviction counters").set_defaults(func=_cmd_cache_stats)
    p_clear = cache_sub.add_parser("clear", help="Clear all, one package or package@version")
    p_clear.add_argument("scope", nargs="?", default=None, help="pkg or pkg@version (default: all)")
    p_clear.set_defaults(func=_cmd_cache_clear)
    cache_sub.add_parser("sweep", help="Remove expired entries").set_defaults(func=_cmd_cache_sweep)

    return parser


def _add_version(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-p", "--package-version", dest="package_version", default=None,
        help="Package version (default: latest)",
    )


async def _dispatch(args: argparse.Namespace, settings: Settings) -> int:
    from dociium.api.facade import DocService

    async with DocService.from_settings(settings) as service:
        return await args.func(service, args)


async def _cmd_item(service: Any, args: argparse.Namespace) -> int:
    record = await service.get_item(args.package, args.path, args.package_version, fetch_page=args.page)
    _emit(record)
    return 0


async def _cmd_source(service: Any, args: argparse.Namespace) -> int:
    snippet = await service.source_snippet(
        args.package, args.path, args.context_lines, args.package_version,
    )
    _emit(snippet)
    return 0


async def _cmd_search(service: Any, args: argparse.Namespace) -> int:
    hits = await service.search(
        args.package, args.query, kinds=args.kinds, limit=args.limit, version=args.package_version,
    )
    _emit(hits)
    return 0


async def _cmd_impls(service: Any, args: argparse.Namespace) -> int:
    if args.trait_path:
        edges = await service.impls_of_trait(args.package, args.trait_path, args.package_version)
    else:
        edges = await service.impls_for_type(args.package, args.type_path, args.package_version)
    _emit(edges)
    return 0


async def _cmd_resolve(service: Any, args: argparse.Namespace) -> int:
    if args.code_file is not None:
        code = args.code_file.read_text(encoding="utf-8")
        results = await service.resolve_imports(args.language, args.package, code, args.context)
        _emit(results)
        return 0 if all(r.is_resolved for r in results) else 6
    if args.statement is None:
        logger.error("resolve needs an import statement or --code-file")
        return 2
    result = await service.resolve_import(args.language, args.package, args.statement, args.context)
    _emit(result)
    return 0 if result.is_resolved else 6


async def _cmd_implementation(service: Any, args: argparse.Namespace) -> int:
    _emit(await service.get_implementation(args.language, args.package, args.item_path, args.context))
    return 0


async def _cmd_crates(service: Any, args: argparse.Namespace) -> int:
    _emit(await service.search_registry(args.query, args.limit))
    return 0


async def _cmd_info(service: Any, args: argparse.Namespace) -> int:
    _emit(await service.crate_info(args.package))
    return 0


async def _cmd_cache_stats(service: Any, args: argparse.Namespace) -> int:
    _emit(service.cache_stats())
    return 0


async def _cmd_cache_clear(service: Any, args: argparse.Namespace) -> int:
    _emit({"removed": await service.clear(args.scope)})
    return 0


async def _cmd_cache_sweep(service: Any, args: argparse.Namespace) -> int:
    _emit({"removed": await service.sweep_expired()})
    return 0


def _load_settings(args: argparse.Namespace) -> Settings:
    overrides: dict[str, Any] = {}
    if args.cache_dir is not None:
        overrides["cache_dir"] = args.cache_dir
    if args.no_disk_cache:
        overrides["cache_enabled_disk"] = False
    if args.log_format is not None:
        overrides["log_format"] = args.log_format
    return load_settings(**overrides)


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


def _emit(payload: Any) -> None:
    print(json.dumps(_jsonable(payload), indent=2, default=str))


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
        stream=sys.stderr,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

import argparse
import logging
import os
import sys

from .addressing import parse_location
from .config import ConfigLoadError, Settings, build_resolver, load_settings
from .contract import load_contract, update_contract
from .errors import LocatorUserError
from .jsonic import dumps as jdumps
from .report_schema import (
    AddressReport,
    CacheReport,
    ContractReport,
    FileReferenceReport,
    ResolveReport,
    StatsReport,
    UpdateReport,
)
from .resolver import Resolver
from .types import RelativeRef
from .version import tool_version

ENV_LOG_LEVEL = "LOCATOR_LOG_LEVEL"

_LOG_FORMAT = "[%(levelname)s] %(message)s"


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="locator",
        description="Resolve local, web and Git locations into hash-verified cached files",
        add_help=True,
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {tool_version()}")
    p.add_argument("--home", help="home directory (default: $LOCATOR_HOME or ~/.locator)")
    p.add_argument("--cache-dir", help="cache root (default: $LOCATOR_CACHE_DIR or <home>/cache)")
    p.add_argument("--timeout", type=float, help="timeout in seconds for each git operation and download")
    p.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="more logging on stderr (-v: INFO, -vv: DEBUG)",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    sp_parse = sub.add_parser("parse", help="Parse a location without touching the network (JSON)")
    sp_parse.add_argument("location")
    sp_parse.add_argument(
        "--repo-segments",
        type=int,
        metavar="N",
        help="number of path segments forming the repository path",
    )

    sp_resolve = sub.add_parser("resolve", help="Resolve an absolute location (JSON)")
    sp_resolve.add_argument("location")
    sp_resolve.add_argument("--hash", default="", help="expected SHA-256 of the content")
    sp_resolve.add_argument("--no-check", action="store_true", help="warn instead of failing on hash mismatch")

    sp_rel = sub.add_parser("resolve-rel", help="Resolve a location relative to another one (JSON)")
    sp_rel.add_argument("base", help="absolute base location")
    sp_rel.add_argument("relative", help="relative location (./x, ../x or x)")
    sp_rel.add_argument("--hash", required=True, help="expected SHA-256 of the relative file")
    sp_rel.add_argument("--base-hash", default="", help="expected SHA-256 of the base file")
    sp_rel.add_argument("--no-check", action="store_true", help="warn instead of failing on hash mismatch")

    sp_load = sub.add_parser("load", help="Load a contract descriptor and its components (JSON)")
    sp_load.add_argument("contract")

    sp_update = sub.add_parser("update", help="Rewrite the declared hashes of a local contract (JSON)")
    sp_update.add_argument("contract")

    sub.add_parser("cache", help="Cache location and contents summary (JSON)")

    return p


def _setup_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        name = os.environ.get(ENV_LOG_LEVEL, "").strip().upper()
        if not name:
            level = logging.WARNING
        elif name in logging.getLevelNamesMapping():
            level = logging.getLevelNamesMapping()[name]
        else:
            raise ConfigLoadError(f"env:{ENV_LOG_LEVEL}: unknown log level {name!r}")

    pkg_logger = logging.getLogger("locator")
    # a single stderr handler even when main() runs several times in one process
    for h in list(pkg_logger.handlers):
        if getattr(h, "_locator_cli", False):
            pkg_logger.removeHandler(h)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    handler._locator_cli = True  # type: ignore[attr-defined]
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(level)


def _settings(ns: argparse.Namespace) -> Settings:
    return load_settings(home=ns.home, cache_dir=ns.cache_dir, timeout=ns.timeout)


def _resolve(resolver: Resolver, ns: argparse.Namespace) -> ResolveReport:
    ref = resolver.resolve(ns.location, ns.hash, not ns.no_check)
    return ResolveReport(file=FileReferenceReport.of(ref), network=StatsReport.of(resolver.cache.stats))


def _resolve_rel(resolver: Resolver, ns: argparse.Namespace) -> ResolveReport:
    check = not ns.no_check
    base = resolver.resolve(ns.base, ns.base_hash, check)
    ref = resolver.resolve_relative(base, RelativeRef(location=ns.relative, hash=ns.hash), check)
    return ResolveReport(file=FileReferenceReport.of(ref), network=StatsReport.of(resolver.cache.stats))


def main(argv: list[str] | None = None) -> int:
    ns = _build_parser().parse_args(argv)

    try:
        _setup_logging(ns.verbose)
        settings = _settings(ns)

        if ns.cmd == "parse":
            addr = parse_location(
                ns.location,
                repo_segments=ns.repo_segments,
                host_hints=settings.config.repo_segments,
            )
            sys.stdout.write(jdumps(AddressReport.of(addr).model_dump(mode="json")))
            return 0

        resolver = build_resolver(settings)

        if ns.cmd == "resolve":
            sys.stdout.write(jdumps(_resolve(resolver, ns).model_dump(mode="json")))
            return 0

        if ns.cmd == "resolve-rel":
            sys.stdout.write(jdumps(_resolve_rel(resolver, ns).model_dump(mode="json")))
            return 0

        if ns.cmd == "load":
            contract = load_contract(ns.contract, resolver)
            report = ContractReport.of(contract, resolver.cache.stats)
            sys.stdout.write(jdumps(report.model_dump(mode="json")))
            return 0

        if ns.cmd == "update":
            result = update_contract(ns.contract, resolver)
            sys.stdout.write(jdumps(UpdateReport.of(result).model_dump(mode="json")))
            return 0

        if ns.cmd == "cache":
            report = CacheReport.of(resolver.cache.snapshot(), tool_version())
            sys.stdout.write(jdumps(report.model_dump(mode="json")))
            return 0

    except LocatorUserError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2

    return 2


if __name__ == "__main__":
    raise SystemExit(main())

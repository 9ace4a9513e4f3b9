#!/usr/bin/env python3
"""Command-line interface for pubget."""

import argparse
import functools
import logging
import os
import sys
from typing import List, Optional

from .constants import Constants, ExitCodes
from .dependency_resolver import DependencyResolutionError, print_dependency_tree, resolve_all, resolve_package
from .downloader import CacheWriteError, cache_packages
from .manifest import ManifestError, load_manifest
from .models import PackageGraph
from .registry import RegistryError

logger = logging.getLogger(__name__)


def non_negative_int(value: str) -> int:
    """argparse type for counts where 0 is allowed but negatives are not."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or greater, got {number}")
    return number


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pubget",
        description="Download the packages of a pubspec and all their dependencies",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Mirror the dependencies of ./pubspec.yaml into ./output:
    pubget

  Use another manifest and output directory:
    pubget --spec app/pubspec.yaml --out-dir mirror

  Show what would be downloaded:
    pubget --print-dep-tree
        """
    )
    parser.add_argument("--spec", default=Constants.SPEC_FILE,
                        help=f"Manifest to read dependencies from (default: {Constants.SPEC_FILE})")
    parser.add_argument("--out-dir", default=Constants.OUT_DIR,
                        help=f"Directory to save downloaded packages (default: {Constants.OUT_DIR})")
    parser.add_argument("--registry-url", default=Constants.REGISTRY_URL,
                        help=f"Registry base URL (default: ${Constants.ENV_REGISTRY_URL} or {Constants.REGISTRY_URL})")
    parser.add_argument("--include-dev", action="store_true",
                        help="Also resolve the manifest's dev_dependencies")
    parser.add_argument("--max-rounds", type=non_negative_int, default=Constants.MAX_ROUNDS,
                        help=f"Stop resolving after this many rounds, 0 for no limit (default: {Constants.MAX_ROUNDS})")
    parser.add_argument("--timeout", type=float, default=Constants.REQUEST_TIMEOUT,
                        help="Registry request timeout in seconds (default: wait indefinitely)")
    parser.add_argument("--print-dep-tree", action="store_true",
                        help="Prints the resolved dependency tree and exits without downloading")
    parser.add_argument("--progress", action="store_true",
                        help="Show a progress bar while caching archives")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable verbose output")

    return parser


def run(argv: Optional[List[str]] = None) -> int:
    """
    Resolve the manifest and cache every package.

    Args:
        argv: Command-line arguments, defaults to sys.argv[1:]

    Returns:
        Process exit code
    """
    args = create_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=Constants.LOG_FORMAT,
    )
    logger.info("spec file %s output directory %s", args.spec, args.out_dir)

    try:
        manifest = load_manifest(args.spec)
        roots = manifest.root_packages(include_dev=args.include_dev)
        logger.info("%d packages in spec file:", len(roots))
        for package in roots:
            logger.info("  %s %s", package.name, package.version)

        graph = PackageGraph(roots)
        resolver = functools.partial(resolve_package, registry_url=args.registry_url, timeout=args.timeout)
        resolve_all(graph, resolver, max_rounds=args.max_rounds)

        if args.print_dep_tree:
            for package in roots:
                print_dependency_tree(graph, package.key)
            return ExitCodes.SUCCESS.value

        report = cache_packages(graph, args.out_dir, progress=args.progress, timeout=args.timeout)
    except (ManifestError, CacheWriteError) as e:
        logger.error("%s", e)
        return ExitCodes.FILE_ERROR.value
    except RegistryError as e:
        logger.error("registry error: %s", e)
        return ExitCodes.CONNECTION_ERROR.value
    except DependencyResolutionError as e:
        logger.error("resolution failed: %s", e)
        return ExitCodes.RESOLUTION_ERROR.value

    logger.info(
        "%d files written, %d archives fetched, %d cached, output in %s",
        report.written, report.fetched, report.cached, os.path.abspath(args.out_dir)
    )
    logger.info("exit")
    return ExitCodes.SUCCESS.value


def main() -> None:
    """Main entry point for the CLI."""
    sys.exit(run())


if __name__ == "__main__":
    main()

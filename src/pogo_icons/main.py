"""CLI entry point for pogo-icons.

Supports running via ``python -m pogo_icons.main`` or the ``pogo-icons``
console script.
"""

import argparse
import sys
import time
from typing import Callable, List, Optional, Tuple

from .config import DEFAULT_CONFIG_PATH
from .mapping import run_build_mapping
from .optimize import run_optimize_sprites
from .sprites import run_fetch_sprites
from .stylesheet import run_generate_css


def build_steps(
    config_path: str,
    *,
    css_only: bool = False,
    skip_fetch: bool = False,
    force: bool = False,
) -> List[Tuple[str, Callable[[], int]]]:
    """Return the ordered ``(name, step)`` list for a full build."""
    steps: List[Tuple[str, Callable[[], int]]] = []
    if not css_only:
        steps.append(("Build Mapping", lambda: run_build_mapping(config_path, force=force)))
        if not skip_fetch:
            steps.append(("Fetch Sprites", lambda: run_fetch_sprites(config_path)))
        steps.append(("Optimize Sprites", lambda: run_optimize_sprites(config_path)))
    steps.append(("Generate CSS", lambda: run_generate_css(config_path)))
    return steps


def run_build(
    config_path: str,
    *,
    css_only: bool = False,
    skip_fetch: bool = False,
    force: bool = False,
) -> int:
    """Run every build step in order; stop at the first failing step."""
    print("pogo-icons build\n")
    if css_only:
        print("Mode: CSS only\n")
    elif skip_fetch:
        print("Mode: Skip fetch\n")

    start = time.monotonic()
    for name, step in build_steps(
        config_path, css_only=css_only, skip_fetch=skip_fetch, force=force
    ):
        print(f"-- {name} {'-' * (30 - len(name))}\n")
        try:
            code = step()
        except RuntimeError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            code = 1
        if code != 0:
            print(f"\nBuild failed at step: {name}", file=sys.stderr)
            return 1

    elapsed = time.monotonic() - start
    print("=" * 36)
    print(f"Build complete in {elapsed:.1f}s")
    print("Output: dist/pogo-icons.css")
    print("=" * 36)
    return 0


def build_arg_parser() -> argparse.ArgumentParser:
    """Build and return the top-level CLI argument parser."""
    parser = argparse.ArgumentParser(prog="pogo-icons")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH)
    sub = parser.add_subparsers(dest="command")

    mapping = sub.add_parser("mapping", help="build data/species-map.json")
    mapping.add_argument("--input", default=None, help="local gamemaster pokemon.json")
    mapping.add_argument("--force", action="store_true", help="ignore the cached gamemaster")

    fetch = sub.add_parser("fetch", help="download sprites for the species map")
    fetch.add_argument("--concurrency", type=int, default=None)

    sub.add_parser("optimize", help="recompress sprites into dist/")
    sub.add_parser("css", help="generate dist/pogo-icons.css")

    build = sub.add_parser("build", help="run all steps")
    mode = build.add_mutually_exclusive_group()
    mode.add_argument("--css-only", action="store_true")
    mode.add_argument("--skip-fetch", action="store_true")
    build.add_argument("--force", action="store_true")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "mapping":
            return run_build_mapping(args.config, input_path=args.input, force=args.force)

        if args.command == "fetch":
            return run_fetch_sprites(args.config, concurrency=args.concurrency)

        if args.command == "optimize":
            return run_optimize_sprites(args.config)

        if args.command == "css":
            return run_generate_css(args.config)

        if args.command == "build":
            return run_build(
                args.config,
                css_only=args.css_only,
                skip_fetch=args.skip_fetch,
                force=args.force,
            )
    except RuntimeError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())

"""edgeroute CLI — build bundles, inspect routing, emit CDN descriptors.

Entry point registered as ``edgeroute`` in ``pyproject.toml``::

    [project.scripts]
    edgeroute = "edgeroute.cli:main"
"""

import argparse
import logging
import sys

from edgeroute.errors import EdgeRouteError


def _add_app_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("app_dir", help="Compiled application directory (contains .next/)")
    parser.add_argument(
        "--inputs",
        default=None,
        help="JSON file with deploy inputs (memory, cloudfront, build, ...)",
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``edgeroute`` command."""
    parser = argparse.ArgumentParser(
        prog="edgeroute",
        description="edgeroute — edge function bundles and routing for compiled web apps.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    # -- edgeroute build --------------------------------------------------
    build_parser = subparsers.add_parser("build", help="Assemble the function bundles")
    _add_app_arguments(build_parser)
    build_parser.add_argument(
        "--output",
        default=None,
        help="Directory receiving default-lambda/ and api-lambda/ (default: app_dir)",
    )

    # -- edgeroute routes -------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List routes in match order")
    _add_app_arguments(routes_parser)

    # -- edgeroute resolve ------------------------------------------------
    resolve_parser = subparsers.add_parser("resolve", help="Route a request path")
    _add_app_arguments(resolve_parser)
    resolve_parser.add_argument("path", help="Request path (e.g. /blog/42)")

    # -- edgeroute distribution -------------------------------------------
    dist_parser = subparsers.add_parser(
        "distribution", help="Print the CDN distribution descriptor as JSON"
    )
    _add_app_arguments(dist_parser)
    dist_parser.add_argument("--bucket", required=True, help="Asset bucket name")
    dist_parser.add_argument(
        "--default-ref", required=True, help="Published page function reference"
    )
    dist_parser.add_argument("--api-ref", default=None, help="Published API function reference")

    # -- edgeroute assets -------------------------------------------------
    assets_parser = subparsers.add_parser("assets", help="List planned asset uploads")
    _add_app_arguments(assets_parser)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "build":
            from edgeroute.cli._build import run_build

            run_build(args)
        elif args.command == "routes":
            from edgeroute.cli._routes import run_routes

            run_routes(args)
        elif args.command == "resolve":
            from edgeroute.cli._resolve import run_resolve

            run_resolve(args)
        elif args.command == "distribution":
            from edgeroute.cli._distribution import run_distribution

            run_distribution(args)
        elif args.command == "assets":
            from edgeroute.cli._assets import run_assets

            run_assets(args)
    except EdgeRouteError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

"""``edgeroute routes`` — list compiled routes in match order.

Compiles the manifest from the application's build output and prints
a table of KIND, ROUTE, and FILE in the order the router tries them.
"""

import argparse

from edgeroute.cli._inputs import load_app_routing, load_inputs, make_context
from edgeroute.manifest import Manifest
from edgeroute.routing.router import Router


def route_rows(manifest: Manifest) -> list[tuple[str, str, str]]:
    """Rows of (kind, template, file) in router precedence order."""
    rows: list[tuple[str, str, str]] = []
    for kind, group in (("ssr", manifest.ssr), ("html", manifest.html)):
        rows.extend((kind, template, page) for template, page in group.non_dynamic.items())
    rows.extend(("api", template, page) for template, page in manifest.apis.non_dynamic.items())
    rows.extend(
        (route.kind.value, route.template, route.file)
        for route in Router(manifest).dynamic_page_routes
    )
    rows.extend(("api", route.template, route.file) for route in manifest.apis.dynamic)
    return rows


def run_routes(args: argparse.Namespace) -> None:
    """Print the route table for ``args.app_dir``."""
    context = make_context(args, load_inputs(args.inputs))
    manifest, _ = load_app_routing(context)

    rows = route_rows(manifest)
    if not rows:
        print("No routes found.")
        return

    max_kind = max(max(len(r[0]) for r in rows), 4)  # "KIND" header
    max_route = max(max(len(r[1]) for r in rows), 5)  # "ROUTE" header

    fmt = f"{{:<{max_kind}}}  {{:<{max_route}}}  {{}}"
    print(fmt.format("KIND", "ROUTE", "FILE"))
    sep_len = max_kind + max_route + 4 + max(len(r[2]) for r in rows)
    print("-" * min(sep_len, 80))
    for kind, template, page in rows:
        print(fmt.format(kind, template, page))

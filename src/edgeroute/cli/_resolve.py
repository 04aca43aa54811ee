"""``edgeroute resolve`` — show how a request path is routed."""

import argparse
import json

from edgeroute.cli._inputs import load_app_routing, load_inputs, make_context
from edgeroute.routing.router import Router, RoutingDecision


def describe(decision: RoutingDecision) -> dict:
    data: dict = {"state": decision.state.value, "path": decision.path}
    if decision.template is not None:
        data["route"] = decision.template
    if decision.file is not None:
        data["file"] = decision.file
    if decision.kind is not None:
        data["kind"] = decision.kind.value
    if decision.params:
        data["params"] = decision.params
    if decision.redirect is not None:
        data["redirect"] = {
            "destination": decision.redirect.destination,
            "status": decision.redirect.status,
        }
    return data


def run_resolve(args: argparse.Namespace) -> None:
    """Route ``args.path`` against the app's manifest and print the decision as JSON."""
    context = make_context(args, load_inputs(args.inputs))
    manifest, routes_descriptor = load_app_routing(context)
    router = Router(manifest, routes_descriptor.get("redirects", []))
    print(json.dumps(describe(router.resolve(args.path)), indent=2))

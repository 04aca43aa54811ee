"""Origin-request handlers deployed in the two function bundles.

Each bundle's ``index.py`` re-exports one of these as ``handler``.  The
router is built from the bundle's ``manifest.json`` on first use and
kept for warm invocations of the same instance; nothing depends on
that cache for correctness.

Handlers translate a routing decision into a CDN origin-request result:

- pre-rendered pages and public assets rewrite the request to the
  bucket (``/static-pages/...``, ``/public/...``);
- server-rendered pages and API routes pass the request on annotated
  with the matched page file and parameters for the renderer;
- redirects and misses become responses.
"""

from __future__ import annotations

import functools
import json
import logging
import time
from pathlib import Path
from typing import Any
from urllib.parse import quote

from edgeroute.manifest import load_manifest
from edgeroute.routing.redirects import RedirectRule
from edgeroute.routing.route import RouteKind
from edgeroute.routing.router import Router, RouteState, RoutingDecision

logger = logging.getLogger("edgeroute.runtime")

# <bundle>/edgeroute/runtime/handler.py -> <bundle>
BUNDLE_DIR = Path(__file__).resolve().parents[2]

PAGE_HEADER = "x-edgeroute-page"
PARAMS_HEADER = "x-edgeroute-params"


@functools.lru_cache(maxsize=4)
def load_router(bundle_dir: str) -> Router:
    """Build a router from a bundle's manifests (cached per bundle)."""
    root = Path(bundle_dir)
    manifest = load_manifest(root / "manifest.json")
    routes_file = root / "routes-manifest.json"
    redirects: list[dict[str, Any]] = []
    if routes_file.is_file():
        redirects = json.loads(routes_file.read_text(encoding="utf-8")).get("redirects", [])
    return Router(manifest, redirects)


def _header(name: str, value: str) -> list[dict[str, str]]:
    return [{"key": "-".join(part.capitalize() for part in name.split("-")), "value": value}]


def redirect_response(rule: RedirectRule, querystring: str = "") -> dict[str, Any]:
    location = rule.destination
    if querystring:
        location = f"{location}?{querystring}"
    return {
        "status": str(rule.status),
        "statusDescription": "Permanent Redirect"
        if rule.status == 308
        else "Temporary Redirect",
        "headers": {"location": _header("location", location)},
    }


def not_found_response() -> dict[str, Any]:
    return {
        "status": "404",
        "statusDescription": "Not Found",
        "headers": {"content-type": _header("content-type", "text/plain")},
        "body": "Not Found",
    }


def _rewrite(request: dict[str, Any], uri: str) -> dict[str, Any]:
    # Origin URIs are percent-encoded; decisions carry decoded paths
    request["uri"] = quote(uri, safe="/")
    return request


def _annotate(request: dict[str, Any], decision: RoutingDecision) -> dict[str, Any]:
    headers = request.setdefault("headers", {})
    headers[PAGE_HEADER] = _header(PAGE_HEADER, decision.file or "")
    headers[PARAMS_HEADER] = _header(PARAMS_HEADER, json.dumps(decision.params))
    return request


def handle_page_request(
    request: dict[str, Any], decision: RoutingDecision, router: Router
) -> dict[str, Any]:
    """Turn a decision into the origin-request result for the page function."""
    state = decision.state
    if state is RouteState.REDIRECT and decision.redirect is not None:
        return redirect_response(decision.redirect, request.get("querystring", ""))
    if state is RouteState.MATCHED_ASSET:
        return _rewrite(request, f"/public/{decision.file}")
    if state in (RouteState.MATCHED_STATIC, RouteState.MATCHED_DYNAMIC):
        if decision.kind is RouteKind.HTML and decision.file:
            return _rewrite(request, "/static-pages/" + decision.file.removeprefix("pages/"))
        return _annotate(request, decision)
    if state is RouteState.MATCHED_API:
        # API traffic is served by the API function behind its own behavior
        return _annotate(request, decision)

    not_found_page = router.manifest.html.non_dynamic.get("/404")
    if not_found_page is not None:
        return _rewrite(request, "/static-pages/" + not_found_page.removeprefix("pages/"))
    return not_found_response()


def _route(
    event: dict[str, Any], bundle_dir: Path
) -> tuple[dict[str, Any], Router, RoutingDecision]:
    request = event["Records"][0]["cf"]["request"]
    router = load_router(str(bundle_dir))
    return request, router, router.resolve(request["uri"])


def _log_timing(router: Router, decision: RoutingDecision, start: float) -> None:
    if router.manifest.log_execution_times:
        logger.info(
            "%s -> %s in %.2fms",
            decision.path,
            decision.state.value,
            (time.perf_counter() - start) * 1000,
        )


def default_handler(
    event: dict[str, Any], context: Any = None, *, bundle_dir: Path = BUNDLE_DIR
) -> dict[str, Any]:
    """Origin-request handler of the page bundle."""
    start = time.perf_counter()
    request, router, decision = _route(event, bundle_dir)
    result = handle_page_request(request, decision, router)
    _log_timing(router, decision, start)
    return result


def api_handler(
    event: dict[str, Any], context: Any = None, *, bundle_dir: Path = BUNDLE_DIR
) -> dict[str, Any]:
    """Origin-request handler of the API bundle; anything but an API match is a 404."""
    start = time.perf_counter()
    request, router, decision = _route(event, bundle_dir)
    if decision.state is RouteState.MATCHED_API:
        result = _annotate(request, decision)
    else:
        result = not_found_response()
    _log_timing(router, decision, start)
    return result

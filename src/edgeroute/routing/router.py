"""Request router — resolves a request path against a compiled manifest.

Pure and synchronous: no disk or network access while matching.  The
only precedence source is the sorter's order stored in the manifest;
non-dynamic lookups are exact dictionary hits and never iterate.
"""

from __future__ import annotations

import heapq
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import unquote

from edgeroute.manifest import Manifest
from edgeroute.routing.classifier import match_route
from edgeroute.routing.redirects import RedirectEngine, RedirectRule, is_file_path
from edgeroute.routing.route import Route, RouteKind
from edgeroute.routing.sorter import specificity_key

logger = logging.getLogger("edgeroute.routing")


class RouteState(Enum):
    """Routing states.  Everything except ``RECEIVED`` is terminal."""

    RECEIVED = "received"
    MATCHED_STATIC = "matched-static"
    MATCHED_DYNAMIC = "matched-dynamic"
    MATCHED_API = "matched-api"
    MATCHED_ASSET = "matched-asset"
    REDIRECT = "redirect"
    NOT_FOUND = "not-found"


@dataclass(frozen=True, slots=True)
class RoutingDecision:
    """Terminal outcome of routing one request path.

    Attributes:
        state: The terminal state reached.
        path: The normalized path (base path stripped, percent-decoded).
        template: Matched route template, if a route matched.
        file: Page file (routes) or storage key (assets).
        kind: Category of the matched route.
        params: Captures in declared parameter order.
        redirect: The redirect rule for ``REDIRECT`` decisions.
    """

    state: RouteState
    path: str
    template: str | None = None
    file: str | None = None
    kind: RouteKind | None = None
    params: dict[str, str | list[str]] = field(default_factory=dict)
    redirect: RedirectRule | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state is not RouteState.RECEIVED


class Router:
    """Resolve request paths to routing decisions.

    Usage::

        router = Router(manifest, redirects=routes_descriptor["redirects"])
        decision = router.resolve("/blog/42")
        decision.state   # RouteState.MATCHED_DYNAMIC
        decision.params  # {"id": "42"}

    Safe to keep across warm invocations of the same function instance;
    it holds no per-request state.
    """

    __slots__ = ("_api_routes", "_manifest", "_page_routes", "_redirects")

    def __init__(
        self,
        manifest: Manifest,
        redirects: Iterable[Mapping[str, Any]] = (),
    ) -> None:
        self._manifest = manifest
        self._redirects = RedirectEngine(
            manifest.trailing_slash, redirects, base_path=manifest.base_path
        )
        # Both page groups are already sorted; merging keeps each order intact.
        self._page_routes: tuple[Route, ...] = tuple(
            heapq.merge(manifest.ssr.dynamic, manifest.html.dynamic, key=specificity_key)
        )
        self._api_routes: tuple[Route, ...] = manifest.apis.dynamic

    @property
    def manifest(self) -> Manifest:
        return self._manifest

    @property
    def dynamic_page_routes(self) -> tuple[Route, ...]:
        return self._page_routes

    def normalize(self, path: str) -> str | None:
        """Strip the query, the base path, and percent-encoding.

        Returns ``None`` when *path* lies outside the configured base path.
        """
        path = path.split("?", 1)[0] or "/"
        base_path = self._manifest.base_path
        if base_path:
            if path != base_path and not path.startswith(base_path + "/"):
                return None
            path = path[len(base_path) :] or "/"
        path = unquote(path)
        if not path.startswith("/"):
            path = "/" + path
        return path

    def resolve(self, path: str) -> RoutingDecision:
        """Route *path* to a terminal decision.

        Order: static pages, static APIs, dynamic pages, dynamic APIs,
        public assets, redirects, not-found.
        """
        normalized = self.normalize(path)
        if normalized is None:
            return RoutingDecision(state=RouteState.NOT_FOUND, path=path)

        decision = self._resolve(normalized)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s -> %s %s", path, decision.state.value, decision.template or "")
        return decision

    def _resolve(self, path: str) -> RoutingDecision:
        manifest = self._manifest
        page_key = self._page_key(path)
        api_key = path.rstrip("/") or "/"

        # 1. Non-dynamic pages
        if page_key is not None:
            for kind, group in ((RouteKind.SSR, manifest.ssr), (RouteKind.HTML, manifest.html)):
                page_file = group.non_dynamic.get(page_key)
                if page_file is not None:
                    return RoutingDecision(
                        state=RouteState.MATCHED_STATIC,
                        path=path,
                        template=page_key,
                        file=page_file,
                        kind=kind,
                    )

        # 2. Non-dynamic APIs
        api_file = manifest.apis.non_dynamic.get(api_key)
        if api_file is not None:
            return RoutingDecision(
                state=RouteState.MATCHED_API,
                path=path,
                template=api_key,
                file=api_file,
                kind=RouteKind.API,
            )

        # 3. Dynamic pages, most specific first
        if page_key is not None:
            for route in self._page_routes:
                match = match_route(route, page_key)
                if match is not None:
                    return RoutingDecision(
                        state=RouteState.MATCHED_DYNAMIC,
                        path=path,
                        template=route.template,
                        file=route.file,
                        kind=route.kind,
                        params=match.params,
                    )

        # 4. Dynamic APIs
        for route in self._api_routes:
            match = match_route(route, api_key)
            if match is not None:
                return RoutingDecision(
                    state=RouteState.MATCHED_API,
                    path=path,
                    template=route.template,
                    file=route.file,
                    kind=RouteKind.API,
                    params=match.params,
                )

        # 5. Public assets
        asset_key = manifest.public_files.get(path)
        if asset_key is not None:
            return RoutingDecision(state=RouteState.MATCHED_ASSET, path=path, file=asset_key)

        # 6. Redirects
        rule = self._redirects.resolve(path)
        if rule is not None:
            return RoutingDecision(state=RouteState.REDIRECT, path=path, redirect=rule)

        return RoutingDecision(state=RouteState.NOT_FOUND, path=path)

    def _page_key(self, path: str) -> str | None:
        """Lookup key for page routes, or ``None`` if *path* is not canonical.

        Pages only match in the trailing-slash form the manifest asks for;
        the other form falls through to the redirect engine.  File-like
        paths (``/sitemap.xml``) never take a trailing slash.
        """
        if path == "/":
            return path
        if self._manifest.trailing_slash and not is_file_path(path):
            return path[:-1] if path.endswith("/") else None
        return None if path.endswith("/") else path

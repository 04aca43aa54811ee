"""Build manifest compiler.

Reads the application's build output, classifies and sorts every route,
enumerates public assets, and resolves the trailing-slash policy into an
immutable ``Manifest``.  Also produces the routes descriptor with the
framework's own trailing-slash redirects filtered out.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import anyio

from edgeroute.build.app_config import load_app_config, resolve_app_config
from edgeroute.config import BuildContext
from edgeroute.errors import ConfigurationError
from edgeroute.manifest import Manifest, RouteGroup
from edgeroute.routing.classifier import classify
from edgeroute.routing.redirects import filter_redirects
from edgeroute.routing.route import Route, RouteKind
from edgeroute.routing.sorter import sort_routes

logger = logging.getLogger("edgeroute.build")

PAGES_MANIFEST = "pages-manifest.json"
PRERENDER_MANIFEST = "prerender-manifest.json"
ROUTES_MANIFEST = "routes-manifest.json"
BUILD_ID_FILE = "BUILD_ID"


async def _read_json(path: Path) -> Any:
    return json.loads(await anyio.Path(path).read_text(encoding="utf-8"))


async def read_pages_manifest(context: BuildContext) -> dict[str, str]:
    """Read the route declaration written by the application build.

    Raises ``ConfigurationError`` if it is missing, which means the
    application was not built with the serverless target.
    """
    path = context.serverless_dir / PAGES_MANIFEST
    if not await anyio.Path(path).exists():
        msg = (
            f"{PAGES_MANIFEST} not found at {path}. "
            "Check that the application build target is set to 'serverless'."
        )
        raise ConfigurationError(msg)
    return await _read_json(path)


async def read_build_id(context: BuildContext) -> str:
    path = context.dot_next_dir / BUILD_ID_FILE
    if not await anyio.Path(path).exists():
        msg = f"{BUILD_ID_FILE} not found at {path}. Was the application build completed?"
        raise ConfigurationError(msg)
    return (await anyio.Path(path).read_text(encoding="utf-8")).strip()


async def read_prerender_manifest(context: BuildContext) -> dict[str, Any]:
    path = context.dot_next_dir / PRERENDER_MANIFEST
    if not await anyio.Path(path).exists():
        return {"routes": {}}
    return await _read_json(path)


async def read_routes_manifest(context: BuildContext) -> dict[str, Any]:
    path = context.dot_next_dir / ROUTES_MANIFEST
    if not await anyio.Path(path).exists():
        return {"basePath": "", "redirects": []}
    return await _read_json(path)


def classify_routes(pages_manifest: dict[str, str]) -> dict[RouteKind, RouteGroup]:
    """Classify every declared route and bucket it by kind and dynamic-ness.

    Dynamic buckets are sorted by specificity; discovery order breaks ties.
    """
    non_dynamic: dict[RouteKind, dict[str, str]] = {kind: {} for kind in RouteKind}
    dynamic: dict[RouteKind, list[Route]] = {kind: [] for kind in RouteKind}

    for template, page_file in pages_manifest.items():
        route = classify(template, page_file)
        if route.dynamic:
            dynamic[route.kind].append(route)
        else:
            non_dynamic[route.kind][template] = page_file

    return {
        kind: RouteGroup(non_dynamic=non_dynamic[kind], dynamic=tuple(sort_routes(dynamic[kind])))
        for kind in RouteKind
    }


def list_public_files(public_dir: Path) -> list[str]:
    """Recursively list files under *public_dir* as forward-slash paths."""
    if not public_dir.is_dir():
        return []
    return sorted(
        p.relative_to(public_dir).as_posix() for p in public_dir.rglob("*") if p.is_file()
    )


async def compile_manifest(context: BuildContext) -> Manifest:
    """Compile the routing manifest for the application in *context*."""
    pages_manifest = await read_pages_manifest(context)
    groups = classify_routes(pages_manifest)

    build_id = await read_build_id(context)
    routes_manifest = await read_routes_manifest(context)
    public_files = await anyio.to_thread.run_sync(list_public_files, context.public_dir)

    app_config = resolve_app_config(load_app_config(context.app_config_file))

    manifest = Manifest(
        build_id=build_id,
        trailing_slash=bool(app_config.get("trailingSlash", False)),
        log_execution_times=context.options.log_execution_times,
        base_path=routes_manifest.get("basePath", "") or "",
        ssr=groups[RouteKind.SSR],
        html=groups[RouteKind.HTML],
        apis=groups[RouteKind.API],
        public_files={"/" + f: f for f in public_files},
    )
    logger.info(
        "Compiled manifest for build %s: %d pages, %d API routes, %d public files",
        build_id,
        len(manifest.ssr) + len(manifest.html),
        len(manifest.apis),
        len(manifest.public_files),
    )
    return manifest


def compile_routes_descriptor(routes_manifest: dict[str, Any]) -> dict[str, Any]:
    """Copy *routes_manifest* with automatic trailing-slash redirects removed."""
    base_path = routes_manifest.get("basePath", "") or ""
    redirects = routes_manifest.get("redirects", [])
    filtered = filter_redirects(redirects, base_path)
    if len(filtered) != len(redirects):
        dropped = len(redirects) - len(filtered)
        logger.debug("Dropped %d automatic trailing-slash redirects", dropped)
    return {**routes_manifest, "redirects": filtered}

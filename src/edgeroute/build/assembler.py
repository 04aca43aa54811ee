"""Bundle assembly — lays out the two deployable function directories.

Each bundle gets the edgeroute runtime package, an ``index.py`` entry
stub, the page sources it serves, ``manifest.json`` and the filtered
``routes-manifest.json``.  Independent copies and writes run
concurrently in an anyio task group; the first failure cancels the rest
and fails the step.
"""

from __future__ import annotations

import json
import logging
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import Any

import anyio

from edgeroute.build.compiler import compile_routes_descriptor
from edgeroute.build.trace import TRACE_SUFFIX, collect_traced_files
from edgeroute.config import BuildContext, FunctionGroup
from edgeroute.manifest import Manifest

logger = logging.getLogger("edgeroute.build")

# The installed edgeroute package, copied into every bundle as the runtime
RUNTIME_PACKAGE_DIR = Path(__file__).resolve().parent.parent

ENTRY_STUBS: dict[FunctionGroup, str] = {
    FunctionGroup.DEFAULT: "from edgeroute.runtime.handler import default_handler as handler\n",
    FunctionGroup.API: "from edgeroute.runtime.handler import api_handler as handler\n",
}

# Framework wrappers rendered as part of every page, never traced on their own
_WRAPPER_PAGES = frozenset({"_app.js", "_document.js"})


def _copy_file(source: Path, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, destination)


def _copy_tree(
    source: Path,
    destination: Path,
    include: Callable[[Path], bool] | None = None,
) -> None:
    """Copy a directory tree, skipping entries for which *include* is false."""

    def _ignore(directory: str, names: list[str]) -> set[str]:
        ignored = {n for n in names if n == "__pycache__"}
        if include is not None:
            for name in names:
                path = Path(directory) / name
                if not include(path):
                    ignored.add(name)
        return ignored

    shutil.copytree(source, destination, ignore=_ignore, dirs_exist_ok=True)


async def copy_file(source: Path, destination: Path) -> None:
    await anyio.to_thread.run_sync(_copy_file, source, destination)


async def copy_tree(
    source: Path,
    destination: Path,
    include: Callable[[Path], bool] | None = None,
) -> None:
    await anyio.to_thread.run_sync(_copy_tree, source, destination, include)


async def write_json(path: Path, data: Any) -> None:
    target = anyio.Path(path)
    await target.parent.mkdir(parents=True, exist_ok=True)
    await target.write_text(json.dumps(data, indent=2), encoding="utf-8")


async def empty_dir(path: Path) -> None:
    """Remove *path* and recreate it empty."""

    def _empty() -> None:
        if path.exists():
            shutil.rmtree(path)
        path.mkdir(parents=True)

    await anyio.to_thread.run_sync(_empty)


def is_prerendered_js_file(prerender_manifest: dict[str, Any], relative_page_file: str) -> bool:
    """True if this page JS module exists only to pre-render static output.

    *relative_page_file* is relative to the ``pages`` directory, e.g.
    ``"terms.js"`` or ``"index.js"``.
    """
    if not relative_page_file.endswith(".js"):
        return False
    route = relative_page_file[:-3]
    route = route if route.startswith("/") else "/" + route
    if route == "/index":
        route = "/"
    return route in (prerender_manifest.get("routes") or {})


def default_pages_filter(
    pages_dir: Path, prerender_manifest: dict[str, Any], has_api_routes: bool
) -> Callable[[Path], bool]:
    """Build the file filter for the page bundle's ``pages`` copy.

    Excludes API pages, pre-rendered HTML, data JSON files and, when the
    app has no API routes, JS modules used only for pre-rendering.  With
    API routes present, preview mode may still render those modules.
    """

    def _include(path: Path) -> bool:
        relative = path.relative_to(pages_dir)
        if relative.parts[0] == "api":
            return False
        if path.is_dir():
            return True
        if path.suffix in (".html", ".json"):
            return False
        if not has_api_routes and is_prerendered_js_file(prerender_manifest, relative.as_posix()):
            return False
        return True

    return _include


def _not_trace_output(path: Path) -> bool:
    return not path.name.endswith(TRACE_SUFFIX)


async def _copy_runtime(bundle: Path, group: FunctionGroup) -> None:
    await copy_tree(RUNTIME_PACKAGE_DIR, bundle / RUNTIME_PACKAGE_DIR.name)
    await anyio.Path(bundle / "index.py").write_text(ENTRY_STUBS[group], encoding="utf-8")


async def assemble_default_bundle(
    context: BuildContext,
    manifest: Manifest,
    routes_manifest: dict[str, Any],
    prerender_manifest: dict[str, Any],
) -> Path:
    """Write the page-rendering bundle into ``default-lambda/``."""
    bundle = context.bundle_dir(FunctionGroup.DEFAULT)
    await anyio.Path(bundle).mkdir(parents=True, exist_ok=True)
    options = context.options

    traced = []
    if options.use_trace_target:
        ssr_files = [*manifest.ssr.non_dynamic.values(), *(r.file for r in manifest.ssr.dynamic)]
        traced = await collect_traced_files(
            context.serverless_dir,
            [f for f in ssr_files if Path(f).name not in _WRAPPER_PAGES],
        )

    has_api_routes = await anyio.Path(context.pages_dir / "api").exists()
    include = default_pages_filter(context.pages_dir, prerender_manifest, has_api_routes)

    async with anyio.create_task_group() as tg:
        for item in traced:
            tg.start_soon(copy_file, item.source, bundle / item.destination)
        if options.handler:
            tg.start_soon(copy_file, context.app_dir / options.handler, bundle / options.handler)
        tg.start_soon(_copy_runtime, bundle, FunctionGroup.DEFAULT)
        tg.start_soon(write_json, bundle / "manifest.json", manifest.to_dict())
        tg.start_soon(copy_tree, context.pages_dir, bundle / "pages", include)
        tg.start_soon(write_json, bundle / "prerender-manifest.json", prerender_manifest)
        tg.start_soon(
            write_json,
            bundle / "routes-manifest.json",
            compile_routes_descriptor(routes_manifest),
        )

    logger.info("Assembled page bundle at %s (%d traced files)", bundle, len(traced))
    return bundle


async def assemble_api_bundle(
    context: BuildContext,
    manifest: Manifest,
    routes_manifest: dict[str, Any],
) -> Path:
    """Write the API bundle into ``api-lambda/``."""
    bundle = context.bundle_dir(FunctionGroup.API)
    await anyio.Path(bundle).mkdir(parents=True, exist_ok=True)
    options = context.options

    traced = []
    if options.use_trace_target:
        api_files = [*manifest.apis.non_dynamic.values(), *(r.file for r in manifest.apis.dynamic)]
        traced = await collect_traced_files(context.serverless_dir, api_files)

    async with anyio.create_task_group() as tg:
        for item in traced:
            tg.start_soon(copy_file, item.source, bundle / item.destination)
        if options.handler:
            tg.start_soon(copy_file, context.app_dir / options.handler, bundle / options.handler)
        tg.start_soon(_copy_runtime, bundle, FunctionGroup.API)
        tg.start_soon(
            copy_tree,
            context.pages_dir / "api",
            bundle / "pages" / "api",
            _not_trace_output,
        )
        tg.start_soon(write_json, bundle / "manifest.json", manifest.to_dict())
        tg.start_soon(
            write_json,
            bundle / "routes-manifest.json",
            compile_routes_descriptor(routes_manifest),
        )

    logger.info("Assembled API bundle at %s (%d traced files)", bundle, len(traced))
    return bundle

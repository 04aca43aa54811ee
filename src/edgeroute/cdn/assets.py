"""Asset upload planning — storage keys and Cache-Control per asset.

The upload itself is done by an object-storage client outside edgeroute;
this module only decides *what* goes *where* with which headers.

Key layout in the bucket::

    _next/static/<...>           build assets (immutable)
    _next/data/<buildId>/<...>   pre-rendered page data
    static-pages/<...>.html      pre-rendered HTML pages
    static/<...>                 legacy static directory
    public/<...>                 public directory
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import anyio

from edgeroute.build.compiler import list_public_files
from edgeroute.config import BuildContext
from edgeroute.errors import ConfigurationError
from edgeroute.manifest import Manifest

IMMUTABLE_CACHE_CONTROL = "public, max-age=31536000, immutable"
SERVER_CACHE_CONTROL = "public, max-age=0, s-maxage=2678400, must-revalidate"
DEFAULT_PUBLIC_DIR_CACHE_CONTROL = "public, max-age=31536000, must-revalidate"

# "/\.(ico|png)$/i" style literals as written in JSON inputs
_REGEX_LITERAL_RE = re.compile(r"^/(.*)/([a-z]*)$", re.DOTALL)


@dataclass(frozen=True, slots=True)
class AssetUpload:
    """One file to upload."""

    source: Path
    key: str
    cache_control: str | None = None


def compile_cache_test(test: str) -> re.Pattern[str]:
    """Compile a ``{test}`` pattern; slash-delimited literals are unwrapped.

    Matching is always case-insensitive.
    """
    m = _REGEX_LITERAL_RE.match(test)
    body = m.group(1) if m else test
    try:
        return re.compile(body, re.IGNORECASE)
    except re.error as exc:
        msg = f"Invalid publicDirectoryCache test {test!r}: {exc}"
        raise ConfigurationError(msg) from exc


def public_cache_control(file_path: str, option: Any = None) -> str | None:
    """Cache-Control for a public/static file.

    - ``None`` or ``True``: the default long-lived header.
    - ``False``: no header.
    - ``{"test": ..., "value": ...}``: *value* when *test* matches the
      file path, the default otherwise.
    """
    if option is False:
        return None
    if option is None or option is True:
        return DEFAULT_PUBLIC_DIR_CACHE_CONTROL
    if not isinstance(option, Mapping):
        msg = "publicDirectoryCache must be a boolean or a {test, value} mapping."
        raise ConfigurationError(msg)

    test = option.get("test")
    value = option.get("value")
    if test and value and compile_cache_test(test).search(file_path):
        return value
    return DEFAULT_PUBLIC_DIR_CACHE_CONTROL


def _page_name(route: str) -> str:
    return "index" if route == "/" else route.lstrip("/")


def _plan(
    context: BuildContext,
    manifest: Manifest,
    prerender_manifest: Mapping[str, Any],
    public_directory_cache: Any,
) -> list[AssetUpload]:
    uploads: dict[str, AssetUpload] = {}

    def _add(source: Path, key: str, cache_control: str | None) -> None:
        uploads[key] = AssetUpload(source=source, key=key, cache_control=cache_control)

    static_build_dir = context.dot_next_dir / "static"
    for rel in list_public_files(static_build_dir):
        _add(static_build_dir / rel, f"_next/static/{rel}", IMMUTABLE_CACHE_CONTROL)

    html_files = [*manifest.html.non_dynamic.values(), *(r.file for r in manifest.html.dynamic)]
    for page_file in html_files:
        key = "static-pages/" + page_file.removeprefix("pages/")
        _add(context.serverless_dir / page_file, key, SERVER_CACHE_CONTROL)

    for route, entry in (prerender_manifest.get("routes") or {}).items():
        name = _page_name(route)
        html = context.pages_dir / f"{name}.html"
        if html.is_file():
            _add(html, f"static-pages/{name}.html", SERVER_CACHE_CONTROL)
        data_route = (entry or {}).get("dataRoute")
        data = context.pages_dir / f"{name}.json"
        if data_route and data.is_file():
            _add(data, data_route.lstrip("/"), SERVER_CACHE_CONTROL)

    for prefix, directory in (("static", context.static_dir), ("public", context.public_dir)):
        for rel in list_public_files(directory):
            _add(
                directory / rel,
                f"{prefix}/{rel}",
                public_cache_control(rel, public_directory_cache),
            )

    return list(uploads.values())


async def plan_asset_uploads(
    context: BuildContext,
    manifest: Manifest,
    prerender_manifest: Mapping[str, Any],
    public_directory_cache: Any = None,
) -> list[AssetUpload]:
    """List every asset to upload for this build, keyed for the bucket layout."""
    return await anyio.to_thread.run_sync(
        _plan, context, manifest, prerender_manifest, public_directory_cache
    )

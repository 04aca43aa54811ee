"""Shared fixtures — a fake compiled application on disk."""

import json
from collections.abc import Callable
from pathlib import Path

import pytest

BUILD_ID = "build-1"

PAGES_MANIFEST = {
    "/": "pages/index.js",
    "/_app": "pages/_app.js",
    "/_document": "pages/_document.js",
    "/post": "pages/post.js",
    "/prerendered": "pages/prerendered.js",
    "/blog/[id]": "pages/blog/[id].js",
    "/[slug]": "pages/[slug].js",
    "/docs/[...slug]": "pages/docs/[...slug].js",
    "/terms": "pages/terms.html",
    "/about": "pages/about.html",
    "/404": "pages/404.html",
    "/products/[pid]": "pages/products/[pid].html",
}

API_PAGES = {
    "/api/users": "pages/api/users.js",
    "/api/users/[id]": "pages/api/users/[id].js",
}

ROUTES_MANIFEST = {
    "version": 3,
    "basePath": "",
    "redirects": [
        {
            "source": "/:path+/",
            "destination": "/:path+",
            "statusCode": 308,
            "regex": "^(?:/((?:[^/]+?)(?:/(?:[^/]+?))*))/$",
        },
        {
            "source": "/old-blog/:slug",
            "destination": "/blog/:slug",
            "statusCode": 301,
            "regex": "^\\/old-blog(?:\\/(?<slug>[^\\/]+?))(?:\\/)?$",
        },
    ],
}

PRERENDER_MANIFEST = {
    "version": 2,
    "routes": {
        "/prerendered": {
            "initialRevalidateSeconds": False,
            "srcRoute": None,
            "dataRoute": f"/_next/data/{BUILD_ID}/prerendered.json",
        }
    },
}


def _write(path: Path, text: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


def write_app(
    root: Path,
    *,
    with_api: bool = True,
    app_config: str | None = None,
    with_traces: bool = True,
) -> Path:
    """Lay out ``.next/`` build output, asset trees and page files under *root*."""
    dot_next = root / ".next"
    serverless = dot_next / "serverless"

    pages = dict(PAGES_MANIFEST)
    if with_api:
        pages.update(API_PAGES)

    _write(serverless / "pages-manifest.json", json.dumps(pages))
    _write(dot_next / "BUILD_ID", BUILD_ID + "\n")
    _write(dot_next / "routes-manifest.json", json.dumps(ROUTES_MANIFEST))
    _write(dot_next / "prerender-manifest.json", json.dumps(PRERENDER_MANIFEST))
    _write(dot_next / "static" / "chunks" / "main.js", "// main")
    _write(dot_next / "cache" / "webpack.pack", "cache")

    for page_file in pages.values():
        _write(serverless / page_file, f"// {page_file}")
    _write(serverless / "pages" / "prerendered.html", "<h1>prerendered</h1>")
    _write(serverless / "pages" / "prerendered.json", '{"pageProps": {}}')

    if with_traces:
        trace = {
            "version": 1,
            "files": [
                "../../../../node_modules/react/index.js",
                "../../../../node_modules/react/package.json",
                "[id].js",
            ],
        }
        _write(serverless / "pages" / "blog" / "[id].js.nft.json", json.dumps(trace))
        _write(root / "node_modules" / "react" / "index.js", "module.exports = {}")
        _write(root / "node_modules" / "react" / "package.json", "{}")
        if with_api:
            api_trace = {"version": 1, "files": ["../../../../node_modules/db/index.js"]}
            _write(serverless / "pages" / "api" / "users.js.nft.json", json.dumps(api_trace))
            _write(root / "node_modules" / "db" / "index.js", "module.exports = {}")

    _write(root / "public" / "favicon.ico", "ico")
    _write(root / "public" / "images" / "logo.png", "png")
    _write(root / "static" / "legacy.css", "body {}")

    if app_config is not None:
        _write(root / "app.config.py", app_config)

    return root


@pytest.fixture
def make_app(tmp_path: Path) -> Callable[..., Path]:
    """Factory for fake applications; keyword arguments go to ``write_app``."""

    def _make(name: str = "app", **kwargs) -> Path:
        return write_app(tmp_path / name, **kwargs)

    return _make


@pytest.fixture
def app_dir(make_app: Callable[..., Path]) -> Path:
    return make_app()

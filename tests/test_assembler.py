"""Tests for edgeroute.build.assembler — bundle layout on disk."""

import json
from pathlib import Path

from edgeroute.build.assembler import (
    assemble_api_bundle,
    assemble_default_bundle,
    default_pages_filter,
    is_prerendered_js_file,
)
from edgeroute.build.compiler import compile_manifest, read_prerender_manifest, read_routes_manifest
from edgeroute.config import BuildContext, BuildOptions


async def _assemble_default(context: BuildContext) -> Path:
    manifest = await compile_manifest(context)
    return await assemble_default_bundle(
        context,
        manifest,
        await read_routes_manifest(context),
        await read_prerender_manifest(context),
    )


async def _assemble_api(context: BuildContext) -> Path:
    manifest = await compile_manifest(context)
    return await assemble_api_bundle(context, manifest, await read_routes_manifest(context))


class TestPrerenderedFiles:
    def test_index_maps_to_root(self) -> None:
        assert is_prerendered_js_file({"routes": {"/": {}}}, "index.js") is True

    def test_named_page(self) -> None:
        assert is_prerendered_js_file({"routes": {"/terms": {}}}, "terms.js") is True

    def test_not_prerendered(self) -> None:
        assert is_prerendered_js_file({"routes": {"/terms": {}}}, "post.js") is False

    def test_non_js(self) -> None:
        assert is_prerendered_js_file({"routes": {"/terms": {}}}, "terms.html") is False


class TestDefaultPagesFilter:
    def test_excludes_api_html_and_json(self, app_dir: Path) -> None:
        pages = app_dir / ".next" / "serverless" / "pages"
        include = default_pages_filter(pages, {"routes": {}}, has_api_routes=True)
        assert include(pages / "index.js") is True
        assert include(pages / "blog") is True
        assert include(pages / "api") is False
        assert include(pages / "api" / "users.js") is False
        assert include(pages / "terms.html") is False
        assert include(pages / "prerendered.json") is False

    def test_prerendered_js_only_dropped_without_api(self, app_dir: Path) -> None:
        pages = app_dir / ".next" / "serverless" / "pages"
        prerender = {"routes": {"/prerendered": {}}}
        assert default_pages_filter(pages, prerender, True)(pages / "prerendered.js") is True
        assert default_pages_filter(pages, prerender, False)(pages / "prerendered.js") is False


class TestDefaultBundle:
    async def test_layout(self, app_dir: Path) -> None:
        bundle = await _assemble_default(BuildContext.create(app_dir))

        assert bundle == app_dir.resolve() / "default-lambda"
        assert "default_handler as handler" in (bundle / "index.py").read_text()
        assert (bundle / "edgeroute" / "runtime" / "handler.py").is_file()
        assert (bundle / "pages" / "index.js").is_file()
        assert (bundle / "pages" / "blog" / "[id].js").is_file()
        assert (bundle / "pages" / "prerendered.js").is_file()
        assert not (bundle / "pages" / "api").exists()
        assert not (bundle / "pages" / "terms.html").exists()
        assert not (bundle / "pages" / "prerendered.json").exists()
        assert not (bundle / "pages" / "blog" / "[id].js.nft.json").exists()
        assert not (bundle / "node_modules").exists()

    async def test_manifests_written(self, app_dir: Path) -> None:
        bundle = await _assemble_default(BuildContext.create(app_dir))

        manifest = json.loads((bundle / "manifest.json").read_text())
        assert manifest["buildId"] == "build-1"
        routes = json.loads((bundle / "routes-manifest.json").read_text())
        assert [r["source"] for r in routes["redirects"]] == ["/old-blog/:slug"]
        prerender = json.loads((bundle / "prerender-manifest.json").read_text())
        assert "/prerendered" in prerender["routes"]

    async def test_traced_dependencies(self, app_dir: Path) -> None:
        context = BuildContext.create(app_dir, options=BuildOptions(use_trace_target=True))
        bundle = await _assemble_default(context)
        assert (bundle / "node_modules" / "react" / "index.js").is_file()
        assert not (bundle / "node_modules" / "react" / "package.json").exists()

    async def test_prerendered_js_dropped_without_api(self, make_app) -> None:
        app = make_app(with_api=False)
        bundle = await _assemble_default(BuildContext.create(app))
        assert not (bundle / "pages" / "prerendered.js").exists()
        assert (bundle / "pages" / "post.js").is_file()

    async def test_custom_handler_copied(self, app_dir: Path) -> None:
        (app_dir / "my_handler.py").write_text("def handler(event, context): ...\n")
        context = BuildContext.create(app_dir, options=BuildOptions(handler="my_handler.py"))
        bundle = await _assemble_default(context)
        assert (bundle / "my_handler.py").is_file()


class TestApiBundle:
    async def test_layout(self, app_dir: Path) -> None:
        bundle = await _assemble_api(BuildContext.create(app_dir))

        assert bundle == app_dir.resolve() / "api-lambda"
        assert "api_handler as handler" in (bundle / "index.py").read_text()
        assert (bundle / "edgeroute" / "routing" / "router.py").is_file()
        assert (bundle / "pages" / "api" / "users.js").is_file()
        assert (bundle / "pages" / "api" / "users" / "[id].js").is_file()
        assert not (bundle / "pages" / "api" / "users.js.nft.json").exists()
        assert not (bundle / "pages" / "index.js").exists()
        assert json.loads((bundle / "manifest.json").read_text())["buildId"] == "build-1"

    async def test_traced_dependencies(self, app_dir: Path) -> None:
        context = BuildContext.create(app_dir, options=BuildOptions(use_trace_target=True))
        bundle = await _assemble_api(context)
        assert (bundle / "node_modules" / "db" / "index.js").is_file()

"""Build orchestration.

One ``Builder.build()`` run:

1. Empty both bundle directories so a failed run cannot leave stale
   artifacts behind.
2. Optionally run the application's own build command.
3. Compile the manifest.
4. Assemble the page bundle, then the API bundle when API routes exist.

Not re-entrant against the same output directory; callers serialize
concurrent builds.  Nothing is retried.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

import anyio

from edgeroute.build.assembler import assemble_api_bundle, assemble_default_bundle, empty_dir
from edgeroute.build.compiler import (
    compile_manifest,
    read_prerender_manifest,
    read_routes_manifest,
)
from edgeroute.config import BuildContext, FunctionGroup
from edgeroute.manifest import Manifest

logger = logging.getLogger("edgeroute.build")

# The application's incremental build cache survives cleaning
_PRESERVED_BUILD_ENTRIES = frozenset({"cache"})


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Outcome of a successful build."""

    manifest: Manifest
    default_bundle: Path
    api_bundle: Path | None = None


class Builder:
    """Turns a compiled application into deployable function bundles.

    Usage::

        context = BuildContext.create("./my-app", "./out")
        result = await Builder(context).build()
        result.manifest.build_id
    """

    __slots__ = ("_context",)

    def __init__(self, context: BuildContext) -> None:
        self._context = context

    @property
    def context(self) -> BuildContext:
        return self._context

    async def clean_build_output(self) -> None:
        """Remove previous application build output, preserving its cache."""
        build_dir = self._context.dot_next_dir

        def _clean() -> None:
            if not build_dir.is_dir():
                return
            for entry in build_dir.iterdir():
                if entry.name in _PRESERVED_BUILD_ENTRIES:
                    continue
                if entry.is_dir():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()

        await anyio.to_thread.run_sync(_clean)

    async def run_build_command(self) -> None:
        """Run the configured application build command in the app directory."""
        options = self._context.options
        if options.cmd is None:
            return
        command = [options.cmd, *options.args]
        logger.info("Running %s", " ".join(command))
        result = await anyio.run_process(
            command,
            cwd=self._context.app_dir,
            env={**os.environ, **options.env},
            check=True,
        )
        if result.stdout:
            logger.debug("%s", result.stdout.decode(errors="replace"))

    async def build(self) -> BuildResult:
        context = self._context

        async with anyio.create_task_group() as tg:
            for group in FunctionGroup:
                tg.start_soon(empty_dir, context.bundle_dir(group))

        if context.options.cmd is not None:
            await self.clean_build_output()
            await self.run_build_command()

        manifest = await compile_manifest(context)
        routes_manifest = await read_routes_manifest(context)
        prerender_manifest = await read_prerender_manifest(context)

        default_bundle = await assemble_default_bundle(
            context, manifest, routes_manifest, prerender_manifest
        )

        api_bundle = None
        if manifest.has_api_routes:
            api_bundle = await assemble_api_bundle(context, manifest, routes_manifest)
        else:
            logger.info("No API routes found; skipping API bundle")

        return BuildResult(manifest=manifest, default_bundle=default_bundle, api_bundle=api_bundle)


async def build(context: BuildContext) -> BuildResult:
    """Run one build for *context*."""
    return await Builder(context).build()

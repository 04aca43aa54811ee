"""Dependency-trace output handling.

Tracing itself happens outside edgeroute.  The application build writes
a ``<page file>.nft.json`` next to every compiled page listing the files
that page needs at runtime, relative to the page's directory::

    {"version": 1, "files": ["../../node_modules/react/index.js", ...]}

This module turns those lists into copy operations for a bundle.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import anyio

logger = logging.getLogger("edgeroute.build")

TRACE_SUFFIX = ".nft.json"


@dataclass(frozen=True, slots=True)
class TracedFile:
    """A dependency to copy: absolute source, destination relative to the bundle."""

    source: Path
    destination: str


def normalize_node_modules(path: str) -> str:
    """Drop everything before ``node_modules`` so traced paths stay inside the bundle.

    ``"../../node_modules/react/index.js"`` -> ``"node_modules/react/index.js"``
    """
    index = path.find("node_modules")
    if index == -1:
        return path
    return path[index:]


async def collect_traced_files(serverless_dir: Path, page_files: Iterable[str]) -> list[TracedFile]:
    """Read trace output for *page_files* (relative to *serverless_dir*).

    Excludes the traced pages themselves (they are copied separately),
    ``package.json``, and files that would land outside the bundle.
    Pages without trace output contribute nothing.
    """
    pages = [serverless_dir / f for f in page_files]
    initial = {p.resolve() for p in pages}
    seen: set[Path] = set()
    result: list[TracedFile] = []

    for page in pages:
        trace_path = anyio.Path(str(page) + TRACE_SUFFIX)
        if not await trace_path.exists():
            logger.debug("No trace output for %s", page)
            continue
        data = json.loads(await trace_path.read_text(encoding="utf-8"))
        for entry in data.get("files", ()):
            source = (page.parent / entry).resolve()
            if source in initial or source in seen or source.name == "package.json":
                continue
            seen.add(source)
            relative = Path(os.path.relpath(source, serverless_dir.resolve())).as_posix()
            destination = normalize_node_modules(relative)
            if ".." in PurePosixPath(destination).parts:
                logger.warning("Skipping %s: traced outside the build and node_modules", source)
                continue
            result.append(TracedFile(source=source, destination=destination))

    return result

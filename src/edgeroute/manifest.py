"""The routing manifest — immutable record built once per build run.

The compiler is the only producer.  Runtime handlers load it read-only
(``manifest.json`` inside each bundle) and hand it to the router.

Dynamic groups serialize as JSON arrays so precedence never depends on
object key order::

    {
      "buildId": "abc",
      "trailingSlash": false,
      "logLambdaExecutionTimes": false,
      "basePath": "",
      "pages": {
        "ssr":  {"nonDynamic": {"/": "pages/index.js"},
                 "dynamic": [{"route": "/blog/[id]", "file": "...", "regex": "..."}]},
        "html": {"nonDynamic": {}, "dynamic": []}
      },
      "apis": {"nonDynamic": {}, "dynamic": []},
      "publicFiles": {"/favicon.ico": "favicon.ico"}
    }
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from edgeroute.routing.classifier import classify
from edgeroute.routing.route import Route


@dataclass(frozen=True, slots=True)
class RouteGroup:
    """Routes of one category, split by dynamic-ness.

    Attributes:
        non_dynamic: Exact template -> page file.
        dynamic: Dynamic routes in sorter order.
    """

    non_dynamic: dict[str, str] = field(default_factory=dict)
    dynamic: tuple[Route, ...] = ()

    def __len__(self) -> int:
        return len(self.non_dynamic) + len(self.dynamic)

    def templates(self) -> Iterator[str]:
        yield from self.non_dynamic
        for route in self.dynamic:
            yield route.template

    def to_dict(self) -> dict[str, Any]:
        return {
            "nonDynamic": dict(self.non_dynamic),
            "dynamic": [
                {"route": r.template, "file": r.file, "regex": r.regex} for r in self.dynamic
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RouteGroup:
        data = data or {}
        dynamic = tuple(
            classify(entry["route"], entry["file"], regex=entry.get("regex"))
            for entry in data.get("dynamic", ())
        )
        return cls(non_dynamic=dict(data.get("nonDynamic", {})), dynamic=dynamic)


@dataclass(frozen=True, slots=True)
class Manifest:
    """Compiled description of an application's routes and assets."""

    build_id: str
    trailing_slash: bool = False
    log_execution_times: bool = False
    base_path: str = ""
    ssr: RouteGroup = field(default_factory=RouteGroup)
    html: RouteGroup = field(default_factory=RouteGroup)
    apis: RouteGroup = field(default_factory=RouteGroup)
    public_files: dict[str, str] = field(default_factory=dict)

    @property
    def has_api_routes(self) -> bool:
        return len(self.apis) > 0

    def page_groups(self) -> tuple[RouteGroup, RouteGroup]:
        return (self.ssr, self.html)

    def templates(self) -> Iterator[str]:
        """Every route template, pages first, then APIs."""
        for group in (self.ssr, self.html, self.apis):
            yield from group.templates()

    def dynamic_routes(self) -> Iterator[Route]:
        for group in (self.ssr, self.html, self.apis):
            yield from group.dynamic

    def to_dict(self) -> dict[str, Any]:
        return {
            "buildId": self.build_id,
            "trailingSlash": self.trailing_slash,
            "logLambdaExecutionTimes": self.log_execution_times,
            "basePath": self.base_path,
            "pages": {"ssr": self.ssr.to_dict(), "html": self.html.to_dict()},
            "apis": self.apis.to_dict(),
            "publicFiles": dict(self.public_files),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Manifest:
        pages = data.get("pages", {})
        return cls(
            build_id=data.get("buildId", ""),
            trailing_slash=bool(data.get("trailingSlash", False)),
            log_execution_times=bool(data.get("logLambdaExecutionTimes", False)),
            base_path=data.get("basePath", ""),
            ssr=RouteGroup.from_dict(pages.get("ssr")),
            html=RouteGroup.from_dict(pages.get("html")),
            apis=RouteGroup.from_dict(data.get("apis")),
            public_files=dict(data.get("publicFiles", {})),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


def load_manifest(path: str | Path) -> Manifest:
    """Read a ``manifest.json`` file written by the compiler."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return Manifest.from_dict(data)

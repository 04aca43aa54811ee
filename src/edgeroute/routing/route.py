"""Route, Segment, and RouteKind frozen dataclasses."""

import re
from dataclasses import dataclass, field
from enum import Enum


class SegmentKind(Enum):
    """How a template segment consumes request path segments.

    The declaration order is the specificity order used by the sorter:
    earlier members are more specific.
    """

    LITERAL = "literal"
    PARAM = "param"
    CATCH_ALL = "catch_all"
    OPTIONAL_CATCH_ALL = "optional_catch_all"


class RouteKind(Enum):
    """Category of a compiled route, derived from its page file."""

    SSR = "ssr"
    HTML = "html"
    API = "api"


@dataclass(frozen=True, slots=True)
class Segment:
    """A parsed segment of a route template.

    Literal:             ``/blog``              (kind=LITERAL, value="blog")
    Param:               ``/[id]``              (kind=PARAM, name="id")
    Catch-all:           ``/[...slug]``         (kind=CATCH_ALL, name="slug")
    Optional catch-all:  ``/[[...slug]]``       (kind=OPTIONAL_CATCH_ALL, name="slug")
    """

    value: str
    kind: SegmentKind = SegmentKind.LITERAL
    name: str | None = None

    @property
    def is_param(self) -> bool:
        return self.kind is not SegmentKind.LITERAL

    @property
    def is_catch_all(self) -> bool:
        return self.kind in (SegmentKind.CATCH_ALL, SegmentKind.OPTIONAL_CATCH_ALL)


@dataclass(frozen=True, slots=True)
class Route:
    """A classified route.

    Created once by the classifier at build time (or rebuilt from the
    manifest at request time).  ``kind`` and ``dynamic`` are fixed at
    construction and never re-evaluated.
    """

    template: str
    file: str
    kind: RouteKind
    segments: tuple[Segment, ...] = ()
    regex: str = ""
    pattern: re.Pattern[str] | None = field(default=None, compare=False, repr=False)

    @property
    def dynamic(self) -> bool:
        return any(seg.is_param for seg in self.segments)

    @property
    def param_names(self) -> tuple[str, ...]:
        return tuple(seg.name for seg in self.segments if seg.is_param and seg.name)

    @property
    def is_api(self) -> bool:
        return self.kind is RouteKind.API


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful dynamic route match.

    Catch-all captures are lists of path segments; single-segment
    captures are strings.  Keys follow the template's declared order.
    """

    route: Route
    params: dict[str, str | list[str]]

"""Route classification and matcher compilation.

Turns a bracketed route template into a token sequence and then into an
anchored regular expression::

    "/blog/[id]"          -> ^/blog/([^/]+?)(?:/)?$
    "/docs/[...slug]"     -> ^/docs/(.+?)(?:/)?$
    "/docs/[[...slug]]"   -> ^/docs(?:/(.+?))?(?:/)?$

Capture groups are positional; parameter names live on the ``Route`` so
names that are not valid Python identifiers (``[post-id]``) still work.
"""

import re

from edgeroute.errors import ConfigurationError
from edgeroute.routing.route import Route, RouteKind, RouteMatch, Segment, SegmentKind

# A bracketed segment occupying a whole path component
_DYNAMIC_SEGMENT_RE = re.compile(r"/\[[^/]+?\](?=/|$)")

API_PAGES_PREFIX = "pages/api"


def is_dynamic_route(template: str) -> bool:
    """Return True if *template* contains a bracketed segment."""
    return _DYNAMIC_SEGMENT_RE.search(template) is not None


def parse_template(template: str) -> tuple[Segment, ...]:
    """Parse a route template into segments, preserving left-to-right order.

    Examples::

        "/"                  -> ()
        "/blog/[id]"         -> (Segment("blog"), Segment("[id]", PARAM, "id"))
        "/docs/[...slug]"    -> (..., Segment("[...slug]", CATCH_ALL, "slug"))
        "/[[...slug]]"       -> (Segment("[[...slug]]", OPTIONAL_CATCH_ALL, "slug"),)

    Raises ``ConfigurationError`` for empty parameter names, duplicated
    names, or a catch-all that is not the final segment.
    """
    parts = [p for p in template.strip("/").split("/") if p]
    segments: list[Segment] = []
    seen: set[str] = set()

    for index, part in enumerate(parts):
        if part.startswith("[[...") and part.endswith("]]"):
            kind = SegmentKind.OPTIONAL_CATCH_ALL
            name = part[5:-2]
        elif part.startswith("[...") and part.endswith("]"):
            kind = SegmentKind.CATCH_ALL
            name = part[4:-1]
        elif part.startswith("[") and part.endswith("]"):
            kind = SegmentKind.PARAM
            name = part[1:-1]
        else:
            segments.append(Segment(value=part))
            continue

        if not name or "[" in name or "]" in name:
            msg = f"Invalid dynamic segment {part!r} in route {template!r}."
            raise ConfigurationError(msg)
        if name in seen:
            msg = f"Route {template!r} declares the parameter {name!r} more than once."
            raise ConfigurationError(msg)
        if kind is not SegmentKind.PARAM and index != len(parts) - 1:
            msg = (
                f"Catch-all segment {part!r} must be the last segment of route {template!r}."
            )
            raise ConfigurationError(msg)

        seen.add(name)
        segments.append(Segment(value=part, kind=kind, name=name))

    return tuple(segments)


def compile_regex(segments: tuple[Segment, ...]) -> str:
    """Build the anchored regex source for a parsed template."""
    parts = ["^"]
    for seg in segments:
        if seg.kind is SegmentKind.LITERAL:
            parts.append("/" + re.escape(seg.value))
        elif seg.kind is SegmentKind.PARAM:
            parts.append("/([^/]+?)")
        elif seg.kind is SegmentKind.CATCH_ALL:
            parts.append("/(.+?)")
        else:
            parts.append("(?:/(.+?))?")
    parts.append("(?:/)?$")
    return "".join(parts)


def route_kind(page_file: str) -> RouteKind:
    """Derive the route category from the compiled page file location."""
    if page_file.endswith(".html"):
        return RouteKind.HTML
    if page_file.startswith(API_PAGES_PREFIX):
        return RouteKind.API
    return RouteKind.SSR


def classify(template: str, page_file: str, *, regex: str | None = None) -> Route:
    """Classify a discovered route and compile its matcher.

    *regex* may be passed when rebuilding a route from a stored manifest
    so the stored matcher is used verbatim.
    """
    segments = parse_template(template)
    source = regex if regex is not None else compile_regex(segments)
    return Route(
        template=template,
        file=page_file,
        kind=route_kind(page_file),
        segments=segments,
        regex=source,
        pattern=re.compile(source),
    )


def match_route(route: Route, path: str) -> RouteMatch | None:
    """Match a decoded request path against a dynamic route.

    Returns a ``RouteMatch`` with captures in declared parameter order,
    or ``None`` when the route does not match.
    """
    if route.pattern is None:
        return None
    m = route.pattern.match(path)
    if m is None:
        return None

    params: dict[str, str | list[str]] = {}
    groups = iter(m.groups())
    for seg in route.segments:
        if not seg.is_param or seg.name is None:
            continue
        value = next(groups)
        if seg.is_catch_all:
            params[seg.name] = value.split("/") if value else []
        else:
            params[seg.name] = value
    return RouteMatch(route=route, params=params)

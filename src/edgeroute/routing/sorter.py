"""Specificity ordering for routes.

The order produced here is the only source of matching precedence: the
request router walks it verbatim and never re-orders at request time.
"""

from collections.abc import Iterable

from edgeroute.routing.route import Route, SegmentKind

# Lower ranks sort first.  A template that ends before another one's
# next segment is a tuple prefix and therefore sorts first as well.
_SEGMENT_RANK: dict[SegmentKind, int] = {
    SegmentKind.LITERAL: 0,
    SegmentKind.PARAM: 1,
    SegmentKind.CATCH_ALL: 2,
    SegmentKind.OPTIONAL_CATCH_ALL: 3,
}


def specificity_key(route: Route) -> tuple[int, tuple[int, ...]]:
    """Sort key: non-dynamic first, then segment ranks left to right."""
    ranks = tuple(_SEGMENT_RANK[seg.kind] for seg in route.segments)
    return (1 if route.dynamic else 0, ranks)


def sort_routes(routes: Iterable[Route]) -> list[Route]:
    """Return *routes* ordered most-specific first.

    - All non-dynamic routes precede all dynamic routes.
    - Dynamic routes compare segment by segment: literal before
      parameter before catch-all before optional catch-all; the first
      differing segment decides.
    - Ties keep discovery order (``sorted`` is stable), which makes the
      function idempotent.
    """
    return sorted(routes, key=specificity_key)

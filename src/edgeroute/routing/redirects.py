"""Redirect engine — trailing-slash normalization and user redirects.

Two sources of redirects:

- The automatic trailing-slash rule, computed directly from the
  manifest's ``trailingSlash`` flag without regex matching.
- User redirects declared in ``routes-manifest.json``.  The framework
  also writes its own trailing-slash rules there; those duplicate the
  automatic rule and are filtered out at build time so the CDN never
  redirects twice.

API paths are never redirected.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from edgeroute.errors import ConfigurationError

TRAILING_SLASH_STATUS = 308

API_PATH_PREFIX = "/api"

# Framework-generated trailing-slash redirects: source -> destination
_AUTOMATIC_RULES: dict[str, str] = {
    "/:path+/": "/:path+",
    "/:file((?:[^/]+/)*[^/]+\\.\\w+)/": "/:file",
    "/:notfile((?:[^/]+/)*[^/\\.]+)": "/:notfile/",
}

# Last path segment looks like a file name ("favicon.ico", "robots.txt")
_FILE_SEGMENT_RE = re.compile(r"[^/]+\.\w+$")

# JavaScript named group syntax as written by the framework
_JS_NAMED_GROUP_RE = re.compile(r"\(\?<(?![=!])")

_DESTINATION_PARAM_RE = re.compile(r":(\w+)[*+]?")


class RedirectScope(Enum):
    """Where a redirect rule came from."""

    TRAILING_SLASH = "trailing-slash"
    CUSTOM = "custom"


@dataclass(frozen=True, slots=True)
class RedirectRule:
    """A resolved redirect: where to send the client and with which status."""

    source: str
    destination: str
    status: int
    scope: RedirectScope


def is_api_path(path: str) -> bool:
    return path == API_PATH_PREFIX or path.startswith(API_PATH_PREFIX + "/")


def is_file_path(path: str) -> bool:
    """True if the last segment of *path* looks like a file name, slash or not."""
    return _FILE_SEGMENT_RE.search(path.rstrip("/")) is not None


def resolve_trailing_slash(
    path: str, trailing_slash: bool, *, base_path: str = ""
) -> RedirectRule | None:
    """Compute the automatic trailing-slash redirect for *path*.

    *path* has the base path already stripped.  Returns ``None`` for
    the root path, API paths, and paths already in the desired form.
    With the policy on, file-like paths are stripped instead of slashed.
    """
    if path in ("", "/") or is_api_path(path):
        return None

    stripped = path.rstrip("/")
    if not stripped:
        return None

    has_slash = path.endswith("/")
    wants_slash = trailing_slash and not is_file_path(stripped)

    if wants_slash and not has_slash:
        target = stripped + "/"
    elif not wants_slash and has_slash:
        target = stripped
    else:
        return None

    return RedirectRule(
        source=base_path + path,
        destination=base_path + target,
        status=TRAILING_SLASH_STATUS,
        scope=RedirectScope.TRAILING_SLASH,
    )


def is_trailing_slash_redirect(redirect: Mapping[str, Any], base_path: str = "") -> bool:
    """True if *redirect* exactly duplicates the automatic trailing-slash rule."""
    source = redirect.get("source", "")
    destination = redirect.get("destination", "")
    if base_path:
        if not source.startswith(base_path) or not destination.startswith(base_path):
            return False
        source = source[len(base_path) :] or "/"
        destination = destination[len(base_path) :] or "/"

    expected = _AUTOMATIC_RULES.get(source)
    if expected is None or destination != expected:
        return False
    return _redirect_status(redirect) == TRAILING_SLASH_STATUS


def filter_redirects(
    redirects: Iterable[Mapping[str, Any]], base_path: str = ""
) -> list[dict[str, Any]]:
    """Drop redirects that the automatic trailing-slash rule already covers."""
    return [dict(r) for r in redirects if not is_trailing_slash_redirect(r, base_path)]


def _redirect_status(redirect: Mapping[str, Any]) -> int:
    if "statusCode" in redirect:
        return int(redirect["statusCode"])
    return 308 if redirect.get("permanent", False) else 307


def source_to_regex(source: str) -> str:
    """Convert a ``/blog/:slug`` style source into an anchored regex.

    Supports ``:name``, ``:name+``, ``:name*``, ``:name?`` and a custom
    group ``:name(pattern)``.
    """
    out = ["^"]
    i = 0
    while i < len(source):
        ch = source[i]
        if ch != ":" or i + 1 >= len(source) or not _is_word(source[i + 1]):
            out.append(re.escape(ch))
            i += 1
            continue

        j = i + 1
        while j < len(source) and _is_word(source[j]):
            j += 1
        name = source[i + 1 : j]

        body = None
        if j < len(source) and source[j] == "(":
            end = _closing_paren(source, j)
            body = source[j + 1 : end]
            j = end + 1

        modifier = ""
        if j < len(source) and source[j] in "*+?":
            modifier = source[j]
            j += 1

        if body is None:
            if modifier == "+":
                body = "[^/]+(?:/[^/]+)*"
            elif modifier == "*":
                body = "(?:[^/]+(?:/[^/]+)*)?"
            else:
                body = "[^/]+"
        group = f"(?P<{name}>{body})"
        out.append(group + "?" if modifier == "?" else group)
        i = j

    out.append("(?:/)?$")
    return "".join(out)


def _is_word(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def _closing_paren(text: str, start: int) -> int:
    depth = 0
    escaped = False
    for index in range(start, len(text)):
        ch = text[index]
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return index
    msg = f"Unbalanced parentheses in redirect source {text!r}."
    raise ConfigurationError(msg)


@dataclass(frozen=True, slots=True)
class UserRedirect:
    """A compiled user redirect from the routes descriptor."""

    source: str
    destination: str
    status: int
    pattern: re.Pattern[str]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UserRedirect:
        regex = data.get("regex")
        if regex:
            regex = _JS_NAMED_GROUP_RE.sub("(?P<", regex)
        else:
            regex = source_to_regex(data["source"])
        return cls(
            source=data["source"],
            destination=data["destination"],
            status=_redirect_status(data),
            pattern=re.compile(regex),
        )

    def match(self, path: str) -> RedirectRule | None:
        m = self.pattern.match(path)
        if m is None:
            return None
        params = {k: v for k, v in m.groupdict().items() if v is not None}

        def _substitute(dm: re.Match[str]) -> str:
            return params.get(dm.group(1), dm.group(0))

        return RedirectRule(
            source=path,
            destination=_DESTINATION_PARAM_RE.sub(_substitute, self.destination),
            status=self.status,
            scope=RedirectScope.CUSTOM,
        )


class RedirectEngine:
    """Resolve a request path to a redirect, automatic rule first.

    Usage::

        engine = RedirectEngine(trailing_slash=True, redirects=descriptor["redirects"])
        rule = engine.resolve("/about")
        # RedirectRule(source="/about", destination="/about/", status=308, ...)
    """

    __slots__ = ("_base_path", "_redirects", "_trailing_slash")

    def __init__(
        self,
        trailing_slash: bool,
        redirects: Iterable[Mapping[str, Any]] = (),
        *,
        base_path: str = "",
    ) -> None:
        self._trailing_slash = trailing_slash
        self._base_path = base_path
        self._redirects = tuple(
            UserRedirect.from_dict(r) for r in filter_redirects(redirects, base_path)
        )

    @property
    def redirects(self) -> tuple[UserRedirect, ...]:
        return self._redirects

    def resolve(self, path: str) -> RedirectRule | None:
        """Return the redirect for *path* (base path stripped), or ``None``."""
        if is_api_path(path):
            return None

        rule = resolve_trailing_slash(path, self._trailing_slash, base_path=self._base_path)
        if rule is not None:
            return rule

        full_path = self._base_path + path if path != "/" else (self._base_path or "/")
        for redirect in self._redirects:
            rule = redirect.match(full_path)
            if rule is not None:
                return rule
        return None

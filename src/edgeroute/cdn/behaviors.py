"""Cache behavior descriptor generation.

Merges the user's per-path CDN configuration with the behaviors this
system needs to route requests::

    generate_distribution(
        {"api/*": {"minTTL": 10}, "/terms": {"defaultTTL": 60}},
        manifest,
        FunctionRefs(default="arn:...:default:1", api="arn:...:api:1"),
        Bucket("my-bucket"),
    )

The ``origin-request`` / ``origin-response`` triggers of the default
behavior and of ``api/*`` are bound to edgeroute's own handlers; user
values under those names are discarded with a warning.  Every other
trigger, and every other behavior, keeps the user's configuration.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from edgeroute.config import DEFAULT_BUCKET_REGION
from edgeroute.errors import ConfigurationError, ValidationError
from edgeroute.manifest import Manifest
from edgeroute.routing.classifier import match_route

logger = logging.getLogger("edgeroute.cdn")

TRIGGERS_KEY = "lambda@edge"
ORIGIN_REQUEST = "origin-request"
ORIGIN_RESPONSE = "origin-response"
RESERVED_TRIGGERS = (ORIGIN_REQUEST, ORIGIN_RESPONSE)

ALL_METHODS = ("HEAD", "DELETE", "POST", "GET", "OPTIONS", "PUT", "PATCH")
READ_METHODS = ("HEAD", "GET")

ONE_YEAR = 31536000
ONE_DAY = 86400

STATIC_PATTERNS = ("_next/static/*", "static/*")
DATA_PATTERN = "_next/data/*"
API_PATTERN = "api/*"
SYSTEM_PATTERNS = frozenset({*STATIC_PATTERNS, DATA_PATTERN, API_PATTERN})

# Top-level keys of the user config that are not path patterns
DISTRIBUTION_KEYS = frozenset({"defaults", "origins", "priceClass"})


@dataclass(frozen=True, slots=True)
class FunctionRefs:
    """Published function version references for trigger bindings."""

    default: str
    api: str | None = None


@dataclass(frozen=True, slots=True)
class Bucket:
    """The object-storage bucket serving as the primary origin."""

    name: str
    region: str = DEFAULT_BUCKET_REGION

    @property
    def url(self) -> str:
        return f"http://{self.name}.s3.{self.region}.amazonaws.com"


@dataclass(frozen=True, slots=True)
class DistributionDescriptor:
    """CDN distribution inputs: default behavior, origins, price class."""

    defaults: dict[str, Any]
    origins: list[Any] = field(default_factory=list)
    price_class: str | None = None

    @property
    def path_patterns(self) -> dict[str, dict[str, Any]]:
        """Behaviors of the primary (bucket) origin, in evaluation order."""
        return self.origins[0]["pathPatterns"] if self.origins else {}

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"defaults": self.defaults, "origins": self.origins}
        if self.price_class:
            data["priceClass"] = self.price_class
        return data


def _split_triggers(
    behavior: Mapping[str, Any] | None,
    *,
    path: str,
    reserved: tuple[str, ...] = (),
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Separate a user behavior into (settings, triggers), dropping *reserved* triggers."""
    if behavior is None:
        return {}, {}
    if not isinstance(behavior, Mapping):
        msg = f"Cache behavior for {path!r} must be a mapping, got {type(behavior).__name__}."
        raise ConfigurationError(msg)

    settings = {k: v for k, v in behavior.items() if k != TRIGGERS_KEY}
    triggers = dict(behavior.get(TRIGGERS_KEY) or {})
    for name in reserved:
        if name in triggers:
            logger.warning(
                "Ignoring %s trigger %r for %r: it is reserved for the edgeroute handler",
                TRIGGERS_KEY,
                name,
                path,
            )
            del triggers[name]
    return settings, triggers


def default_behavior(user: Mapping[str, Any] | None, refs: FunctionRefs) -> dict[str, Any]:
    settings, triggers = _split_triggers(user, path="defaults", reserved=RESERVED_TRIGGERS)
    return {
        "minTTL": 0,
        "defaultTTL": 0,
        "maxTTL": ONE_YEAR,
        "allowedHttpMethods": list(ALL_METHODS),
        "forward": {"cookies": "all", "queryString": True},
        "compress": True,
        **settings,
        TRIGGERS_KEY: {ORIGIN_REQUEST: refs.default, ORIGIN_RESPONSE: refs.default, **triggers},
    }


def static_behavior(user: Mapping[str, Any] | None, path: str) -> dict[str, Any]:
    settings, triggers = _split_triggers(user, path=path)
    behavior = {
        **settings,
        "minTTL": 0,
        "defaultTTL": ONE_DAY,
        "maxTTL": ONE_YEAR,
        "forward": {"headers": "none", "cookies": "none", "queryString": False},
    }
    if triggers:
        behavior[TRIGGERS_KEY] = triggers
    return behavior


def data_behavior(user: Mapping[str, Any] | None, refs: FunctionRefs) -> dict[str, Any]:
    # No reserved-trigger suppression here; only defaults and api/* are guarded.
    settings, triggers = _split_triggers(user, path=DATA_PATTERN)
    return {
        "minTTL": 0,
        "defaultTTL": 0,
        "maxTTL": ONE_YEAR,
        "allowedHttpMethods": list(READ_METHODS),
        **settings,
        TRIGGERS_KEY: {ORIGIN_REQUEST: refs.default, ORIGIN_RESPONSE: refs.default, **triggers},
    }


def api_behavior(user: Mapping[str, Any] | None, api_ref: str) -> dict[str, Any]:
    settings, triggers = _split_triggers(user, path=API_PATTERN, reserved=RESERVED_TRIGGERS)
    return {
        "minTTL": 0,
        "defaultTTL": 0,
        "maxTTL": ONE_YEAR,
        **settings,
        "allowedHttpMethods": list(ALL_METHODS),
        TRIGGERS_KEY: {**triggers, ORIGIN_REQUEST: api_ref},
    }


def _is_api_pattern(path: str) -> bool:
    return path.strip("/").split("/", 1)[0] == "api"


def custom_behavior(
    user: Mapping[str, Any] | None, path: str, refs: FunctionRefs
) -> dict[str, Any]:
    """A user path behavior; ``origin-request`` defaults to the owning handler."""
    settings, triggers = _split_triggers(user, path=path)
    owner = refs.api if _is_api_pattern(path) and refs.api else refs.default
    return {**settings, TRIGGERS_KEY: {ORIGIN_REQUEST: owner, **triggers}}


def _path_has_route(pattern: str, manifest: Manifest) -> bool:
    candidate = "/" + pattern.strip("/")
    templates = list(manifest.templates())

    if candidate.endswith("*"):
        prefix = candidate.rstrip("*").rstrip("/")
        if not prefix:
            return True
        return any(t == prefix or t.startswith(prefix + "/") for t in templates)

    exact = (
        candidate in manifest.ssr.non_dynamic
        or candidate in manifest.html.non_dynamic
        or candidate in manifest.apis.non_dynamic
        or candidate in manifest.public_files
    )
    if exact:
        return True
    if any(match_route(route, candidate) is not None for route in manifest.dynamic_routes()):
        return True
    # A namespace such as "api" that prefixes real routes
    return any(t.startswith(candidate + "/") for t in templates)


def validate_path_patterns(paths: list[str], manifest: Manifest) -> None:
    """Raise ``ValidationError`` naming every path with no matching route."""
    missing = [p for p in paths if not _path_has_route(p, manifest)]
    if missing:
        raise ValidationError(missing)


def expand_origins(origins: list[Any], bucket: Bucket) -> list[Any]:
    """Expand relative origin URLs (``"/path"``) to the bucket origin."""
    expanded: list[Any] = []
    for origin in origins:
        if isinstance(origin, str) and origin.startswith("/"):
            expanded.append(bucket.url + origin)
        elif isinstance(origin, Mapping) and str(origin.get("url", "")).startswith("/"):
            expanded.append({**origin, "url": bucket.url + origin["url"]})
        else:
            expanded.append(origin)
    return expanded


def generate_distribution(
    user_config: Mapping[str, Any] | None,
    manifest: Manifest,
    refs: FunctionRefs,
    bucket: Bucket,
) -> DistributionDescriptor:
    """Build the CDN distribution descriptor.

    Custom path behaviors come first, followed by the system behaviors
    for static assets, data requests and (when API routes exist) the
    API prefix.

    Raises ``ValidationError`` if a custom path has no matching route.
    """
    user = dict(user_config or {})
    custom_paths = [p for p in user if p not in DISTRIBUTION_KEYS and p not in SYSTEM_PATTERNS]
    validate_path_patterns(custom_paths, manifest)

    patterns: dict[str, dict[str, Any]] = {}
    for path in custom_paths:
        patterns[path] = custom_behavior(user[path], path, refs)

    patterns[STATIC_PATTERNS[0]] = static_behavior(user.get(STATIC_PATTERNS[0]), STATIC_PATTERNS[0])
    patterns[DATA_PATTERN] = data_behavior(user.get(DATA_PATTERN), refs)
    if manifest.has_api_routes:
        patterns[API_PATTERN] = api_behavior(user.get(API_PATTERN), refs.api or refs.default)
    elif API_PATTERN in user:
        logger.warning("Ignoring %r cache behavior: the application has no API routes", API_PATTERN)
    patterns[STATIC_PATTERNS[1]] = static_behavior(user.get(STATIC_PATTERNS[1]), STATIC_PATTERNS[1])

    primary = {"url": bucket.url, "private": True, "pathPatterns": patterns}
    return DistributionDescriptor(
        defaults=default_behavior(user.get("defaults"), refs),
        origins=[primary, *expand_origins(list(user.get("origins") or []), bucket)],
        price_class=user.get("priceClass"),
    )

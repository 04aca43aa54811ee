"""Tests for edgeroute.cdn.behaviors — distribution descriptor generation."""

import logging

import pytest

from edgeroute.build.compiler import classify_routes
from edgeroute.cdn.behaviors import (
    ALL_METHODS,
    ONE_DAY,
    ONE_YEAR,
    Bucket,
    FunctionRefs,
    expand_origins,
    generate_distribution,
)
from edgeroute.errors import ValidationError
from edgeroute.manifest import Manifest
from edgeroute.routing.route import RouteKind

PAGES = {
    "/": "pages/index.js",
    "/terms": "pages/terms.html",
    "/blog/[id]": "pages/blog/[id].js",
    "/customers/[...catchAll]": "pages/customers/[...catchAll].js",
    "/api/users": "pages/api/users.js",
    "/api/users/[id]": "pages/api/users/[id].js",
}

REFS = FunctionRefs(default="arn:default:1", api="arn:api:1")
BUCKET = Bucket("assets-bucket")


def _manifest(pages: dict[str, str] = PAGES) -> Manifest:
    groups = classify_routes(pages)
    return Manifest(
        build_id="test",
        ssr=groups[RouteKind.SSR],
        html=groups[RouteKind.HTML],
        apis=groups[RouteKind.API],
        public_files={"/favicon.ico": "favicon.ico"},
    )


def _generate(user_config=None, pages: dict[str, str] = PAGES):
    return generate_distribution(user_config, _manifest(pages), REFS, BUCKET)


class TestDefaults:
    def test_system_defaults(self) -> None:
        defaults = _generate().defaults
        assert defaults["minTTL"] == 0
        assert defaults["defaultTTL"] == 0
        assert defaults["maxTTL"] == ONE_YEAR
        assert defaults["allowedHttpMethods"] == list(ALL_METHODS)
        assert defaults["forward"] == {"cookies": "all", "queryString": True}
        assert defaults["compress"] is True
        assert defaults["lambda@edge"] == {
            "origin-request": "arn:default:1",
            "origin-response": "arn:default:1",
        }

    def test_user_settings_merged(self) -> None:
        defaults = _generate({"defaults": {"ttl": 500, "forward": {"headers": ["Host"]}}}).defaults
        assert defaults["ttl"] == 500
        assert defaults["forward"] == {"headers": ["Host"]}

    def test_reserved_triggers_discarded(self, caplog: pytest.LogCaptureFixture) -> None:
        user = {
            "defaults": {
                "lambda@edge": {
                    "origin-request": "arn:user:req",
                    "origin-response": "arn:user:res",
                    "viewer-request": "arn:user:viewer",
                }
            }
        }
        with caplog.at_level(logging.WARNING, logger="edgeroute.cdn"):
            defaults = _generate(user).defaults
        assert defaults["lambda@edge"] == {
            "origin-request": "arn:default:1",
            "origin-response": "arn:default:1",
            "viewer-request": "arn:user:viewer",
        }
        assert "origin-request" in caplog.text
        assert "origin-response" in caplog.text


class TestSystemBehaviors:
    def test_pattern_order(self) -> None:
        patterns = _generate({"/terms": {"minTTL": 5}}).path_patterns
        assert list(patterns) == [
            "/terms",
            "_next/static/*",
            "_next/data/*",
            "api/*",
            "static/*",
        ]

    def test_static_system_values_win(self) -> None:
        user = {"_next/static/*": {"minTTL": 500, "maxTTL": 1, "compress": True}}
        behavior = _generate(user).path_patterns["_next/static/*"]
        assert behavior["minTTL"] == 0
        assert behavior["defaultTTL"] == ONE_DAY
        assert behavior["maxTTL"] == ONE_YEAR
        assert behavior["forward"] == {"headers": "none", "cookies": "none", "queryString": False}
        assert behavior["compress"] is True

    def test_legacy_static_dir(self) -> None:
        behavior = _generate({"static/*": {"defaultTTL": 1}}).path_patterns["static/*"]
        assert behavior["defaultTTL"] == ONE_DAY

    def test_data_user_values_merged_unmodified(self) -> None:
        user = {
            "_next/data/*": {
                "minTTL": 5,
                "lambda@edge": {"origin-request": "arn:user:data"},
            }
        }
        behavior = _generate(user).path_patterns["_next/data/*"]
        assert behavior["minTTL"] == 5
        assert behavior["allowedHttpMethods"] == ["HEAD", "GET"]
        assert behavior["lambda@edge"] == {
            "origin-request": "arn:user:data",
            "origin-response": "arn:default:1",
        }

    def test_api_reserved_triggers_discarded(self, caplog: pytest.LogCaptureFixture) -> None:
        user = {
            "api/*": {
                "minTTL": 10,
                "allowedHttpMethods": ["GET"],
                "lambda@edge": {
                    "origin-request": "ignored",
                    "origin-response": "ignored",
                    "viewer-request": "arn:user:viewer",
                },
            }
        }
        with caplog.at_level(logging.WARNING, logger="edgeroute.cdn"):
            behavior = _generate(user).path_patterns["api/*"]
        assert behavior["minTTL"] == 10
        assert behavior["allowedHttpMethods"] == list(ALL_METHODS)
        assert behavior["lambda@edge"] == {
            "viewer-request": "arn:user:viewer",
            "origin-request": "arn:api:1",
        }
        assert "api/*" in caplog.text

    def test_no_api_behavior_without_api_routes(self) -> None:
        pages = {"/": "pages/index.js", "/terms": "pages/terms.html"}
        patterns = _generate({"api/*": {"minTTL": 10}}, pages=pages).path_patterns
        assert "api/*" not in patterns


class TestCustomPaths:
    def test_passthrough_with_default_origin_request(self) -> None:
        behavior = _generate({"/terms": {"minTTL": 50, "foo": "bar"}}).path_patterns["/terms"]
        assert behavior == {
            "minTTL": 50,
            "foo": "bar",
            "lambda@edge": {"origin-request": "arn:default:1"},
        }

    def test_user_origin_request_kept(self) -> None:
        user = {"/blog/*": {"lambda@edge": {"origin-request": "arn:user:blog"}}}
        behavior = _generate(user).path_patterns["/blog/*"]
        assert behavior["lambda@edge"] == {"origin-request": "arn:user:blog"}

    def test_api_paths_owned_by_api_function(self) -> None:
        behavior = _generate({"/api/users": {"minTTL": 1}}).path_patterns["/api/users"]
        assert behavior["lambda@edge"]["origin-request"] == "arn:api:1"

    @pytest.mark.parametrize(
        "path",
        [
            "/terms",
            "terms",
            "/blog/123",
            "/blog/*",
            "/customers/a/b",
            "/api/users/7",
            "/api",
            "/favicon.ico",
            "/*",
        ],
    )
    def test_valid_paths(self, path: str) -> None:
        assert path in _generate({path: {}}).path_patterns

    def test_invalid_path(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            _generate({"some-invalid-page-route": {"lambda@edge": {}}})
        assert 'Could not find pages for "some-invalid-page-route"' in str(exc_info.value)
        assert exc_info.value.paths == ("some-invalid-page-route",)

    def test_all_invalid_paths_reported(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            _generate({"/nope": {}, "/terms": {}, "/missing/*": {}})
        assert exc_info.value.paths == ("/nope", "/missing/*")


class TestOrigins:
    def test_relative_origins_expanded(self) -> None:
        origins = expand_origins(
            ["/path", {"url": "/other", "pathPatterns": {}}, "https://ext.example.com"],
            BUCKET,
        )
        assert origins == [
            "http://assets-bucket.s3.us-east-1.amazonaws.com/path",
            {"url": "http://assets-bucket.s3.us-east-1.amazonaws.com/other", "pathPatterns": {}},
            "https://ext.example.com",
        ]

    def test_primary_origin_first(self) -> None:
        descriptor = _generate({"origins": ["https://ext.example.com"]})
        assert descriptor.origins[0]["url"] == BUCKET.url
        assert descriptor.origins[0]["private"] is True
        assert descriptor.origins[1] == "https://ext.example.com"

    def test_bucket_region(self) -> None:
        assert Bucket("b", "eu-west-2").url == "http://b.s3.eu-west-2.amazonaws.com"


class TestDescriptor:
    def test_price_class(self) -> None:
        data = _generate({"priceClass": "PriceClass_100"}).to_dict()
        assert data["priceClass"] == "PriceClass_100"

    def test_no_price_class_by_default(self) -> None:
        assert "priceClass" not in _generate().to_dict()

    def test_api_without_api_ref_uses_default(self) -> None:
        descriptor = generate_distribution(None, _manifest(), FunctionRefs("arn:d"), BUCKET)
        assert descriptor.path_patterns["api/*"]["lambda@edge"]["origin-request"] == "arn:d"

"""Build and deploy configuration.

All configuration objects are frozen dataclasses, immutable after
creation, passed explicitly to every operation.  A build never changes
the working directory; every path is derived from ``BuildContext``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from edgeroute.errors import ConfigurationError

logger = logging.getLogger("edgeroute.config")

DEFAULT_LAMBDA_CODE_DIR = "default-lambda"
API_LAMBDA_CODE_DIR = "api-lambda"

BUILD_DIR_NAME = ".next"
APP_CONFIG_FILE = "app.config.py"

DEFAULT_BUCKET_REGION = "us-east-1"


class FunctionGroup(Enum):
    """The two deployable function groups, keyed by their user-input name."""

    DEFAULT = "defaultLambda"
    API = "apiLambda"

    @property
    def code_dir(self) -> str:
        return DEFAULT_LAMBDA_CODE_DIR if self is FunctionGroup.DEFAULT else API_LAMBDA_CODE_DIR


@dataclass(frozen=True, slots=True)
class BuildOptions:
    """Options for one build run.

    Override what you need::

        options = BuildOptions(use_trace_target=True, log_execution_times=True)
    """

    # Application build command, run in the app directory before compiling.
    # ``None`` means the build output already exists.
    cmd: str | None = None
    args: tuple[str, ...] = ()
    env: dict[str, str] = field(default_factory=dict)

    # Copy traced dependencies (``<page>.nft.json``) into the bundles
    use_trace_target: bool = False

    # Runtime handlers log per-request timings
    log_execution_times: bool = False

    # Custom handler file (relative to the app directory) copied into both bundles
    handler: str | None = None


@dataclass(frozen=True, slots=True)
class BuildContext:
    """Immutable value describing where a build reads and writes.

    Attributes:
        app_dir: Compiled application root (contains ``.next/``).
        output_dir: Directory receiving the two bundle directories.
        options: Build options for this run.
    """

    app_dir: Path
    output_dir: Path
    options: BuildOptions = field(default_factory=BuildOptions)

    @classmethod
    def create(
        cls,
        app_dir: str | Path,
        output_dir: str | Path | None = None,
        options: BuildOptions | None = None,
    ) -> BuildContext:
        root = Path(app_dir).resolve()
        out = Path(output_dir).resolve() if output_dir is not None else root
        return cls(app_dir=root, output_dir=out, options=options or BuildOptions())

    @property
    def dot_next_dir(self) -> Path:
        return self.app_dir / BUILD_DIR_NAME

    @property
    def serverless_dir(self) -> Path:
        return self.dot_next_dir / "serverless"

    @property
    def pages_dir(self) -> Path:
        return self.serverless_dir / "pages"

    @property
    def public_dir(self) -> Path:
        return self.app_dir / "public"

    @property
    def static_dir(self) -> Path:
        return self.app_dir / "static"

    @property
    def app_config_file(self) -> Path:
        return self.app_dir / APP_CONFIG_FILE

    def bundle_dir(self, group: FunctionGroup) -> Path:
        return self.output_dir / group.code_dir


@dataclass(frozen=True, slots=True)
class FunctionSettings:
    """Sizing and identity of one deployed function group."""

    memory: int = 512
    timeout: int = 10
    runtime: str = "python3.12"
    name: str | None = None
    handler: str = "index.handler"


def _per_group(value: Any, group: FunctionGroup, default: Any) -> Any:
    """Resolve a scalar-or-per-group input for *group*.

    ``None`` and ``{}`` yield *default*; a scalar applies to both groups;
    a mapping is read by ``defaultLambda`` / ``apiLambda`` key.
    """
    if value is None:
        return default
    if isinstance(value, Mapping):
        return value.get(group.value, default)
    return value


@dataclass(frozen=True, slots=True)
class DeployInputs:
    """User deploy inputs, parsed from a JSON/dict mapping.

    Fields mirror the input keys::

        {
          "memory": {"defaultLambda": 1024},
          "timeout": 20,
          "runtime": {"apiLambda": "python3.11"},
          "name": "my-site",
          "handler": "custom_handler.handler",
          "cloudfront": {"api/*": {"minTTL": 10}},
          "publicDirectoryCache": {"test": "/\\\\.(ico|png)$/i", "value": "public, max-age=306000"},
          "useServerlessTraceTarget": true,
          "logLambdaExecutionTimes": false,
          "bucketRegion": "eu-west-2",
          "build": {"cmd": "npm", "args": ["run", "build"]}
        }
    """

    memory: Any = None
    timeout: Any = None
    runtime: Any = None
    name: Any = None
    handler: str | None = None
    cloudfront: dict[str, Any] = field(default_factory=dict)
    public_directory_cache: Any = None
    use_trace_target: bool = False
    log_execution_times: bool = False
    bucket_region: str = DEFAULT_BUCKET_REGION
    build: dict[str, Any] = field(default_factory=dict)

    _KEYS = {
        "memory": "memory",
        "timeout": "timeout",
        "runtime": "runtime",
        "name": "name",
        "handler": "handler",
        "cloudfront": "cloudfront",
        "publicDirectoryCache": "public_directory_cache",
        "useServerlessTraceTarget": "use_trace_target",
        "logLambdaExecutionTimes": "log_execution_times",
        "bucketRegion": "bucket_region",
        "build": "build",
    }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> DeployInputs:
        """Build inputs from user data, ignoring (and logging) unknown keys."""
        kwargs: dict[str, Any] = {}
        for key, value in (data or {}).items():
            attr = cls._KEYS.get(key)
            if attr is None:
                logger.warning("Ignoring unknown input %r", key)
                continue
            if value is not None:
                kwargs[attr] = value

        for attr in ("cloudfront", "build"):
            if attr in kwargs and not isinstance(kwargs[attr], Mapping):
                msg = f"Input {attr!r} must be a mapping, got {type(kwargs[attr]).__name__}."
                raise ConfigurationError(msg)
        for attr in ("memory", "timeout"):
            value = kwargs.get(attr)
            if value is not None and not isinstance(value, (int, Mapping)):
                msg = f"Input {attr!r} must be a number or a per-function mapping."
                raise ConfigurationError(msg)
        return cls(**kwargs)

    def function_settings(self, group: FunctionGroup) -> FunctionSettings:
        """Settings for *group*; unset values keep ``FunctionSettings`` defaults."""
        defaults = FunctionSettings()
        return FunctionSettings(
            memory=_per_group(self.memory, group, defaults.memory),
            timeout=_per_group(self.timeout, group, defaults.timeout),
            runtime=_per_group(self.runtime, group, defaults.runtime),
            name=_per_group(self.name, group, defaults.name),
            handler=self.handler or defaults.handler,
        )

    def build_options(self) -> BuildOptions:
        handler_file = None
        if self.handler:
            handler_file = self.handler.split(".", 1)[0] + ".py"
        return BuildOptions(
            cmd=self.build.get("cmd"),
            args=tuple(self.build.get("args", ())),
            env=dict(self.build.get("env", {})),
            use_trace_target=self.use_trace_target,
            log_execution_times=self.log_execution_times,
            handler=handler_file,
        )

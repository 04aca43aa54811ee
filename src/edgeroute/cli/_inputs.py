"""Shared helpers for CLI commands — inputs file and manifest loading."""

import argparse
import json
from pathlib import Path

import anyio

from edgeroute.build.compiler import (
    compile_manifest,
    compile_routes_descriptor,
    read_routes_manifest,
)
from edgeroute.config import BuildContext, DeployInputs
from edgeroute.errors import ConfigurationError
from edgeroute.manifest import Manifest


def load_inputs(path: str | None) -> DeployInputs:
    """Parse the ``--inputs`` JSON file; no file means all defaults."""
    if path is None:
        return DeployInputs()
    inputs_file = Path(path)
    if not inputs_file.is_file():
        msg = f"Inputs file not found: {inputs_file}"
        raise ConfigurationError(msg)
    try:
        data = json.loads(inputs_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        msg = f"Inputs file {inputs_file} is not valid JSON: {exc}"
        raise ConfigurationError(msg) from exc
    if not isinstance(data, dict):
        msg = f"Inputs file {inputs_file} must contain a JSON object."
        raise ConfigurationError(msg)
    return DeployInputs.from_mapping(data)


def make_context(args: argparse.Namespace, inputs: DeployInputs) -> BuildContext:
    return BuildContext.create(
        args.app_dir,
        getattr(args, "output", None),
        inputs.build_options(),
    )


def load_app_routing(context: BuildContext) -> tuple[Manifest, dict]:
    """Compile the manifest and the filtered routes descriptor for *context*."""

    async def _load() -> tuple[Manifest, dict]:
        manifest = await compile_manifest(context)
        return manifest, compile_routes_descriptor(await read_routes_manifest(context))

    return anyio.run(_load)

"""``edgeroute build`` — assemble the two function bundles.

Runs the application build command when the inputs configure one,
compiles the manifest, writes both bundles, and prints where they went
with the resolved settings of each function group.
"""

import argparse

import anyio

from edgeroute.build.builder import build
from edgeroute.cli._inputs import load_inputs, make_context
from edgeroute.config import FunctionGroup


def run_build(args: argparse.Namespace) -> None:
    inputs = load_inputs(args.inputs)
    context = make_context(args, inputs)

    result = anyio.run(build, context)

    print(f"Build {result.manifest.build_id}")
    bundles = {FunctionGroup.DEFAULT: result.default_bundle, FunctionGroup.API: result.api_bundle}
    for group, bundle in bundles.items():
        if bundle is None:
            continue
        settings = inputs.function_settings(group)
        print(
            f"  {group.value}: {bundle} "
            f"(memory={settings.memory}, timeout={settings.timeout}, "
            f"runtime={settings.runtime}, handler={settings.handler})"
        )

"""``edgeroute assets`` — list planned asset uploads with their headers."""

import argparse

import anyio

from edgeroute.build.compiler import read_prerender_manifest
from edgeroute.cdn.assets import plan_asset_uploads
from edgeroute.cli._inputs import load_app_routing, load_inputs, make_context


def run_assets(args: argparse.Namespace) -> None:
    inputs = load_inputs(args.inputs)
    context = make_context(args, inputs)
    manifest, _ = load_app_routing(context)

    async def _plan():
        prerender_manifest = await read_prerender_manifest(context)
        return await plan_asset_uploads(
            context, manifest, prerender_manifest, inputs.public_directory_cache
        )

    uploads = anyio.run(_plan)
    if not uploads:
        print("No assets to upload.")
        return
    for upload in uploads:
        print(f"{upload.key}  [{upload.cache_control or 'no cache-control'}]")

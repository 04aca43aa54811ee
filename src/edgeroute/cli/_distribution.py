"""``edgeroute distribution`` — print the CDN distribution descriptor.

The ``cloudfront`` deploy input supplies the user's per-path behaviors;
custom paths are validated against the compiled manifest.
"""

import argparse
import json

from edgeroute.cdn.behaviors import Bucket, FunctionRefs, generate_distribution
from edgeroute.cli._inputs import load_app_routing, load_inputs, make_context


def run_distribution(args: argparse.Namespace) -> None:
    inputs = load_inputs(args.inputs)
    manifest, _ = load_app_routing(make_context(args, inputs))

    descriptor = generate_distribution(
        inputs.cloudfront,
        manifest,
        FunctionRefs(default=args.default_ref, api=args.api_ref),
        Bucket(args.bucket, inputs.bucket_region),
    )
    print(json.dumps(descriptor.to_dict(), indent=2))

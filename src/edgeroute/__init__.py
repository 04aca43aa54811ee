"""edgeroute — edge function bundles and request routing for compiled web apps.

Turns an application's build output into two deployable function
bundles plus a routing manifest, and routes requests against that
manifest at the edge.

Build::

    import anyio
    from edgeroute import BuildContext, BuildOptions, Builder

    context = BuildContext.create("./my-app", options=BuildOptions(use_trace_target=True))
    result = anyio.run(Builder(context).build)

Route::

    from edgeroute import Router, load_manifest

    router = Router(load_manifest("default-lambda/manifest.json"))
    router.resolve("/blog/42").params  # {"id": "42"}

CDN behaviors::

    from edgeroute import Bucket, FunctionRefs, generate_distribution

    descriptor = generate_distribution(user_config, manifest, refs, Bucket("assets"))
"""

__version__ = "0.1.0"
__all__ = [
    "AssetUpload",
    "Bucket",
    "BuildContext",
    "BuildOptions",
    "BuildResult",
    "Builder",
    "ConfigurationError",
    "DeployInputs",
    "DistributionDescriptor",
    "EdgeRouteError",
    "FunctionGroup",
    "FunctionRefs",
    "FunctionSettings",
    "Manifest",
    "Route",
    "RouteKind",
    "RouteState",
    "Router",
    "RoutingDecision",
    "ValidationError",
    "compile_manifest",
    "generate_distribution",
    "load_manifest",
    "plan_asset_uploads",
]

# Public name -> defining module
_LAZY_IMPORTS: dict[str, str] = {
    "AssetUpload": "edgeroute.cdn.assets",
    "Bucket": "edgeroute.cdn.behaviors",
    "BuildContext": "edgeroute.config",
    "BuildOptions": "edgeroute.config",
    "BuildResult": "edgeroute.build.builder",
    "Builder": "edgeroute.build.builder",
    "ConfigurationError": "edgeroute.errors",
    "DeployInputs": "edgeroute.config",
    "DistributionDescriptor": "edgeroute.cdn.behaviors",
    "EdgeRouteError": "edgeroute.errors",
    "FunctionGroup": "edgeroute.config",
    "FunctionRefs": "edgeroute.cdn.behaviors",
    "FunctionSettings": "edgeroute.config",
    "Manifest": "edgeroute.manifest",
    "Route": "edgeroute.routing.route",
    "RouteKind": "edgeroute.routing.route",
    "RouteState": "edgeroute.routing.router",
    "Router": "edgeroute.routing.router",
    "RoutingDecision": "edgeroute.routing.router",
    "ValidationError": "edgeroute.errors",
    "compile_manifest": "edgeroute.build.compiler",
    "generate_distribution": "edgeroute.cdn.behaviors",
    "load_manifest": "edgeroute.manifest",
    "plan_asset_uploads": "edgeroute.cdn.assets",
}


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import edgeroute`` light inside the deployed handlers, which
    only need the router.
    """
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    return getattr(importlib.import_module(module_name), name)

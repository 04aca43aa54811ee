"""Build pipeline — manifest compilation and bundle assembly.

Reads a compiled application's build output and writes two deployable
function bundles, each carrying the routing manifest.
"""

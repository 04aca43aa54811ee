"""CDN descriptors: cache behaviors and asset uploads."""

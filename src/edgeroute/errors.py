"""edgeroute exception hierarchy.

Shared across the build pipeline, the CDN descriptor generator, and the
CLI so every module raises and catches the same types.  A request that
matches nothing is not an error: the router returns a ``not-found``
decision instead of raising.
"""


class EdgeRouteError(Exception):
    """Base for all edgeroute-specific errors."""


class ConfigurationError(EdgeRouteError):
    """Raised when build output or user input is unusable.

    Typically raised by the manifest compiler when a required build
    artifact is missing, or by the route classifier for malformed
    templates.
    """


class ValidationError(EdgeRouteError):
    """Raised when user CDN input references something the manifest lacks.

    The message always names the offending path pattern.
    """

    def __init__(self, paths: tuple[str, ...] | list[str], detail: str = "") -> None:
        self.paths = tuple(paths)
        joined = ", ".join(f'"{p}"' for p in self.paths)
        default_detail = f"CDN input failed validation. Could not find pages for {joined}"
        super().__init__(detail or default_detail)

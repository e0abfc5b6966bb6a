"""Skerry exception hierarchy.

Shared by the scanner, orchestrator, SSR client, and SSR service so every
module raises and catches the same types. Each render error carries a
stable ``kind`` string: it travels on the wire (``{"error", "kind"}``) and
lands in the ``data-skerry-error`` failure marker for monitoring.
"""

from dataclasses import dataclass


class SkerryError(Exception):
    """Base for all skerry-specific errors."""


class ConfigurationError(SkerryError):
    """Raised when islands or SSR configuration is invalid."""


class RenderError(SkerryError):
    """Base for failures while producing HTML for a single component."""

    kind = "render"

    def __init__(self, message: str, *, component: str | None = None) -> None:
        self.message = message
        self.component = component
        super().__init__(message)


class ComponentResolutionError(RenderError):
    """The referenced component cannot be located."""

    kind = "resolution"


class CompilationError(RenderError):
    """The component source failed to compile."""

    kind = "compilation"


class RenderExecutionError(RenderError):
    """The component raised while rendering."""

    kind = "render"


class MalformedRenderRequestError(RenderError):
    """A render entry or tree node has props, children, or inner HTML of the wrong type."""

    kind = "render"


class TransportError(RenderError):
    """Network, timeout, or protocol failure talking to the SSR service.

    For batch and tree calls this is a wholesale failure: the orchestrator
    falls back to one individual call per affected component.
    """

    kind = "transport"


class PayloadTooLargeError(RenderError):
    """Request exceeded the configured payload limit. Never retried."""

    kind = "payload_too_large"

    def __init__(
        self,
        message: str = "Payload too large",
        *,
        size: int | None = None,
        limit: int | None = None,
        component: str | None = None,
    ) -> None:
        self.size = size
        self.limit = limit
        super().__init__(message, component=component)


class NestingConfigurationError(RenderError):
    """Nested component tags found but tree rendering is disabled."""

    kind = "configuration"


class FullPageRenderError(SkerryError):
    """A full-page render failed.

    Unlike island errors this propagates to the host framework: there is
    no partial page to fall back to.
    """

    def __init__(self, message: str, *, kind: str = "render", component: str | None = None) -> None:
        self.kind = kind
        self.component = component
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class HTTPError(SkerryError):
    """An error that maps directly to an HTTP status code in the SSR service.

    Raised while decoding a request. The ASGI app catches these and answers
    with a JSON ``{"error", "kind"}`` body, never a bare status.
    """

    status: int
    detail: str = ""
    kind: str = "bad_request"

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)

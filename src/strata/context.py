"""Page contexts — the ``ctx`` handed to every page layer.

The engine passes ``ctx`` through untouched and never reads it, so any
object works. These frozen dataclasses are the shapes the page flavor
documents for the two kinds of page props.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class ServerContext:
    """Per-request context for server-side page props.

    Attributes:
        request: The framework's request object.
        response: The framework's response object.
        params: Dynamic route parameters (e.g. ``{"slug": "intro"}``).
        query: Query string parameters.
        resolved_url: The request URL with route params filled in.
        locale: Active locale, when the framework does i18n.
    """

    request: Any
    response: Any
    params: Mapping[str, str] = field(default_factory=dict)
    query: Mapping[str, str] = field(default_factory=dict)
    resolved_url: str = ""
    locale: str | None = None


@dataclass(frozen=True, slots=True)
class StaticContext:
    """Build-time context for static page props.

    Attributes:
        params: Dynamic route parameters for the page being generated.
        preview: True when rendering a draft/preview.
        preview_data: Framework-provided preview payload.
        locale: Locale being generated.
    """

    params: Mapping[str, str] = field(default_factory=dict)
    preview: bool = False
    preview_data: Any = None
    locale: str | None = None

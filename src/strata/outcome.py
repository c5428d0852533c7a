"""Layer outcomes — what a layer or handler may hand back.

A layer returns one of:

- ``None`` or an empty mapping: nothing to contribute, keep going
- a mapping with accumulator partials: ``{"data": {...}, "props": {...}}``
- a terminal outcome, which ends the chain immediately

Terminal outcomes come in two spellings, a mapping or a frozen dataclass::

    return {"not_found": True}          # or NotFound()
    return {"redirect": Redirect("/")}  # or Redirect("/")
    return {"stop": True}               # or Stop()  (API flavor)

Whatever spelling the layer used is handed back to the framework
verbatim. Parsing normalizes everything else into a :class:`LayerOutcome`.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from strata.config import PipelineConfig
from strata.errors import LayerResultError

logger = logging.getLogger("strata.engine")


@dataclass(frozen=True, slots=True)
class NotFound:
    """Page flavor terminal: render the framework's 404 page."""


@dataclass(frozen=True, slots=True)
class Redirect:
    """Page flavor terminal: redirect to another location.

    Opaque to the engine; the framework decides how to send it.

    Attributes:
        destination: Target path or URL.
        permanent: Permanent (308) vs temporary (307) when no explicit
            status code is given.
        status_code: Explicit status code, overrides ``permanent``.
        base_path: Whether the framework should prefix its base path.
            ``None`` leaves the framework default.
    """

    destination: str
    permanent: bool = False
    status_code: int | None = None
    base_path: bool | None = None

    @property
    def status(self) -> int:
        """The effective HTTP status code."""
        if self.status_code is not None:
            return self.status_code
        return 308 if self.permanent else 307


@dataclass(frozen=True, slots=True)
class Stop:
    """API flavor terminal: the layer already wrote the response."""


@dataclass(frozen=True, slots=True)
class LayerOutcome:
    """Normalized result of one layer invocation.

    Exactly one of three states is active: empty (no partials, no
    terminal), partials, or terminal.

    Attributes:
        partials: ``(accumulator_name, partial)`` pairs, in the order the
            accumulators are declared by the flavor.
        terminal: The raw terminal value as returned by the layer, or
            ``None`` when the chain continues.
    """

    partials: tuple[tuple[str, Mapping[str, Any]], ...] = ()
    terminal: Any = None

    @property
    def is_terminal(self) -> bool:
        return self.terminal is not None


EMPTY = LayerOutcome()

PAGE_ACCUMULATORS = ("data", "props")
API_ACCUMULATORS = ("data",)

_PAGE_TERMINAL_KEYS = frozenset({"not_found", "redirect"})
_API_TERMINAL_KEYS = frozenset({"stop"})


def is_page_terminal(result: Any) -> bool:
    """Whether a page-flavor result ends the chain (not found or redirect)."""
    if isinstance(result, (NotFound, Redirect)):
        return True
    return isinstance(result, Mapping) and bool(
        result.get("not_found") or result.get("redirect") is not None
    )


def parse_page_result(result: Any, *, layer: str, config: PipelineConfig) -> LayerOutcome:
    """Normalize a page-flavor layer or handler result."""
    if is_page_terminal(result):
        return LayerOutcome(terminal=result)
    return _parse_partials(
        result,
        accumulators=PAGE_ACCUMULATORS,
        terminal_keys=_PAGE_TERMINAL_KEYS,
        layer=layer,
        config=config,
    )


def parse_api_result(result: Any, *, layer: str, config: PipelineConfig) -> LayerOutcome:
    """Normalize an API-flavor layer result."""
    if isinstance(result, Stop):
        return LayerOutcome(terminal=result)
    if isinstance(result, Mapping) and result.get("stop"):
        return LayerOutcome(terminal=result)
    return _parse_partials(
        result,
        accumulators=API_ACCUMULATORS,
        terminal_keys=_API_TERMINAL_KEYS,
        layer=layer,
        config=config,
    )


def _parse_partials(
    result: Any,
    *,
    accumulators: tuple[str, ...],
    terminal_keys: frozenset[str],
    layer: str,
    config: PipelineConfig,
) -> LayerOutcome:
    if result is None:
        return EMPTY
    if not isinstance(result, Mapping):
        return _malformed(
            layer,
            f"expected None or a mapping, got {type(result).__name__}",
            config,
        )

    unknown = set(result) - set(accumulators) - terminal_keys
    if unknown:
        detail = f"unknown keys {sorted(unknown)!r}; expected any of {list(accumulators)!r}"
        if config.strict_results:
            raise LayerResultError(layer=layer, detail=detail)
        logger.warning("Ignoring %s from layer %r", detail, layer)

    partials: list[tuple[str, Mapping[str, Any]]] = []
    for name in accumulators:
        partial = result.get(name)
        if partial is None:
            continue
        if not isinstance(partial, Mapping):
            detail = f"{name!r} must be a mapping, got {type(partial).__name__}"
            if config.strict_results:
                raise LayerResultError(layer=layer, detail=detail)
            logger.warning("Ignoring %s from layer %r", detail, layer)
            continue
        partials.append((name, partial))
    return LayerOutcome(partials=tuple(partials)) if partials else EMPTY


def _malformed(layer: str, detail: str, config: PipelineConfig) -> LayerOutcome:
    if config.strict_results:
        raise LayerResultError(layer=layer, detail=detail)
    logger.warning("Ignoring result of layer %r: %s", layer, detail)
    return EMPTY

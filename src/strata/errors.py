"""Strata exception hierarchy.

Shared across the builder, engine, and flavor adapters so every module
raises and catches the same types.

Errors raised *inside* a layer are never wrapped: they propagate to the
caller of the compiled handler unchanged.
"""

from dataclasses import dataclass


class StrataError(Exception):
    """Base for all strata-specific errors."""


class ConfigurationError(StrataError):
    """Raised when a pipeline is assembled incorrectly.

    Typically raised by ``.use()`` or ``.handler()`` at route-definition
    time, before any request is served.
    """


@dataclass(slots=True, eq=False)
class LayerContractError(ConfigurationError):
    """A constrained layer ran before its expected accumulator shape existed.

    Raised immediately before the layer would have been invoked, so the
    layer itself never sees incomplete data.
    """

    layer: str
    accumulator: str
    key: str
    expected: str
    actual: str | None = None

    def __str__(self) -> str:
        if self.actual is None:
            return (
                f"Layer {self.layer!r} expects {self.accumulator}[{self.key!r}] "
                f"({self.expected}), but no earlier layer provided it"
            )
        return (
            f"Layer {self.layer!r} expects {self.accumulator}[{self.key!r}] "
            f"to be {self.expected}, got {self.actual}"
        )


@dataclass(slots=True, eq=False)
class LayerResultError(StrataError):
    """A layer or handler returned a value that is not a valid outcome.

    Only raised when ``PipelineConfig.strict_results`` is enabled;
    otherwise malformed results are logged and treated as empty.
    """

    layer: str
    detail: str

    def __str__(self) -> str:
        return f"Layer {self.layer!r} returned an invalid result: {self.detail}"

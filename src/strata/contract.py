"""Constrained reusable layers.

A reusable layer can declare what it expects to already be in the
accumulators when it runs::

    require_client = server_layer_with_context(data={"client": str})

    @require_client
    def check_client(data):
        if data["client"] == "test":
            return NotFound()
        return None

The expectation travels with the layer as a :class:`LayerContract`. The
engine checks it against the live accumulators immediately before each
invocation and raises :class:`~strata.errors.LayerContractError` when an
earlier layer did not provide a key (or provided the wrong type).
"""

from __future__ import annotations

import types
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeAlias, Union, get_args, get_origin

from strata._internal.invoke import callable_name
from strata._internal.types import Accumulator, Layer
from strata.errors import LayerContractError

# Expected shape: {"key": type} or just the key names
Shape: TypeAlias = Mapping[str, Any] | Iterable[str]


@dataclass(frozen=True, slots=True)
class LayerContract:
    """Expected accumulator shape for one layer.

    Attributes:
        expects: ``(accumulator_name, ((key, type_or_None), ...))`` pairs.
            ``None`` as a type means "present, any value".
    """

    expects: tuple[tuple[str, tuple[tuple[str, Any], ...]], ...] = ()

    @classmethod
    def build(cls, **shapes: Shape | None) -> LayerContract:
        """Build a contract from per-accumulator shapes.

        ``LayerContract.build(data={"user": str}, props=["title"])``
        """
        expects = []
        for accumulator, shape in shapes.items():
            keys = _normalize_shape(shape)
            if keys:
                expects.append((accumulator, keys))
        return cls(expects=tuple(expects))

    def check(self, layer: str, accumulators: Mapping[str, Accumulator]) -> None:
        """Raise ``LayerContractError`` on the first unmet expectation."""
        for accumulator, keys in self.expects:
            values = accumulators.get(accumulator, {})
            for key, expected in keys:
                if key not in values:
                    raise LayerContractError(
                        layer=layer,
                        accumulator=accumulator,
                        key=key,
                        expected=_type_name(expected),
                    )
                if expected is not None and not isinstance(values[key], expected):
                    raise LayerContractError(
                        layer=layer,
                        accumulator=accumulator,
                        key=key,
                        expected=_type_name(expected),
                        actual=type(values[key]).__name__,
                    )


class ConstrainedLayer:
    """A layer paired with the accumulator shape it expects.

    Calling it calls the wrapped layer unchanged; the contract is only
    consulted by the engine.
    """

    __slots__ = ("contract", "func")

    def __init__(self, func: Layer, contract: LayerContract) -> None:
        self.func = func
        self.contract = contract

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.func(*args, **kwargs)

    def __repr__(self) -> str:
        return f"<ConstrainedLayer {callable_name(self.func)}>"


def with_context(**shapes: Shape | None) -> Callable[[Layer], ConstrainedLayer]:
    """Return a decorator attaching a contract for the given shapes."""
    contract = LayerContract.build(**shapes)

    def decorate(layer: Layer) -> ConstrainedLayer:
        if isinstance(layer, ConstrainedLayer):
            # Re-wrapping widens the expectation
            merged = LayerContract(expects=layer.contract.expects + contract.expects)
            return ConstrainedLayer(layer.func, merged)
        return ConstrainedLayer(layer, contract)

    return decorate


def unwrap(layer: Layer) -> tuple[Layer, LayerContract | None]:
    """Split a possibly-constrained layer into ``(func, contract)``."""
    if isinstance(layer, ConstrainedLayer):
        return layer.func, layer.contract
    return layer, None


def _normalize_shape(shape: Shape | None) -> tuple[tuple[str, Any], ...]:
    if shape is None:
        return ()
    if isinstance(shape, str):
        return ((shape, None),)
    if isinstance(shape, Mapping):
        return tuple((key, _checkable(expected)) for key, expected in shape.items())
    return tuple((key, None) for key in shape)


def _checkable(expected: Any) -> Any:
    """Reduce an annotation to something ``isinstance`` accepts, or ``None``.

    ``Any``/``object``/``Literal[...]`` are not checked; ``list[str]`` is
    checked as ``list``. A union becomes a tuple of its reduced members,
    unchecked if any member is.
    """
    if expected is Any or expected is object:
        return None
    origin = get_origin(expected)
    if origin is Union or origin is types.UnionType:
        members = tuple(_checkable(member) for member in get_args(expected))
        if any(member is None for member in members):
            return None
        return members
    if origin is not None:
        return origin if isinstance(origin, type) else None
    return expected if isinstance(expected, type) else None


def _type_name(expected: Any) -> str:
    if expected is None:
        return "any value"
    if isinstance(expected, tuple):
        return " | ".join(_type_name(member) for member in expected)
    return getattr(expected, "__name__", None) or repr(expected)

"""Shared type aliases used across strata modules."""

from collections.abc import Awaitable, Callable
from typing import Any, TypeAlias

# One accumulator: string keys, arbitrary values
Accumulator: TypeAlias = dict[str, Any]

# User-defined layer, parameters injected by name
Layer: TypeAlias = Callable[..., Any | Awaitable[Any]]

# Final handler, same calling convention as a layer
Handler: TypeAlias = Callable[..., Any | Awaitable[Any]]

"""Accumulator merging.

Each layer may hand back a partial mapping for ``data`` and/or ``props``.
The partial is folded into the live accumulator with a shallow merge:
later layers win for overlapping keys, nothing is ever removed, and
nested values are replaced wholesale rather than merged.
"""

from collections.abc import Mapping
from typing import Any

from strata._internal.types import Accumulator


def merge_into(accumulator: Accumulator, partial: Mapping[str, Any] | None) -> Accumulator:
    """Shallow-merge ``partial`` into ``accumulator`` in place.

    The accumulator is owned by a single execution, so it is updated
    rather than copied::

        acc = {"a": "a"}
        merge_into(acc, {"a": 0, "b": "b"})   # {"a": 0, "b": "b"}
        merge_into(acc, None)                 # unchanged

    Returns the same accumulator for convenience.
    """
    if partial:
        accumulator.update(partial)
    return accumulator


def new_accumulators(*names: str) -> dict[str, Accumulator]:
    """Fresh, empty accumulators for one execution."""
    return {name: {} for name in names}

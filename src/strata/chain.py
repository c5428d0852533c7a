"""Persistent, append-only layer chains.

A chain is a linked list of :class:`LayerSpec` records read from the tail.
Appending allocates one node that points at the previous tail, so two
builders branched from the same base share the base's nodes and neither
can observe the other's additions.

``snapshot()`` materializes the chain into a tuple once, when a handler
is compiled; the tuple is what runs on every request.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from strata._internal.types import Layer
from strata.contract import LayerContract


@dataclass(frozen=True, slots=True)
class LayerSpec:
    """A layer prepared for execution.

    Built once by ``Builder.use()``; never rebuilt per request.

    Attributes:
        func: The callable to invoke (constraint wrapper already removed).
        name: Display name for errors and logs.
        params: Parameter names to inject, or ``None`` to inject every
            context field (the layer takes ``**kwargs``).
        contract: Expected accumulator shape, if any.
    """

    func: Layer
    name: str
    params: tuple[str, ...] | None
    contract: LayerContract | None = None


@dataclass(frozen=True, slots=True)
class _Node:
    spec: LayerSpec
    parent: _Node | None


class Chain:
    """Immutable ordered sequence of layers with structural sharing.

    ::

        base = Chain().append(auth)
        a = base.append(load_client)   # auth, load_client
        b = base.append(load_team)     # auth, load_team
        # base is still just (auth,)
    """

    __slots__ = ("_length", "_tail")

    def __init__(self, _tail: _Node | None = None, _length: int = 0) -> None:
        self._tail = _tail
        self._length = _length

    def append(self, spec: LayerSpec) -> Chain:
        """Return a new chain ending in ``spec``. O(1)."""
        return Chain(_Node(spec, self._tail), self._length + 1)

    def snapshot(self) -> tuple[LayerSpec, ...]:
        """All layers in execution order."""
        specs: list[LayerSpec] = []
        node = self._tail
        while node is not None:
            specs.append(node.spec)
            node = node.parent
        specs.reverse()
        return tuple(specs)

    def __iter__(self) -> Iterator[LayerSpec]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return self._length

    def __repr__(self) -> str:
        names = ", ".join(spec.name for spec in self.snapshot())
        return f"Chain([{names}])"

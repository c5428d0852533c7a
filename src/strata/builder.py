"""Immutable chain builder shared by the page and API flavors.

``use()`` never mutates: it returns a new builder of the same flavor whose
chain is the old chain plus one layer. A builder can therefore be reused
as a base for any number of routes::

    base = server_middleware().use(load_user)

    dashboard = base.use(load_team).handler(render_dashboard)
    settings = base.use(load_settings).handler(render_settings)
    # dashboard never runs load_settings, settings never runs load_team

``handler()`` compiles the current chain into a standalone entry point.
Layers attached to the builder afterwards do not reach handlers that were
already compiled.
"""

import logging
from collections.abc import Mapping
from typing import Any, ClassVar, Self

from strata._internal.invoke import callable_name, injectable_params
from strata._internal.types import Accumulator, Handler, Layer
from strata.chain import Chain, LayerSpec
from strata.config import DEFAULT_CONFIG, PipelineConfig
from strata.contract import unwrap
from strata.engine import call
from strata.errors import ConfigurationError

logger = logging.getLogger("strata.builder")


class Builder:
    """Base class for flavor builders.

    Subclasses declare ``fields``, the names a layer may take as
    parameters, and implement ``handler()``.
    """

    __slots__ = ("_chain", "_config")

    fields: ClassVar[frozenset[str]] = frozenset()

    def __init__(
        self,
        chain: Chain | None = None,
        *,
        config: PipelineConfig | None = None,
    ) -> None:
        self._chain = chain if chain is not None else Chain()
        self._config = config or DEFAULT_CONFIG

    def use(self, layer: Layer) -> Self:
        """Return a new builder with ``layer`` appended to the chain.

        Raises:
            ConfigurationError: ``layer`` is not callable, or requires a
                parameter this flavor cannot inject.
        """
        spec = self._prepare(layer, role="Layer")
        logger.debug(
            "Attached layer %r to %s at position %d",
            spec.name,
            type(self).__name__,
            len(self._chain) + 1,
        )
        return type(self)(self._chain.append(spec), config=self._config)

    @property
    def layers(self) -> tuple[LayerSpec, ...]:
        """The layers attached so far, in execution order."""
        return self._chain.snapshot()

    @property
    def config(self) -> PipelineConfig:
        return self._config

    def _prepare(self, layer: Layer, *, role: str) -> LayerSpec:
        if not callable(layer):
            msg = f"{role} must be callable, got {type(layer).__name__}"
            raise ConfigurationError(msg)
        func, contract = unwrap(layer)
        name = callable_name(func)
        params = injectable_params(func, self.fields, name=name)
        return LayerSpec(func=func, name=name, params=params, contract=contract)

    def __len__(self) -> int:
        return len(self._chain)

    def __repr__(self) -> str:
        names = ", ".join(spec.name for spec in self.layers)
        return f"{type(self).__name__}([{names}])"


class CompiledHandler:
    """Executable entry point produced by ``Builder.handler()``.

    Holds a read-only snapshot of the chain; safe to share across any
    number of concurrent requests. Per-request state lives only in the
    accumulators allocated by each call.
    """

    __slots__ = ("_config", "final", "layers")

    def __init__(
        self,
        layers: tuple[LayerSpec, ...],
        final: LayerSpec | None,
        config: PipelineConfig,
    ) -> None:
        self.layers = layers
        self.final = final
        self._config = config

    async def _call_final(
        self,
        fields: Mapping[str, Any],
        accumulators: dict[str, Accumulator],
    ) -> Any:
        final = self.final
        if final is None:
            return None
        if final.contract is not None and self._config.check_contracts:
            final.contract.check(final.name, accumulators)
        return await call(final.func, final.params, {**fields, **accumulators}, self._config)

    def __repr__(self) -> str:
        names = ", ".join(spec.name for spec in self.layers)
        final = self.final.name if self.final is not None else None
        return f"<{type(self).__name__} layers=[{names}] handler={final}>"


def identity_layer(layer: Handler) -> Handler:
    """Mark a callable as a reusable layer. Returns it unchanged."""
    return layer

"""Layer execution — run a chain snapshot against one request.

Layers run strictly in order. Each is awaited to completion before the
next one starts, because later layers read what earlier ones wrote.
A terminal outcome stops the run on the spot: no further layer and no
final handler executes, and whatever was accumulated so far is dropped.

Exceptions raised by a layer are not caught here. They propagate to the
caller of the compiled handler, which is the framework's error boundary.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeAlias

from strata._internal.invoke import invoke, invoke_offloaded
from strata._internal.types import Accumulator
from strata.chain import LayerSpec
from strata.config import PipelineConfig
from strata.merge import merge_into
from strata.outcome import LayerOutcome

logger = logging.getLogger("strata.engine")

# parse(result, *, layer=..., config=...) -> LayerOutcome
ResultParser: TypeAlias = Callable[..., LayerOutcome]


async def run_layers(
    layers: tuple[LayerSpec, ...],
    fields: Mapping[str, Any],
    accumulators: dict[str, Accumulator],
    parse: ResultParser,
    config: PipelineConfig,
) -> Any:
    """Run every layer in order, merging partials into ``accumulators``.

    Args:
        layers: The compiled chain snapshot.
        fields: Flavor context fields (``ctx`` or ``request``/``response``).
        accumulators: Fresh accumulators for this run, updated in place.
            Layers receive the live dicts, so they always see every key
            written before them.
        parse: Flavor-specific result normalizer.
        config: Pipeline configuration.

    Returns:
        The terminal value exactly as a layer returned it, or ``None``
        when every layer ran.
    """
    available = {**fields, **accumulators}
    for index, spec in enumerate(layers):
        if spec.contract is not None and config.check_contracts:
            spec.contract.check(spec.name, accumulators)

        result = await call(spec.func, spec.params, available, config)
        outcome = parse(result, layer=spec.name, config=config)

        if outcome.is_terminal:
            logger.debug(
                "Layer %d/%d %r short-circuited the chain: %r",
                index + 1,
                len(layers),
                spec.name,
                outcome.terminal,
            )
            return outcome.terminal

        for name, partial in outcome.partials:
            merge_into(accumulators[name], partial)
    return None


async def call(
    func: Callable[..., Any],
    params: tuple[str, ...] | None,
    available: Mapping[str, Any],
    config: PipelineConfig,
) -> Any:
    """Invoke a layer or handler with its injected parameters."""
    if params is None:
        kwargs = dict(available)
    else:
        kwargs = {name: available[name] for name in params}
    if config.offload_sync:
        return await invoke_offloaded(func, **kwargs)
    return await invoke(func, **kwargs)

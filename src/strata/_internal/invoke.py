"""Invoke helpers — call sync or async layers uniformly.

Layers and handlers can be ``def`` or ``async def``. Any code that calls
a user-provided layer must handle both cases. This module keeps the
sync/async check, and the by-name parameter injection, in one place.

Usage::

    from strata._internal.invoke import ALL_PARAMS, injectable_params, invoke

    params = injectable_params(layer, available, name="load_user")
    if params is ALL_PARAMS:
        params = tuple(available)
    result = await invoke(layer, **{p: available[p] for p in params})
"""

import functools
import inspect
from collections.abc import Callable, Collection
from typing import Any

import anyio.to_thread

from strata.errors import ConfigurationError

# Sentinel: the callable takes **kwargs, inject every field
ALL_PARAMS = None


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's awaitable.

    Works with both sync and async callables::

        # sync: returns immediately, no await needed
        def load_user(ctx):
            return {"data": {"user": ctx.request.cookies.get("USER")}}

        # async: returns a coroutine, awaited automatically
        async def load_user(ctx):
            user = await fetch_user(ctx.request)
            return {"data": {"user": user}}
    """
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


async def invoke_offloaded(handler: Any, **kwargs: Any) -> Any:
    """Like :func:`invoke`, but run sync callables in a worker thread.

    Coroutine functions still run on the event loop. A sync callable that
    happens to return an awaitable has it awaited back on the loop.
    """
    if _is_async_callable(handler):
        return await invoke(handler, **kwargs)
    result = await anyio.to_thread.run_sync(functools.partial(handler, **kwargs))
    if inspect.isawaitable(result):
        result = await result
    return result


def injectable_params(
    func: Callable[..., Any],
    available: Collection[str],
    *,
    name: str,
) -> tuple[str, ...] | None:
    """Resolve which context fields a layer receives, by parameter name.

    Returns the tuple of parameter names to pass as keywords, or
    ``ALL_PARAMS`` when the callable takes ``**kwargs``::

        def layer(ctx, data): ...        # -> ("ctx", "data")
        def layer(**fields): ...         # -> ALL_PARAMS
        def layer(): ...                 # -> ()

    Raises:
        ConfigurationError: A required parameter has no matching context
            field, or the callable needs positional-only arguments.
    """
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        # Builtins and some C callables have no introspectable signature
        return ALL_PARAMS

    names: list[str] = []
    for param in sig.parameters.values():
        if param.kind is inspect.Parameter.VAR_KEYWORD:
            return ALL_PARAMS
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            continue
        if param.name in available and param.kind is not inspect.Parameter.POSITIONAL_ONLY:
            names.append(param.name)
            continue
        if param.default is not inspect.Parameter.empty:
            continue
        if param.kind is inspect.Parameter.POSITIONAL_ONLY:
            msg = (
                f"Layer {name!r} takes positional-only parameter {param.name!r}; "
                "layers are called with keywords"
            )
            raise ConfigurationError(msg)
        fields = ", ".join(sorted(available))
        msg = (
            f"Layer {name!r} requires parameter {param.name!r}, "
            f"which is not one of the injectable fields: {fields}"
        )
        raise ConfigurationError(msg)
    return tuple(names)


def callable_name(func: Any) -> str:
    """Best-effort display name for a layer, used in errors and logs."""
    target = func
    while isinstance(target, functools.partial):
        target = target.func
    qualname = getattr(target, "__qualname__", None)
    if qualname:
        return qualname
    return type(target).__name__


def _is_async_callable(func: Any) -> bool:
    while isinstance(func, functools.partial):
        func = func.func
    return inspect.iscoroutinefunction(func) or inspect.iscoroutinefunction(
        getattr(func, "__call__", None)
    )

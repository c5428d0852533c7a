"""Page flavor — layered server-side and static page props.

A page pipeline compiles into ``async handler(ctx)`` returning either
``{"props": {...}}`` or a terminal outcome (``not_found`` / ``redirect``)
exactly as the layer or handler returned it.

Layers take any of ``ctx``, ``data``, ``props`` as parameters::

    get_server_side_props = (
        server_middleware()
        .use(lambda ctx: {"data": {"user": ctx.request.cookies.get("USER")}})
        .handler(lambda data: {"props": {"user_id": data["user"]}})
    )

Middleware can be reused and extended on multiple pages::

    middleware = server_middleware().use(load_user)

    # page.py
    get_server_side_props = middleware.handler(
        lambda data: {"props": {"user": data["user"]}}
    )

    # other_page.py
    def require_client(ctx):
        client = ctx.request.cookies.get("CLIENT")
        if not client:
            return NotFound()
        return {"data": {"client": client}}

    get_server_side_props = middleware.use(require_client).handler(
        lambda data: {"props": {"client": data["client"]}}
    )

Props returned from layers are merged with the handler's props; the
handler wins for keys both define::

    dashboard = server_middleware().use(
        lambda ctx: {"props": {"client": ctx.request.cookies.get("CLIENT")}}
    )
    get_server_side_props = dashboard.handler(lambda: {"props": {"other": "hi"}})
    # -> {"props": {"client": ..., "other": "hi"}}

``data`` is scratch space shared between layers and the handler; only
``props`` reaches the page.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping
from typing import Any

from strata._internal.types import Handler, Layer
from strata.builder import Builder, CompiledHandler, identity_layer
from strata.config import PipelineConfig
from strata.contract import ConstrainedLayer, Shape, with_context
from strata.engine import run_layers
from strata.merge import merge_into, new_accumulators
from strata.outcome import PAGE_ACCUMULATORS, is_page_terminal, parse_page_result


class PageMiddleware(Builder):
    """Builder for page props handlers. Layers receive ``ctx``, ``data``, ``props``."""

    __slots__ = ()

    fields = frozenset({"ctx", "data", "props"})

    def handler(self, fn: Handler | None = None) -> PageHandler:
        """Compile the chain, optionally ending in ``fn``.

        Without ``fn`` the result is just the layer-accumulated props.
        """
        final = self._prepare(fn, role="Handler") if fn is not None else None
        return PageHandler(self.layers, final, self._config)


class ServerMiddleware(PageMiddleware):
    """Page middleware whose ``ctx`` is a per-request server context."""

    __slots__ = ()


class StaticMiddleware(PageMiddleware):
    """Page middleware whose ``ctx`` is a static-generation context."""

    __slots__ = ()


class PageHandler(CompiledHandler):
    """Compiled page pipeline: ``await handler(ctx)``."""

    __slots__ = ()

    async def __call__(self, ctx: Any) -> Any:
        accumulators = new_accumulators(*PAGE_ACCUMULATORS)
        fields = {"ctx": ctx}

        terminal = await run_layers(
            self.layers, fields, accumulators, parse_page_result, self._config
        )
        if terminal is not None:
            return terminal

        props = accumulators["props"]
        if self.final is not None:
            result = await self._call_final(fields, accumulators)
            # Terminals go back untouched, before any awaitable props run
            if is_page_terminal(result):
                return result
            result = await _resolve_props(result)
            outcome = parse_page_result(result, layer=self.final.name, config=self._config)
            for name, partial in outcome.partials:
                if name == "props":
                    merge_into(props, partial)

        return {"props": props}


async def _resolve_props(result: Any) -> Any:
    """Await a handler's ``props`` when it handed back an awaitable."""
    if isinstance(result, Mapping) and inspect.isawaitable(result.get("props")):
        return {**result, "props": await result["props"]}
    return result


def infer_props(result: Any) -> Mapping[str, Any] | None:
    """Props from a page handler result, or ``None`` for terminal outcomes.

    ::

        result = await get_server_side_props(ctx)
        props = infer_props(result)
    """
    if isinstance(result, Mapping) and not is_page_terminal(result):
        props = result.get("props")
        return props if isinstance(props, Mapping) else None
    return None


def server_middleware(*, config: PipelineConfig | None = None) -> ServerMiddleware:
    """Create new middleware for server-side page props.

    ::

        get_server_side_props = (
            server_middleware()
            .use(lambda ctx: {"data": {"user": ctx.request.cookies["USER"]}})
            .handler(lambda data: {"props": {"user_id": data["user"]}})
        )
    """
    return ServerMiddleware(config=config)


def static_middleware(*, config: PipelineConfig | None = None) -> StaticMiddleware:
    """Create new middleware for static page props.

    ::

        get_static_props = (
            static_middleware()
            .use(lambda ctx: {"data": {"page": ctx.params["page"]}})
            .handler(lambda data: {"props": {"page_id": data["page"]}})
        )
    """
    return StaticMiddleware(config=config)


def server_layer(layer: Layer) -> Layer:
    """Create a reusable server layer. Returns ``layer`` unchanged.

    ::

        reusable = server_layer(lambda: {"data": {"some": "data"}})
        server_middleware().use(reusable).handler()
    """
    return identity_layer(layer)


def static_layer(layer: Layer) -> Layer:
    """Create a reusable static layer. Returns ``layer`` unchanged."""
    return identity_layer(layer)


def server_layer_with_context(
    data: Shape | None = None,
    props: Shape | None = None,
) -> Callable[[Layer], ConstrainedLayer]:
    """Like :func:`server_layer`, with an expected accumulator shape.

    ::

        @server_layer_with_context(data={"client": str})
        def reject_test_client(data):
            if data["client"] == "test":
                return NotFound()
            return {"data": {}}

        (
            server_middleware()
            .use(lambda: {"data": {"client": "abc"}})
            # raises LayerContractError at run time if "client" is missing
            .use(reject_test_client)
            .handler()
        )

    Expected props go in the second argument::

        server_layer_with_context(props={"some_prop": str})
    """
    return with_context(data=data, props=props)


def static_layer_with_context(
    data: Shape | None = None,
    props: Shape | None = None,
) -> Callable[[Layer], ConstrainedLayer]:
    """Like :func:`static_layer`, with an expected accumulator shape."""
    return with_context(data=data, props=props)

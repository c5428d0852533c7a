"""API flavor — layered request handlers.

An API pipeline compiles into ``async handler(request, response)``. Layers
take any of ``request``, ``response``, ``data`` as parameters and may
return ``{"data": {...}}``, ``None``, or ``{"stop": True}`` / ``Stop()``
after writing a response themselves. There is no ``props`` accumulator:
the final handler produces the response directly::

    handler = (
        api_middleware()
        .use(lambda request: {"data": {"user": request.cookies.get("USER")}})
        .handler(lambda response, data: response.status(200).json({"user": data["user"]}))
    )

A layer stops the request by writing to the response and returning
``Stop()``::

    def require_user(request, response):
        if "USER" not in request.cookies:
            response.status(404).write("user not found")
            return Stop()
        return {"data": {"user": request.cookies["USER"]}}
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from strata._internal.types import Handler, Layer
from strata.builder import Builder, CompiledHandler, identity_layer
from strata.config import PipelineConfig
from strata.contract import ConstrainedLayer, Shape, with_context
from strata.engine import run_layers
from strata.errors import ConfigurationError
from strata.merge import new_accumulators
from strata.outcome import API_ACCUMULATORS, parse_api_result


class ApiMiddleware(Builder):
    """Builder for API handlers. Layers receive ``request``, ``response``, ``data``."""

    __slots__ = ()

    fields = frozenset({"request", "response", "data"})

    def handler(self, fn: Handler) -> ApiHandler:
        """Compile the chain, ending in ``fn``.

        Raises:
            ConfigurationError: ``fn`` is missing or not callable.
        """
        if fn is None:
            msg = "API middleware requires a final handler"
            raise ConfigurationError(msg)
        final = self._prepare(fn, role="Handler")
        return ApiHandler(self.layers, final, self._config)


class ApiHandler(CompiledHandler):
    """Compiled API pipeline: ``await handler(request, response)``.

    Returns whatever the final handler returned, or ``None`` when a layer
    stopped the request.
    """

    __slots__ = ()

    async def __call__(self, request: Any, response: Any) -> Any:
        accumulators = new_accumulators(*API_ACCUMULATORS)
        fields = {"request": request, "response": response}

        terminal = await run_layers(
            self.layers, fields, accumulators, parse_api_result, self._config
        )
        if terminal is not None:
            return None
        return await self._call_final(fields, accumulators)


def api_middleware(*, config: PipelineConfig | None = None) -> ApiMiddleware:
    """Create middleware for an API handler.

    Middleware can be reused and extended on multiple API routes::

        middleware = api_middleware().use(load_user)

        profile = middleware.handler(send_profile)
        client = middleware.use(require_client).handler(send_client)
    """
    return ApiMiddleware(config=config)


def api_layer(layer: Layer) -> Layer:
    """Create a reusable API layer. Returns ``layer`` unchanged.

    ::

        reusable = api_layer(lambda: {"data": {"some": "data"}})
        api_middleware().use(reusable).handler(lambda: None)
    """
    return identity_layer(layer)


def api_layer_with_context(data: Shape | None = None) -> Callable[[Layer], ConstrainedLayer]:
    """Like :func:`api_layer`, with an expected ``data`` shape.

    ::

        @api_layer_with_context(data={"client": str})
        def reject_test_client(response, data):
            if data["client"] == "test":
                response.status(404).write("user not found")
                return Stop()
            return None
    """
    return with_context(data=data)

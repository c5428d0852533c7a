"""Strata — composable middleware layers for page props and API handlers.

Assemble an ordered chain of small layers. Each layer reads the request
context, may add keys to the ``data`` and ``props`` accumulators, and may
end the chain early. A final handler receives everything the layers
accumulated.

Basic usage::

    from strata import NotFound, server_middleware

    def require_user(ctx):
        user = ctx.request.cookies.get("USER")
        if user is None:
            return NotFound()
        return {"data": {"user": user}}

    get_server_side_props = (
        server_middleware()
        .use(require_user)
        .handler(lambda data: {"props": {"user_id": data["user"]}})
    )

API handlers::

    from strata import Stop, api_middleware

    handler = (
        api_middleware()
        .use(require_user_or_stop)
        .handler(lambda response, data: response.status(200).json(data))
    )
"""

__version__ = "0.1.0"
__all__ = [
    "ApiHandler",
    "ApiMiddleware",
    "ConfigurationError",
    "LayerContractError",
    "LayerResultError",
    "NotFound",
    "PageHandler",
    "PipelineConfig",
    "Redirect",
    "ServerContext",
    "ServerMiddleware",
    "StaticContext",
    "StaticMiddleware",
    "Stop",
    "StrataError",
    "api_layer",
    "api_layer_with_context",
    "api_middleware",
    "infer_props",
    "server_layer",
    "server_layer_with_context",
    "server_middleware",
    "static_layer",
    "static_layer_with_context",
    "static_middleware",
]

# Public name -> defining module
_LAZY_IMPORTS: dict[str, str] = {
    "ApiHandler": "strata.api",
    "ApiMiddleware": "strata.api",
    "api_layer": "strata.api",
    "api_layer_with_context": "strata.api",
    "api_middleware": "strata.api",
    "ConfigurationError": "strata.errors",
    "LayerContractError": "strata.errors",
    "LayerResultError": "strata.errors",
    "StrataError": "strata.errors",
    "NotFound": "strata.outcome",
    "Redirect": "strata.outcome",
    "Stop": "strata.outcome",
    "PageHandler": "strata.pages",
    "ServerMiddleware": "strata.pages",
    "StaticMiddleware": "strata.pages",
    "infer_props": "strata.pages",
    "server_layer": "strata.pages",
    "server_layer_with_context": "strata.pages",
    "server_middleware": "strata.pages",
    "static_layer": "strata.pages",
    "static_layer_with_context": "strata.pages",
    "static_middleware": "strata.pages",
    "PipelineConfig": "strata.config",
    "ServerContext": "strata.context",
    "StaticContext": "strata.context",
}


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import strata`` fast while providing a clean top-level API.
    """
    module_path = _LAZY_IMPORTS.get(name)
    if module_path is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    return getattr(importlib.import_module(module_path), name)

"""Pipeline configuration.

PipelineConfig is a frozen dataclass: immutable after creation, shared by
every builder derived from the one it was passed to.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Pipeline configuration. Immutable after creation.

    All fields have lenient defaults matching plain layer composition.
    Override what you need::

        config = PipelineConfig(strict_results=True)
        middleware = server_middleware(config=config)
    """

    # Raise LayerResultError on malformed results instead of ignoring them
    strict_results: bool = False

    # Validate *_layer_with_context() expectations before each invocation
    check_contracts: bool = True

    # Run sync layers and handlers in an anyio worker thread
    offload_sync: bool = False


DEFAULT_CONFIG = PipelineConfig()

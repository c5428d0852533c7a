"""Tests for strata.engine — ordered execution and short-circuiting."""

import asyncio
import logging
import threading

import pytest

from strata.chain import LayerSpec
from strata.config import PipelineConfig
from strata.contract import LayerContract
from strata.engine import run_layers
from strata.errors import LayerContractError, LayerResultError
from strata.outcome import NotFound, parse_api_result, parse_page_result
from strata.pages import server_middleware
from strata.testing import mock_server_context


def _spec(func, params=(), contract=None) -> LayerSpec:
    return LayerSpec(func=func, name=func.__name__, params=params, contract=contract)


class TestRunLayers:
    async def test_runs_in_order(self) -> None:
        """Sync and async layers run in attach order."""
        order: list[int] = []

        def first():
            order.append(1)

        async def second():
            await asyncio.sleep(0)
            order.append(2)

        def third():
            order.append(3)

        terminal = await run_layers(
            (_spec(first), _spec(second), _spec(third)),
            {},
            {"data": {}},
            parse_api_result,
            PipelineConfig(),
        )

        assert terminal is None
        assert order == [1, 2, 3]

    async def test_each_layer_awaited_before_next(self) -> None:
        """A layer finishes before the next one starts."""
        events: list[str] = []

        async def slow():
            events.append("slow:start")
            await asyncio.sleep(0.01)
            events.append("slow:end")

        def fast():
            events.append("fast")

        await run_layers(
            (_spec(slow), _spec(fast)), {}, {"data": {}}, parse_api_result, PipelineConfig()
        )

        assert events == ["slow:start", "slow:end", "fast"]

    async def test_accumulators_updated_in_place(self) -> None:
        """Partials are merged into the caller's accumulators."""
        accumulators = {"data": {}, "props": {}}

        def contribute():
            return {"data": {"a": 1}, "props": {"b": 2}}

        await run_layers(
            (_spec(contribute),), {}, accumulators, parse_page_result, PipelineConfig()
        )

        assert accumulators == {"data": {"a": 1}, "props": {"b": 2}}

    async def test_terminal_returned_verbatim(self) -> None:
        """A terminal result is returned as the same object."""
        outcome = {"not_found": True}

        def stop():
            return outcome

        terminal = await run_layers(
            (_spec(stop),), {}, {"data": {}, "props": {}}, parse_page_result, PipelineConfig()
        )

        assert terminal is outcome

    async def test_contract_checked_before_invocation(self) -> None:
        """An unmet contract stops the layer from being called."""
        calls: list[str] = []

        def guarded():
            calls.append("guarded")

        spec = _spec(guarded, contract=LayerContract.build(data=["user"]))

        with pytest.raises(LayerContractError):
            await run_layers((spec,), {}, {"data": {}}, parse_api_result, PipelineConfig())

        assert calls == []

    async def test_contract_check_can_be_disabled(self) -> None:
        """check_contracts=False skips contract checks."""
        calls: list[str] = []

        def guarded():
            calls.append("guarded")

        spec = _spec(guarded, contract=LayerContract.build(data=["user"]))

        await run_layers(
            (spec,), {}, {"data": {}}, parse_api_result, PipelineConfig(check_contracts=False)
        )

        assert calls == ["guarded"]


class TestErrors:
    async def test_layer_exception_propagates_unchanged(self) -> None:
        """A layer exception aborts the chain and reaches the caller as-is."""
        calls: list[str] = []

        def boom():
            raise ValueError("lookup failed")

        handler = (
            server_middleware()
            .use(boom)
            .use(lambda: calls.append("after"))
            .handler(lambda: calls.append("handler"))
        )

        with pytest.raises(ValueError, match="lookup failed"):
            await handler(mock_server_context())

        assert calls == []

    async def test_handler_exception_propagates(self) -> None:
        """Handler exceptions are not wrapped."""

        async def fail():
            raise RuntimeError("render failed")

        with pytest.raises(RuntimeError, match="render failed"):
            await server_middleware().handler(fail)(mock_server_context())


class TestMalformedResults:
    async def test_lenient_by_default(self, caplog: pytest.LogCaptureFixture) -> None:
        """A non-mapping result is ignored with a warning."""
        with caplog.at_level(logging.WARNING, logger="strata.engine"):
            result = await (
                server_middleware()
                .use(lambda: "not a mapping")
                .use(lambda: {"props": {"a": 1}})
                .handler()
            )(mock_server_context())

        assert result == {"props": {"a": 1}}
        assert "expected None or a mapping, got str" in caplog.text

    async def test_non_mapping_partial_ignored(self, caplog: pytest.LogCaptureFixture) -> None:
        """A non-mapping partial is skipped; the others still merge."""
        with caplog.at_level(logging.WARNING, logger="strata.engine"):
            result = await (
                server_middleware().use(lambda: {"props": 5, "data": {"a": 1}}).handler(
                    lambda data: {"props": dict(data)}
                )
            )(mock_server_context())

        assert result == {"props": {"a": 1}}
        assert "'props' must be a mapping" in caplog.text

    async def test_strict_rejects_non_mapping(self) -> None:
        """strict_results turns a non-mapping result into LayerResultError."""
        strict = PipelineConfig(strict_results=True)
        handler = server_middleware(config=strict).use(lambda: 42).handler()

        with pytest.raises(LayerResultError, match="got int"):
            await handler(mock_server_context())

    async def test_strict_rejects_unknown_keys(self) -> None:
        """strict_results rejects misspelled accumulator names."""
        strict = PipelineConfig(strict_results=True)
        handler = server_middleware(config=strict).use(lambda: {"prop": {"a": 1}}).handler()

        with pytest.raises(LayerResultError, match="unknown keys"):
            await handler(mock_server_context())

    async def test_strict_checks_handler_result(self) -> None:
        """The final handler's result is checked too."""
        strict = PipelineConfig(strict_results=True)
        handler = server_middleware(config=strict).handler(lambda: ["props"])

        with pytest.raises(LayerResultError):
            await handler(mock_server_context())

    async def test_strict_accepts_valid_results(self) -> None:
        """Valid results and terminals pass in strict mode."""
        strict = PipelineConfig(strict_results=True)
        handler = (
            server_middleware(config=strict)
            .use(lambda: None)
            .use(lambda: {})
            .use(lambda: {"data": {"a": 1}, "props": {"b": 2}})
            .handler(lambda: NotFound())
        )

        assert isinstance(await handler(mock_server_context()), NotFound)


class TestOffloadSync:
    async def test_sync_layers_run_in_worker_thread(self) -> None:
        """offload_sync moves sync layers off the event loop thread."""
        loop_thread = threading.get_ident()
        threads: dict[str, int] = {}

        def sync_layer():
            threads["sync"] = threading.get_ident()
            return {"props": {"a": 1}}

        async def async_layer():
            threads["async"] = threading.get_ident()
            return {"props": {"b": 2}}

        handler = (
            server_middleware(config=PipelineConfig(offload_sync=True))
            .use(sync_layer)
            .use(async_layer)
            .handler()
        )
        result = await handler(mock_server_context())

        assert result == {"props": {"a": 1, "b": 2}}
        assert threads["sync"] != loop_thread
        assert threads["async"] == loop_thread

    async def test_sync_layers_inline_by_default(self) -> None:
        """Without offload_sync, sync layers run on the loop thread."""
        loop_thread = threading.get_ident()
        threads: list[int] = []

        await server_middleware().use(lambda: threads.append(threading.get_ident())).handler()(
            mock_server_context()
        )

        assert threads == [loop_thread]


class TestLogging:
    async def test_short_circuit_logged_at_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        """A short-circuit logs the layer that ended the chain."""

        def deny():
            return {"not_found": True}

        with caplog.at_level(logging.DEBUG, logger="strata.engine"):
            await server_middleware().use(deny).handler()(mock_server_context())

        assert "short-circuited" in caplog.text
        assert "deny" in caplog.text

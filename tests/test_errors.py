"""Tests for strata.errors — exception hierarchy and error messages."""

import pytest

from strata.errors import (
    ConfigurationError,
    LayerContractError,
    LayerResultError,
    StrataError,
)


class TestHierarchy:
    def test_configuration_error_is_strata_error(self) -> None:
        """ConfigurationError derives from StrataError."""
        assert issubclass(ConfigurationError, StrataError)

    def test_contract_error_is_configuration_error(self) -> None:
        """Contract violations are configuration errors."""
        assert issubclass(LayerContractError, ConfigurationError)

    def test_result_error_is_strata_error(self) -> None:
        """LayerResultError is not a configuration error."""
        assert issubclass(LayerResultError, StrataError)
        assert not issubclass(LayerResultError, ConfigurationError)


class TestLayerContractError:
    def test_str_missing(self) -> None:
        """Missing key message names the layer and the key."""
        err = LayerContractError(layer="guard", accumulator="data", key="user", expected="str")
        assert str(err) == (
            "Layer 'guard' expects data['user'] (str), but no earlier layer provided it"
        )

    def test_str_wrong_type(self) -> None:
        """Wrong type message shows expected and actual types."""
        err = LayerContractError(
            layer="guard", accumulator="props", key="n", expected="int", actual="str"
        )
        assert str(err) == "Layer 'guard' expects props['n'] to be int, got str"


class TestLayerResultError:
    def test_str(self) -> None:
        """Message includes the layer name and the detail."""
        err = LayerResultError(layer="load", detail="expected None or a mapping, got int")
        assert str(err) == "Layer 'load' returned an invalid result: expected None or a mapping, got int"

    def test_raisable(self) -> None:
        with pytest.raises(StrataError):
            raise LayerResultError(layer="load", detail="bad")

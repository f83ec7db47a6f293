"""Tests for domain ports.

Tests:
- Ports import without their TYPE_CHECKING-only model types
- Ports are abstract
"""

import inspect

import pytest

from coverstat.domain.ports import DriverPort, StructureParserPort


class TestAnnotations:
    """Tests that port signatures name model types lazily."""

    def test_driver_stop_return_is_deferred(self) -> None:
        assert inspect.get_annotations(DriverPort.stop) == {"return": "RawCoverage"}

    def test_parser_parse_return_is_deferred(self) -> None:
        assert inspect.get_annotations(StructureParserPort.parse) == {"path": "str", "return": "FileStructure"}


class TestAbstract:
    """Tests that ports need an implementation."""

    @pytest.mark.parametrize("port", [DriverPort, StructureParserPort])
    def test_cannot_instantiate(self, port: type) -> None:
        with pytest.raises(TypeError):
            port()

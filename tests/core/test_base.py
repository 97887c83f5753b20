"""
Tests for Component Base Classes
"""

from unittest.mock import MagicMock

from lending_rate.core.base import PipelineComponent, SparkComponent


class DummyComponent(PipelineComponent):

    def validate(self) -> bool:
        return True


class TestPipelineComponent:

    def test_name_defaults_to_class(self):
        component = DummyComponent({})
        assert component.name == "DummyComponent"

    def test_get_config_dot_notation(self):
        component = DummyComponent({'warehouse': {'project_id': 'proj', 'dataset': 'ds'}})

        assert component.get_config('warehouse.project_id') == 'proj'
        assert component.get_config('warehouse.table', 'loans') == 'loans'
        assert component.get_config('missing.key') is None

    def test_execution_duration(self):
        component = DummyComponent(None)
        assert component.execution_duration is None

        component._start_execution()
        component._end_execution()
        assert component.execution_duration >= 0


class TestSparkComponent:

    def test_validate_with_session(self):
        component = SparkComponent({}, MagicMock())
        assert component.validate() is True

    def test_validate_without_session(self):
        component = SparkComponent({}, None)
        assert component.validate() is False

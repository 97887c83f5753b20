"""
Base Classes for Warehouse-facing Components

Components that talk to the warehouse take a plain configuration dictionary
(the `warehouse` / `data` sections of the run config) and an explicitly
passed session handle. Nothing here holds a global connection.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import logging
import time


class PipelineComponent(ABC):
    """
    Configuration-driven component with its own logger and timing.

    Args:
        config: Nested configuration dictionary
        name: Logger name (defaults to the class name)
    """

    def __init__(self, config: Dict[str, Any], name: Optional[str] = None):
        self.config = config or {}
        self.name = name or type(self).__name__
        self.logger = logging.getLogger(self.name)
        self._timing: Dict[str, Optional[float]] = {"start": None, "end": None}

    @abstractmethod
    def validate(self) -> bool:
        """True when the component can run with its config and handles."""

    def get_config(self, key: str, default: Any = None) -> Any:
        """Look up 'section.key' in the nested config, or return default."""
        node: Any = self.config
        for part in key.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def _start_execution(self) -> None:
        self._timing = {"start": time.perf_counter(), "end": None}
        self.logger.debug(f"{self.name} started")

    def _end_execution(self) -> None:
        self._timing["end"] = time.perf_counter()
        if self.execution_duration is not None:
            self.logger.debug(f"{self.name} finished in {self.execution_duration:.2f}s")

    @property
    def execution_duration(self) -> Optional[float]:
        """Seconds taken by the last execution, None until one has finished."""
        start, end = self._timing["start"], self._timing["end"]
        if start is None or end is None:
            return None
        return end - start


class SparkComponent(PipelineComponent):
    """
    Component that reads through a caller-owned SparkSession.

    The session comes from `warehouse_session`; the component never creates
    or stops it.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        spark_session: Any,  # SparkSession; not imported so tests can pass a mock
        name: Optional[str] = None
    ):
        super().__init__(config, name)
        self.spark = spark_session

    def validate(self) -> bool:
        if self.spark is None:
            self.logger.error("No SparkSession was provided")
            return False
        return True

"""
Data Module

Warehouse access, the declared applicant schema, normalization and splitting.
"""

from lending_rate.data.schema import APPLICANT_SCHEMA, SCHEMA_VERSION, ColumnSpec
from lending_rate.data.warehouse import WarehouseReader, warehouse_session
from lending_rate.data.schema_validator import SchemaValidator, SchemaValidationResult
from lending_rate.data.normalizer import ColumnNormalizer, drop_missing_target
from lending_rate.data.splitter import DataSplitter, DataSplitResult

__all__ = [
    "APPLICANT_SCHEMA",
    "SCHEMA_VERSION",
    "ColumnSpec",
    "WarehouseReader",
    "warehouse_session",
    "SchemaValidator",
    "SchemaValidationResult",
    "ColumnNormalizer",
    "drop_missing_target",
    "DataSplitter",
    "DataSplitResult",
]

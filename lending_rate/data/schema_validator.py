"""
Schema Validator

Checks the warehouse table against the declared applicant schema before any
data is read, so a renamed or retyped column fails the run at startup.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple
import logging

import pandas as pd

from lending_rate.core.exceptions import SchemaValidationError
from lending_rate.data.schema import (
    APPLICANT_SCHEMA,
    KIND_ACCEPTS,
    SCHEMA_VERSION,
    ColumnSpec,
)


logger = logging.getLogger(__name__)


@dataclass
class SchemaValidationResult:
    """Result of schema validation."""
    is_valid: bool
    missing_columns: List[str] = field(default_factory=list)
    extra_columns: List[str] = field(default_factory=list)
    type_mismatches: List[Dict[str, str]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_valid': self.is_valid,
            'missing_columns': self.missing_columns,
            'extra_columns': self.extra_columns,
            'type_mismatches': self.type_mismatches,
            'errors': self.errors
        }


# Substrings identifying a type family, checked in order. Covers Spark
# (StringType()), BigQuery (FLOAT64) and pandas (object, int64) spellings.
TYPE_FAMILIES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ('string', ('string', 'object', 'varchar', 'char')),
    ('float', ('float', 'double', 'decimal', 'numeric')),
    ('integer', ('int', 'long', 'short')),
    ('boolean', ('bool',)),
    ('timestamp', ('timestamp', 'datetime')),
    ('date', ('date',)),
)


def type_family(actual_type: str) -> Optional[str]:
    """Map a warehouse/pandas type name to its family, or None if unknown."""
    lowered = actual_type.lower()
    if lowered == "str":
        # pandas 3 default string dtype
        return "string"
    for family, markers in TYPE_FAMILIES:
        if any(marker in lowered for marker in markers):
            return family
    return None


def schema_from_frame(df: pd.DataFrame) -> Dict[str, str]:
    """Build a {column: dtype} mapping from a pandas DataFrame."""
    return {str(col): str(dtype) for col, dtype in df.dtypes.items()}


class SchemaValidator:
    """
    Validates an actual table schema against a declared column list.

    Checks for:
    - Missing required columns
    - Extra undeclared columns (reported, only fatal when strict)
    - Type families the column's kind cannot accept
    """

    def __init__(self, schema: Tuple[ColumnSpec, ...] = APPLICANT_SCHEMA):
        self.schema = schema

    def validate_schema(
        self,
        actual_schema: Mapping[str, str],
        strict: bool = False
    ) -> SchemaValidationResult:
        """
        Validate an actual {column: type} mapping.

        Args:
            actual_schema: Column name to type name
            strict: If True, undeclared columns make the result invalid

        Returns:
            SchemaValidationResult with validation details
        """
        declared = {spec.name: spec for spec in self.schema}

        missing_columns = [
            name for name, spec in declared.items()
            if spec.required and name not in actual_schema
        ]
        extra_columns = [name for name in actual_schema if name not in declared]

        type_mismatches = []
        for name, spec in declared.items():
            if name not in actual_schema:
                continue
            family = type_family(actual_schema[name])
            if family is None:
                logger.warning(f"Unknown warehouse type for '{name}': {actual_schema[name]}")
                continue
            if family not in KIND_ACCEPTS[spec.kind]:
                type_mismatches.append({
                    'column': name,
                    'expected': spec.kind,
                    'actual': actual_schema[name],
                })

        errors = []
        if missing_columns:
            errors.append(f"Missing columns: {missing_columns}")
            logger.error(f"SCHEMA | Missing columns: {missing_columns}")
        if extra_columns:
            level = logging.ERROR if strict else logging.INFO
            logger.log(level, f"SCHEMA | Undeclared columns: {extra_columns}")
            if strict:
                errors.append(f"Unexpected columns: {extra_columns}")
        for mismatch in type_mismatches:
            errors.append(
                f"Type mismatch for '{mismatch['column']}': "
                f"{mismatch['expected']} cannot hold {mismatch['actual']}"
            )

        is_valid = not missing_columns and not type_mismatches
        if strict:
            is_valid = is_valid and not extra_columns

        if is_valid:
            logger.info(f"SCHEMA | Validation passed (schema v{SCHEMA_VERSION})")
        else:
            logger.error(f"SCHEMA | Validation failed (schema v{SCHEMA_VERSION})")

        return SchemaValidationResult(
            is_valid=is_valid,
            missing_columns=missing_columns,
            extra_columns=extra_columns,
            type_mismatches=type_mismatches,
            errors=errors,
        )

    def validate_and_raise(
        self,
        actual_schema: Mapping[str, str],
        strict: bool = False
    ) -> SchemaValidationResult:
        """
        Validate and raise SchemaValidationError if invalid.
        """
        result = self.validate_schema(actual_schema, strict)
        if not result.is_valid:
            raise SchemaValidationError(
                f"Warehouse schema does not match applicant schema v{SCHEMA_VERSION}",
                validation_errors=[result.to_dict()],
            )
        return result

"""
Column Normalizer

Coerces raw warehouse cells to their declared types. A cell that cannot be
parsed becomes NaN and is left to the imputer; nothing here raises on bad
data.
"""

from typing import Any, Callable, Dict, Mapping, Tuple
import logging
import math
import re

import numpy as np
import pandas as pd

from lending_rate.core.exceptions import ConfigurationError
from lending_rate.data.schema import (
    APPLICANT_SCHEMA,
    CATEGORICAL,
    EMP_LENGTH,
    IDENTIFIER,
    NUMERIC,
    PERCENT,
    TERM,
    ColumnSpec,
)


logger = logging.getLogger(__name__)

STEP_NAME = "01_normalize"

_LEADING_INT = re.compile(r"^\s*(\d+)")


def _is_missing(value: Any) -> bool:
    if value is None or value is pd.NA:
        return True
    return isinstance(value, float) and math.isnan(value)


def parse_number(value: Any) -> float:
    """Parse a numeric cell; text such as '1,250.5' is accepted."""
    if _is_missing(value) or isinstance(value, bool):
        return np.nan
    if isinstance(value, (int, float, np.number)):
        return float(value)
    text = str(value).strip().replace(",", "")
    try:
        return float(text)
    except ValueError:
        return np.nan


def parse_percent(value: Any) -> float:
    """'13.5%' -> 13.5"""
    if isinstance(value, str):
        value = value.strip()
        if value.endswith("%"):
            value = value[:-1]
    return parse_number(value)


def parse_term(value: Any) -> float:
    """'36 months' -> 36"""
    if _is_missing(value) or isinstance(value, bool):
        return np.nan
    if isinstance(value, (int, float, np.number)):
        return float(value)
    match = _LEADING_INT.match(str(value))
    return float(match.group(1)) if match else np.nan


def parse_emp_length(value: Any) -> float:
    """'< 1 year' -> 0, '10+ years' -> 10, 'n/a' -> NaN"""
    if _is_missing(value) or isinstance(value, bool):
        return np.nan
    if isinstance(value, (int, float, np.number)):
        return float(value)
    text = str(value).strip().lower()
    if text.startswith("<"):
        return 0.0
    match = _LEADING_INT.match(text)
    return float(match.group(1)) if match else np.nan


def parse_category(value: Any) -> Any:
    if _is_missing(value):
        return np.nan
    text = str(value).strip()
    return text if text else np.nan


PARSERS: Dict[str, Callable[[Any], Any]] = {
    NUMERIC: parse_number,
    PERCENT: parse_percent,
    TERM: parse_term,
    EMP_LENGTH: parse_emp_length,
    CATEGORICAL: parse_category,
}


class ColumnNormalizer:
    """Applies the declared per-column transforms of a schema.

    Args:
        schema: Declared columns; undeclared columns pass through unchanged.
    """

    def __init__(self, schema: Tuple[ColumnSpec, ...] = APPLICANT_SCHEMA):
        self.schema = schema

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Return a normalized copy of df.

        Args:
            df: Raw rows as read from the warehouse.

        Returns:
            New DataFrame with declared numeric columns as float64.
        """
        out = df.copy()
        degraded: Dict[str, int] = {}

        for spec in self.schema:
            if spec.name not in out.columns or spec.kind == IDENTIFIER:
                continue

            raw = out[spec.name]
            if spec.kind == NUMERIC and pd.api.types.is_numeric_dtype(raw):
                parsed = raw.astype(float)
            else:
                parsed = raw.map(PARSERS[spec.kind])
                if spec.is_numeric:
                    parsed = parsed.astype(float)
                else:
                    parsed = parsed.astype(object)

            n_degraded = int((raw.notna() & parsed.isna()).sum())
            if n_degraded:
                degraded[spec.name] = n_degraded
            out[spec.name] = parsed

        if degraded:
            logger.warning(
                f"{STEP_NAME} | Unparseable cells set to missing: {degraded}"
            )
        logger.info(f"{STEP_NAME} | Normalized {len(out):,} rows")
        return out

    def normalize_record(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        """Normalize a single serving-time record."""
        out = dict(record)
        for spec in self.schema:
            if spec.name in out and spec.kind != IDENTIFIER:
                out[spec.name] = PARSERS[spec.kind](out[spec.name])
        return out


def drop_missing_target(df: pd.DataFrame, target_column: str) -> pd.DataFrame:
    """Remove rows without a target value.

    Raises:
        ConfigurationError: If the target column is absent.
    """
    if target_column not in df.columns:
        raise ConfigurationError(
            f"Target column '{target_column}' not found in data",
            column=target_column,
        )

    mask = df[target_column].notna()
    n_dropped = int((~mask).sum())
    if n_dropped:
        logger.info(f"{STEP_NAME} | Dropped {n_dropped:,} rows without {target_column}")
    return df.loc[mask].copy()

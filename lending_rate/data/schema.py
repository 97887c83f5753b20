"""
Applicant Schema

The explicit, versioned column list of the warehouse `loans` table. Every
column the pipeline touches is declared here with the transform that turns
its raw warehouse value into a model-ready value.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Tuple


SCHEMA_VERSION = "2"

# Column kinds
NUMERIC = "numeric"
PERCENT = "percent"
TERM = "term"
EMP_LENGTH = "emp_length"
CATEGORICAL = "categorical"
IDENTIFIER = "identifier"

# Warehouse type families each kind accepts. Numeric columns are allowed to
# arrive as text; the normalizer coerces them.
KIND_ACCEPTS: Dict[str, FrozenSet[str]] = {
    NUMERIC: frozenset({"float", "integer", "string"}),
    PERCENT: frozenset({"float", "integer", "string"}),
    TERM: frozenset({"float", "integer", "string"}),
    EMP_LENGTH: frozenset({"float", "integer", "string"}),
    CATEGORICAL: frozenset({"string"}),
    IDENTIFIER: frozenset({"string", "integer"}),
}


@dataclass(frozen=True)
class ColumnSpec:
    """One declared warehouse column."""
    name: str
    kind: str
    required: bool = True

    @property
    def is_numeric(self) -> bool:
        """True when the normalized column holds numbers."""
        return self.kind in (NUMERIC, PERCENT, TERM, EMP_LENGTH)


APPLICANT_SCHEMA: Tuple[ColumnSpec, ...] = (
    ColumnSpec("id", IDENTIFIER),
    ColumnSpec("loan_amnt", NUMERIC),
    ColumnSpec("term", TERM),
    ColumnSpec("int_rate", PERCENT),
    ColumnSpec("installment", NUMERIC),
    ColumnSpec("emp_length", EMP_LENGTH),
    ColumnSpec("home_ownership", CATEGORICAL),
    ColumnSpec("annual_inc", NUMERIC),
    ColumnSpec("annual_inc_joint", NUMERIC),
    ColumnSpec("application_type", CATEGORICAL),
    ColumnSpec("addr_state", CATEGORICAL),
    ColumnSpec("dti", NUMERIC),
    ColumnSpec("dti_joint", NUMERIC),
    ColumnSpec("revol_util", PERCENT),
    ColumnSpec("open_acc", NUMERIC),
    ColumnSpec("total_acc", NUMERIC),
    ColumnSpec("inq_last_6mths", NUMERIC),
    ColumnSpec("delinq_2yrs", NUMERIC),
    ColumnSpec("pub_rec", NUMERIC),
    ColumnSpec("mths_since_last_delinq", NUMERIC),
    ColumnSpec("mths_since_recent_inq", NUMERIC),
    ColumnSpec("tot_cur_bal", NUMERIC),
    ColumnSpec("total_bal_ex_mort", NUMERIC),
    ColumnSpec("total_il_high_credit_limit", NUMERIC),
    ColumnSpec("all_util", NUMERIC),
    ColumnSpec("bc_util", NUMERIC),
    ColumnSpec("bc_open_to_buy", NUMERIC),
    ColumnSpec("percent_bc_gt_75", NUMERIC),
    ColumnSpec("num_actv_bc_tl", NUMERIC),
)


def column_names(schema: Tuple[ColumnSpec, ...] = APPLICANT_SCHEMA) -> List[str]:
    """Declared column names in schema order."""
    return [spec.name for spec in schema]


def numeric_columns(schema: Tuple[ColumnSpec, ...] = APPLICANT_SCHEMA) -> List[str]:
    """Columns that hold numbers after normalization."""
    return [spec.name for spec in schema if spec.is_numeric]


def get_spec(name: str, schema: Tuple[ColumnSpec, ...] = APPLICANT_SCHEMA) -> ColumnSpec:
    """Look up a column spec by name."""
    for spec in schema:
        if spec.name == name:
            return spec
    raise KeyError(f"Column '{name}' is not declared in schema v{SCHEMA_VERSION}")

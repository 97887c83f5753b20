"""
Penalty Grid

Candidate regularization strengths and the cross-validation fold layout they
are evaluated on.
"""

from dataclasses import dataclass
import math

import numpy as np
from sklearn.model_selection import KFold

from lending_rate.config.schema import SelectionConfig
from lending_rate.core.exceptions import ConfigurationError, InsufficientDataError


@dataclass(frozen=True)
class PenaltyGrid:
    """Log-spaced penalties between min_penalty and max_penalty (inclusive)."""

    min_penalty: float = 1e-4
    max_penalty: float = 1.0
    n_penalties: int = 20

    def __post_init__(self):
        if self.min_penalty <= 0 or self.max_penalty <= 0:
            raise ConfigurationError("Penalties must be positive")
        if self.n_penalties < 1:
            raise ConfigurationError("Penalty grid needs at least one value")
        if self.n_penalties > 1 and self.min_penalty >= self.max_penalty:
            raise ConfigurationError(
                f"min_penalty ({self.min_penalty}) must be less than "
                f"max_penalty ({self.max_penalty})"
            )

    @classmethod
    def from_config(cls, config: SelectionConfig) -> "PenaltyGrid":
        return cls(config.min_penalty, config.max_penalty, config.n_penalties)

    @property
    def values(self) -> np.ndarray:
        """Penalties in ascending order."""
        return np.logspace(
            math.log10(self.min_penalty),
            math.log10(self.max_penalty),
            self.n_penalties,
        )

    def __len__(self) -> int:
        return self.n_penalties


def fold_assignments(n_rows: int, n_folds: int, seed: int = 42) -> np.ndarray:
    """Fold id (0..n_folds-1) for every row, shuffled with a fixed seed.

    Every validation fold gets at least two rows so held-out R^2 is defined.

    Raises:
        ConfigurationError: If n_folds < 2.
        InsufficientDataError: If n_rows < 2 * n_folds.
    """
    if n_folds < 2:
        raise ConfigurationError(f"Cross-validation needs at least 2 folds, got {n_folds}")
    required = 2 * n_folds
    if n_rows < required:
        raise InsufficientDataError(
            f"{n_rows} rows cannot form {n_folds} cross-validation folds "
            f"(need at least {required})",
            n_rows=n_rows,
            required=required,
        )

    folds = np.empty(n_rows, dtype=int)
    splitter = KFold(n_splits=n_folds, shuffle=True, random_state=seed)
    for fold_id, (_, val_idx) in enumerate(splitter.split(np.arange(n_rows))):
        folds[val_idx] = fold_id
    return folds

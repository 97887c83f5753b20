"""
Data Splitter

Random, seeded train/test split of the cleaned applicant rows. Everything
fitted downstream (imputation statistics, scaling, penalty path) sees the
train partition only.
"""

from dataclasses import dataclass, field
from typing import Any, Dict
import logging

import pandas as pd
from sklearn.model_selection import train_test_split

from lending_rate.config.schema import SplittingConfig
from lending_rate.core.exceptions import InsufficientDataError


logger = logging.getLogger(__name__)

STEP_NAME = "03_split"


@dataclass
class DataSplitResult:
    """Result of data splitting."""

    train: pd.DataFrame
    test: pd.DataFrame
    metadata: Dict[str, Any] = field(default_factory=dict)


class DataSplitter:
    """Splits data into train/test sets.

    Args:
        splitting_config: SplittingConfig with test_size.
        target_column: Name of the target column (for logging).
        seed: Global random seed for reproducibility.
    """

    def __init__(
        self,
        splitting_config: SplittingConfig,
        target_column: str,
        seed: int = 42,
    ):
        self.test_size = splitting_config.test_size
        self.target_column = target_column
        self.seed = seed

    def split(self, df: pd.DataFrame) -> DataSplitResult:
        """Split a DataFrame into train and test partitions.

        Raises:
            InsufficientDataError: If either partition would be empty.
        """
        n_test = int(round(len(df) * self.test_size))
        if len(df) < 2 or n_test == 0 or n_test == len(df):
            raise InsufficientDataError(
                f"Cannot split {len(df)} rows with test_size={self.test_size}",
                n_rows=len(df),
                required=2,
            )

        train_df, test_df = train_test_split(
            df, test_size=self.test_size, random_state=self.seed
        )
        train_df = train_df.reset_index(drop=True)
        test_df = test_df.reset_index(drop=True)

        logger.info(
            f"{STEP_NAME} | Train: {len(train_df):,} rows "
            f"(mean {self.target_column}: {train_df[self.target_column].mean():.2f})"
        )
        logger.info(
            f"{STEP_NAME} | Test: {len(test_df):,} rows "
            f"(mean {self.target_column}: {test_df[self.target_column].mean():.2f})"
        )

        return DataSplitResult(
            train=train_df,
            test=test_df,
            metadata={
                "n_train": len(train_df),
                "n_test": len(test_df),
                "test_size": self.test_size,
                "seed": self.seed,
            },
        )

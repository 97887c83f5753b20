"""
Tests for DataSplitter
"""

import pandas as pd
import pytest

from lending_rate.config.schema import SplittingConfig
from lending_rate.core.exceptions import InsufficientDataError
from lending_rate.data.splitter import DataSplitter


@pytest.fixture
def frame():
    return pd.DataFrame({"x": range(100), "int_rate": [float(i % 20) for i in range(100)]})


class TestDataSplitter:

    def test_sizes_and_metadata(self, frame):
        result = DataSplitter(SplittingConfig(test_size=0.2), "int_rate", seed=1).split(frame)

        assert len(result.train) == 80
        assert len(result.test) == 20
        assert result.metadata == {"n_train": 80, "n_test": 20, "test_size": 0.2, "seed": 1}

    def test_partitions_disjoint_and_complete(self, frame):
        result = DataSplitter(SplittingConfig(), "int_rate").split(frame)
        xs = set(result.train["x"]) | set(result.test["x"])

        assert xs == set(frame["x"])
        assert not set(result.train["x"]) & set(result.test["x"])

    def test_index_reset(self, frame):
        result = DataSplitter(SplittingConfig(), "int_rate").split(frame)
        assert list(result.train.index) == list(range(len(result.train)))

    def test_reproducible(self, frame):
        a = DataSplitter(SplittingConfig(), "int_rate", seed=7).split(frame)
        b = DataSplitter(SplittingConfig(), "int_rate", seed=7).split(frame)
        pd.testing.assert_frame_equal(a.test, b.test)

    def test_too_few_rows(self):
        with pytest.raises(InsufficientDataError):
            DataSplitter(SplittingConfig(), "int_rate").split(
                pd.DataFrame({"int_rate": [1.0, 2.0]})
            )

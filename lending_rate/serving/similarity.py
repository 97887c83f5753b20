"""
Similarity Query Engine

Finds the historical applicants closest to a candidate applicant over a small
normalized feature set and summarizes their interest rates as a histogram.
The reference matrix is normalized once at construction and never written
afterwards.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple
import logging
import math

import numpy as np
import pandas as pd

from lending_rate.core.exceptions import (
    ConfigurationError,
    InsufficientDataError,
    MissingValueError,
)
from lending_rate.features.imputer import finite_or_nan
from lending_rate.features.scaler import FeatureScaler


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Histogram:
    """Target-value histogram of the selected neighbours.

    Attributes:
        edges: Bin edges (len(counts) + 1), spanning the reference domain.
        counts: Records per bin; the last bin includes its right edge.
        n_selected: Records the histogram is built from.
        k: Requested neighbour count.
    """

    edges: Tuple[float, ...]
    counts: Tuple[int, ...]
    n_selected: int
    k: int

    @property
    def bin_width(self) -> float:
        return self.edges[1] - self.edges[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "edges": list(self.edges),
            "counts": list(self.counts),
            "n_selected": self.n_selected,
            "k": self.k,
        }


def _histogram_edges(lo: float, hi: float, bin_width: float) -> np.ndarray:
    """Edges at multiples of bin_width covering [lo, hi]."""
    start = math.floor(lo / bin_width) * bin_width
    stop = math.ceil(hi / bin_width) * bin_width
    n_bins = max(1, int(round((stop - start) / bin_width)))
    edges = start + bin_width * np.arange(n_bins + 1)
    # Rounding must not push the observed extremes outside the outer bins
    edges[0] = min(edges[0], lo)
    edges[-1] = max(edges[-1], hi)
    return edges


class SimilarityIndex:
    """Squared-Euclidean nearest neighbours over normalized features.

    Args:
        reference_df: Historical applicants (un-imputed features + target).
        features: Feature columns the distance is computed over.
        target: Column summarized by compare().
        scaler: Fitted scaler for the features; fitted on the usable
            reference rows when omitted.

    Raises:
        ConfigurationError: If a feature or the target column is absent.
        InsufficientDataError: If no reference record is usable.
    """

    def __init__(
        self,
        reference_df: pd.DataFrame,
        features: Sequence[str],
        target: str = "int_rate",
        scaler: Optional[FeatureScaler] = None,
    ):
        self.features = list(features)
        self.target = target

        absent = [c for c in self.features + [target] if c not in reference_df.columns]
        if absent:
            raise ConfigurationError(
                f"Reference set lacks columns: {absent}", column=absent[0]
            )

        values = pd.DataFrame({c: finite_or_nan(reference_df[c]) for c in self.features + [target]})
        usable = values.notna().all(axis=1)
        self.n_excluded = int((~usable).sum())
        if self.n_excluded:
            logger.info(
                f"SIMILARITY | Excluding {self.n_excluded:,} reference records "
                f"with a missing feature or target"
            )
        if not usable.any():
            raise InsufficientDataError(
                "No usable reference records for the similarity index", n_rows=0, required=1
            )

        self._reference = values.loc[usable].copy()
        if scaler is None:
            scaler = FeatureScaler().fit(self._reference, self.features)
        self.scaler = scaler

        matrix = scaler.transform(self._reference)
        matrix.setflags(write=False)
        self._matrix = matrix
        targets = self._reference[target].to_numpy(dtype=float)
        targets.setflags(write=False)
        self._targets = targets
        self._domain = (float(targets.min()), float(targets.max()))

        logger.info(
            f"SIMILARITY | Index built on {len(self._reference):,} records "
            f"over {self.features}"
        )

    def __len__(self) -> int:
        return len(self._reference)

    def _query_vector(self, query: Mapping[str, Any]) -> np.ndarray:
        missing = []
        values = {}
        for f in self.features:
            value = query.get(f)
            number = float(value) if value is not None else math.nan
            if not math.isfinite(number):
                missing.append(f)
            values[f] = number
        if missing:
            raise MissingValueError("Query is missing similarity features", features=missing)
        return self.scaler.transform_vector(values)

    def distances(self, query: Mapping[str, Any]) -> np.ndarray:
        """Squared Euclidean distance from the query to every reference record."""
        q = self._query_vector(query)
        return ((self._matrix - q) ** 2).sum(axis=1)

    def nearest(
        self,
        query: Mapping[str, Any],
        k: int = 50,
        include_ties: bool = False,
    ) -> pd.DataFrame:
        """The k closest reference records.

        Records are ordered by distance, equal distances in reference order.
        'rank' is the minimum rank: equal distances share the rank of the
        first of them. By default exactly min(k, len) records are returned;
        with include_ties every record whose rank is <= k is returned.

        Returns:
            Copy of the selected rows (features + target) with 'distance'
            and 'rank' columns, indexed like the reference frame.
        """
        if k < 1:
            raise ConfigurationError(f"k must be at least 1, got {k}")

        dist = self.distances(query)
        order = np.argsort(dist, kind="stable")
        sorted_dist = dist[order]
        ranks = np.searchsorted(sorted_dist, sorted_dist, side="left") + 1

        if include_ties:
            n_take = int(np.searchsorted(ranks, k, side="right"))
        else:
            n_take = min(k, len(order))

        chosen = order[:n_take]
        result = self._reference.iloc[chosen].copy()
        result["distance"] = sorted_dist[:n_take]
        result["rank"] = ranks[:n_take]
        return result

    def compare(
        self,
        query: Mapping[str, Any],
        k: int = 50,
        bin_width: float = 0.5,
        include_ties: bool = False,
    ) -> Histogram:
        """Histogram of the target over the k nearest records."""
        if bin_width <= 0:
            raise ConfigurationError(f"bin_width must be positive, got {bin_width}")

        selected = self.nearest(query, k, include_ties=include_ties)
        edges = _histogram_edges(self._domain[0], self._domain[1], bin_width)
        counts, _ = np.histogram(selected[self.target].to_numpy(dtype=float), bins=edges)

        return Histogram(
            edges=tuple(float(e) for e in edges),
            counts=tuple(int(c) for c in counts),
            n_selected=len(selected),
            k=k,
        )

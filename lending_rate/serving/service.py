"""
Rate Service

The synchronous serving surface: a point prediction from the reduced model
and a comparison histogram from the similarity index. Both take a single
applicant's reduced feature values as raw form input.
"""

from functools import lru_cache
from typing import Any, Dict, Mapping, Optional, Tuple
import logging
import math

from lending_rate.config.schema import DerivedFeatureConfig
from lending_rate.core.exceptions import ArtifactError, MissingValueError
from lending_rate.data.normalizer import ColumnNormalizer
from lending_rate.features.derived import DerivedFeatureCalculator
from lending_rate.io.artifact_store import ModelArtifactStore
from lending_rate.model_development.reduced_model import ReducedModel
from lending_rate.serving.similarity import Histogram, SimilarityIndex


logger = logging.getLogger(__name__)

UNAVAILABLE = {"predicted_rate": None, "error": "prediction unavailable"}


class RateService:
    """Prediction and comparison for one loaded model.

    Args:
        model: Fitted reduced model.
        index: Similarity index over the same features.
        cache_size: Max memoized compare() results (0 disables caching).
        round_decimals: Input rounding applied before caching and querying.
        k: Default neighbour count.
        bin_width: Histogram bin width in rate points.
        include_ties: Keep every neighbour tied at rank k.
        derived_config: Column names the model's derived features were
            trained with.
    """

    def __init__(
        self,
        model: ReducedModel,
        index: SimilarityIndex,
        cache_size: int = 1024,
        round_decimals: int = 4,
        k: int = 50,
        bin_width: float = 0.5,
        include_ties: bool = False,
        derived_config: Optional[DerivedFeatureConfig] = None,
    ):
        self.model = model
        self.index = index
        self.round_decimals = round_decimals
        self.k = k
        self.bin_width = bin_width
        self.include_ties = include_ties

        self._normalizer = ColumnNormalizer()
        self._calculator = DerivedFeatureCalculator(derived_config)
        self._compare_cached = lru_cache(maxsize=cache_size)(self._compare_key)

    def _prepare(self, features: Mapping[str, Any]) -> Dict[str, Any]:
        """Parse raw form values and derive model features they imply."""
        record = self._normalizer.normalize_record(features)
        wanted = set(self.model.features) | set(self.index.features)
        if any(f not in record for f in wanted):
            record = self._calculator.derive_single(record)
        return record

    def predict(self, features: Mapping[str, Any]) -> Dict[str, Any]:
        """Predicted interest rate for one applicant.

        Never raises: on any failure the unavailable response is returned
        and the error is logged.
        """
        try:
            record = self._prepare(features)
            rate = self.model.predict_one(record)
            if not math.isfinite(rate):
                raise ValueError(f"non-finite prediction {rate}")
        except Exception:
            logger.exception("SERVING | Prediction failed")
            return dict(UNAVAILABLE)
        return {"predicted_rate": round(rate, self.round_decimals)}

    def _query_key(self, features: Mapping[str, Any]) -> Tuple[float, ...]:
        record = self._prepare(features)
        key = []
        missing = []
        for f in self.index.features:
            value = record.get(f)
            number = float(value) if value is not None else math.nan
            if not math.isfinite(number):
                missing.append(f)
            key.append(round(number, self.round_decimals))
        if missing:
            raise MissingValueError("Comparison input is missing features", features=missing)
        return tuple(key)

    def _compare_key(self, key: Tuple[float, ...], k: int) -> Histogram:
        query = dict(zip(self.index.features, key))
        return self.index.compare(query, k=k, bin_width=self.bin_width, include_ties=self.include_ties)

    def compare(self, features: Mapping[str, Any], k: Optional[int] = None) -> Histogram:
        """Rate histogram of the k most similar historical applicants.

        Results are memoized on the rounded inputs and k.

        Raises:
            MissingValueError: If a similarity feature is missing.
            ConfigurationError: If k is less than 1.
        """
        return self._compare_cached(self._query_key(features), self.k if k is None else k)

    def cache_info(self):
        return self._compare_cached.cache_info()

    @classmethod
    def from_artifact(cls, artifact: Mapping[str, Any]) -> "RateService":
        """Build the service from a training artifact."""
        try:
            model = ReducedModel.from_artifact(artifact["reduced_model"])
            settings = dict(artifact.get("similarity", {}))
            index = SimilarityIndex(
                artifact["reference"],
                model.features,
                target=model.target_column,
                scaler=artifact.get("scaler"),
            )
            derived = artifact.get("derived_features")
            derived_config = DerivedFeatureConfig(**derived) if derived else None
        except KeyError as e:
            raise ArtifactError(f"Training artifact lacks {e}", cause=e)

        return cls(
            model,
            index,
            cache_size=settings.get("cache_size", 1024),
            round_decimals=settings.get("round_decimals", 4),
            k=settings.get("k", 50),
            bin_width=settings.get("bin_width", 0.5),
            include_ties=settings.get("include_ties", False),
            derived_config=derived_config,
        )

    @classmethod
    def from_store(
        cls,
        store: ModelArtifactStore,
        name: str,
        version: Optional[str] = None,
    ) -> "RateService":
        return cls.from_artifact(store.load(name, version))


@lru_cache(maxsize=None)
def load_service(base_dir: str, name: str, version: Optional[str] = None) -> RateService:
    """Process-wide service, loaded on first use and reused afterwards."""
    logger.info(f"SERVING | Loading {name}/{version or 'latest'} from {base_dir}")
    return RateService.from_store(ModelArtifactStore(base_dir), name, version)

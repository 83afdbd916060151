"""
normalization/metrics.py

Conversion of dimension scores into persisted NormalizedMetric records.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from app.scoring_config import ScoringConfig, get_scoring_config
from normalization.dimensions import DimensionScores
from normalization.scaler import SCALE_MAX, normalize_to_history


class MetricType:
    COUNT = "count"
    AVERAGE = "average"
    PERCENTAGE = "percentage"
    TREND = "trend"


# dimension attribute -> metric name suffix
_METRIC_SUFFIXES: dict[str, str] = {
    "activity_volume": "activity_volume",
    "participation_level": "participation",
    "responsiveness": "responsiveness",
    "throughput": "throughput",
}

DEFAULT_DIMENSION_WEIGHT: float = 0.25


@dataclass(frozen=True)
class NormalizedMetric:
    """
    One named signal on the canonical scale.

    ``raw_value`` is the 0-100 dimension score; ``normalized_value`` is its
    0-1 form used by weighting and the Fusion Score.
    """

    metric_name: str
    raw_value: float
    normalized_value: float
    metric_type: str = MetricType.PERCENTAGE
    weight: float = DEFAULT_DIMENSION_WEIGHT


def metric_name(service_name: str, dimension: str) -> str:
    return f"{service_name}_{_METRIC_SUFFIXES[dimension]}"


def metric_names(service_name: str) -> list[str]:
    return [metric_name(service_name, dimension) for dimension in _METRIC_SUFFIXES]


def to_normalized_metrics(
    service_name: str,
    dims: DimensionScores,
    history: Mapping[str, Sequence[float]] | None = None,
    config: ScoringConfig | None = None,
) -> list[NormalizedMetric]:
    """
    Build the four ``{service}_<dimension>`` metrics for one snapshot.

    Parameters
    ----------
    history:
        Recent raw values per metric name, used only when the configured
        scaling mode is ``"adaptive"``.  Fixed mode maps the 0-100 score
        straight onto 0-1.
    """

    config = config or get_scoring_config()
    adaptive = config.scaling_mode == "adaptive"
    history = history or {}

    records: list[NormalizedMetric] = []
    for dimension, value in dims.as_dict().items():
        name = metric_name(service_name, dimension)
        if adaptive:
            normalized = normalize_to_history(value, history.get(name, ())) / SCALE_MAX
        else:
            normalized = value / SCALE_MAX
        records.append(
            NormalizedMetric(
                metric_name=name,
                raw_value=round(value, 4),
                normalized_value=round(normalized, 6),
            )
        )
    return records

"""
trend/forecast.py

Short-horizon weighted moving average forecast.
"""

from __future__ import annotations

from trend.base import BaseScoreForecaster

DEFAULT_WEIGHTS: tuple[float, ...] = (0.4, 0.3, 0.2, 0.1)


class WeightedMovingAverageForecast(BaseScoreForecaster):
    """
    Weighted average of the most recent ``len(weights)`` points.

    The most recent point receives ``weights[0]``.  The sum is divided by
    the weights actually used, so a two-point history is averaged with
    ``0.4/0.7`` and ``0.3/0.7`` rather than being under-weighted.
    """

    def __init__(self, weights: tuple[float, ...] = DEFAULT_WEIGHTS) -> None:
        if not weights or any(w < 0 for w in weights):
            raise ValueError("Forecast weights must be a non-empty sequence of non-negative numbers.")
        self._weights = tuple(weights)

    def forecast(self, values: list[float]) -> dict:
        recent = list(reversed(values[-len(self._weights):]))
        used = self._weights[: len(recent)]
        weight_sum = sum(used)

        if not recent or weight_sum <= 0:
            value = 0.0
        else:
            value = sum(v * w for v, w in zip(recent, used)) / weight_sum

        return {
            "model": "weighted_moving_average",
            "forecast": round(value, 6),
            "points_used": len(recent),
        }


def weighted_forecast(values: list[float], weights: tuple[float, ...] = DEFAULT_WEIGHTS) -> float:
    """Convenience wrapper returning only the forecast value."""
    return WeightedMovingAverageForecast(weights).forecast(values)["forecast"]

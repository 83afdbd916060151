"""
trend/regression.py

Ordinary least-squares trend over a score history, pure Python.
"""

from __future__ import annotations

from trend.base import BaseScoreForecaster


def trend_slope(values: list[float]) -> float:
    """
    OLS slope of *values* against their index ``0..n-1``.

    *values* must be ordered oldest first, so a positive slope means the
    series is rising over time.  Fewer than two points give a slope of 0.
    """

    return LinearTrendForecast().forecast(values)["slope"]


class LinearTrendForecast(BaseScoreForecaster):
    """
    Fits ``y = m*x + b`` with x = [0, 1, ..., n-1]:

        m = cov(x, y) / var(x)
        b = mean(y) - m * mean(x)

    and projects one step past the last observation.
    """

    MIN_POINTS: int = 2

    def forecast(self, values: list[float]) -> dict:
        n = len(values)
        if n < self.MIN_POINTS:
            last = float(values[-1]) if values else 0.0
            return {
                "model": "linear_regression",
                "slope": 0.0,
                "intercept": last,
                "forecast": last,
                "points": n,
            }

        mean_x = (n - 1) / 2.0
        mean_y = sum(values) / n

        cov_xy = sum((i - mean_x) * (y - mean_y) for i, y in enumerate(values))
        var_x = sum((i - mean_x) ** 2 for i in range(n))

        slope = cov_xy / var_x
        intercept = mean_y - slope * mean_x

        return {
            "model": "linear_regression",
            "slope": round(slope, 6),
            "intercept": round(intercept, 6),
            "forecast": round(slope * n + intercept, 6),
            "points": n,
        }

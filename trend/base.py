"""
trend/base.py

Abstract base class for score-history forecasters.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseScoreForecaster(ABC):
    """
    Contract for forecasters over a composite score history.

    No I/O, no logging, and no side effects are permitted inside
    :meth:`forecast`.
    """

    @abstractmethod
    def forecast(self, values: list[float]) -> dict:
        """
        Parameters
        ----------
        values:
            Historical scores in chronological order, **oldest first**.
            May be empty; implementations must degrade to a neutral result
            rather than raise.

        Returns
        -------
        dict
            At minimum ``"forecast"`` (next expected value) and ``"model"``.
        """

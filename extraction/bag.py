"""
extraction/bag.py

Typed container for the raw numeric signals extracted from one event payload.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from extraction.categories import IntegrationCategory


def _json_safe(value: Any) -> Any:
    # JSONB has no NaN or Infinity literals
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)
    return value


@dataclass(frozen=True)
class RawMetricBag:
    """
    Category-tagged set of canonical raw metrics.

    ``metrics`` holds only recognised, numeric fields under their canonical
    names.  Everything else found in the source payload is preserved verbatim
    in ``extras``; recognised fields whose value was not numeric are kept in
    ``rejected`` so nothing is silently coerced.
    """

    category: IntegrationCategory
    service_name: str
    metrics: dict[str, float] = field(default_factory=dict)
    extras: dict[str, Any] = field(default_factory=dict)
    rejected: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def empty(cls, category: IntegrationCategory, service_name: str) -> "RawMetricBag":
        return cls(category=category, service_name=service_name)

    def get(self, name: str, default: float = 0.0) -> float:
        return self.metrics.get(name, default)

    def first(self, *names: str) -> float:
        """Return the first non-zero metric among *names*, else 0."""
        for name in names:
            value = self.metrics.get(name, 0.0)
            if value:
                return value
        return 0.0

    def to_payload(self) -> dict[str, Any]:
        """JSON-serialisable form stored in the snapshot's ``raw_metrics`` column."""
        payload: dict[str, Any] = {
            "category": self.category.value,
            "metrics": dict(self.metrics),
        }
        if self.extras:
            payload["extras"] = dict(self.extras)
        if self.rejected:
            payload["rejected"] = {key: _json_safe(val) for key, val in self.rejected.items()}
        return payload

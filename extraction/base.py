"""
extraction/base.py

Abstract base class for per-category metric extractors.
"""

from __future__ import annotations

import math
from abc import ABC
from collections.abc import Mapping
from typing import Any, ClassVar

from extraction.bag import RawMetricBag
from extraction.categories import IntegrationCategory

FieldAliases = dict[str, tuple[str, ...]]


def _as_number(value: Any) -> float | None:
    """Return *value* as a finite float, or None when it is not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    # NaN and infinities cannot be scaled or rendered as counts
    return number if math.isfinite(number) else None


class BaseMetricExtractor(ABC):
    """
    Contract for category extractors.

    Subclasses declare ``FIELDS``: a mapping of canonical metric name to the
    ordered source keys that may carry it.  The first source key holding a
    non-zero number wins, matching how connectors for different services
    report the same concept under different names (``task_count`` versus
    ``issue_count`` versus ``card_count``).  ``SERVICE_FIELDS`` adds
    service-specific metrics on top of the shared set.

    Absent fields default to 0.  No I/O, no logging, and no side effects are
    permitted inside :meth:`extract`.
    """

    category: ClassVar[IntegrationCategory]
    FIELDS: ClassVar[FieldAliases] = {}
    SERVICE_FIELDS: ClassVar[dict[str, FieldAliases]] = {}

    def field_map(self, service_name: str) -> FieldAliases:
        return {**self.FIELDS, **self.SERVICE_FIELDS.get(service_name, {})}

    def extract(
        self,
        service_name: str,
        metadata: Mapping[str, Any] | None,
        event_count: int = 0,
    ) -> RawMetricBag:
        """
        Extract canonical metrics for *service_name* from one event payload.

        Parameters
        ----------
        service_name:
            Registered service identifier, e.g. ``"jira"``.
        metadata:
            Free-form payload of the most recent event in the window.
        event_count:
            Number of events observed in the current window.
        """

        payload = dict(metadata or {})
        metrics: dict[str, float] = {}
        rejected: dict[str, Any] = {}
        consumed: set[str] = set()

        for canonical, aliases in self.field_map(service_name).items():
            value = 0.0
            for alias in aliases:
                consumed.add(alias)
                if alias not in payload:
                    continue
                number = _as_number(payload[alias])
                if number is None:
                    rejected[alias] = payload[alias]
                    continue
                if number and not value:
                    value = number
            metrics[canonical] = value

        extras = {key: val for key, val in payload.items() if key not in consumed}
        return RawMetricBag(
            category=self.category,
            service_name=service_name,
            metrics=metrics,
            extras=extras,
            rejected=rejected,
        )

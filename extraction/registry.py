"""
extraction/registry.py

Routes extraction requests to the extractor registered for each category.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from extraction.bag import RawMetricBag
from extraction.base import BaseMetricExtractor
from extraction.business import CRMExtractor, DataExtractor, FinancialExtractor
from extraction.categories import IntegrationCategory
from extraction.collaboration import (
    CommunicationExtractor,
    DesignExtractor,
    DocumentationExtractor,
    MeetingsExtractor,
)
from extraction.delivery import EngineeringExtractor, ProjectManagementExtractor, SupportExtractor


class GeneralExtractor(BaseMetricExtractor):
    """Fallback for unregistered services: only the window's event count."""

    category = IntegrationCategory.GENERAL

    def extract(
        self,
        service_name: str,
        metadata: Mapping[str, Any] | None,
        event_count: int = 0,
    ) -> RawMetricBag:
        return RawMetricBag(
            category=self.category,
            service_name=service_name,
            metrics={"event_count": float(event_count)},
            extras=dict(metadata or {}),
        )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_EXTRACTORS: dict[IntegrationCategory, BaseMetricExtractor] = {
    IntegrationCategory.COMMUNICATION: CommunicationExtractor(),
    IntegrationCategory.MEETINGS: MeetingsExtractor(),
    IntegrationCategory.PROJECT_MANAGEMENT: ProjectManagementExtractor(),
    IntegrationCategory.ENGINEERING: EngineeringExtractor(),
    IntegrationCategory.DOCUMENTATION: DocumentationExtractor(),
    IntegrationCategory.SUPPORT: SupportExtractor(),
    IntegrationCategory.DESIGN: DesignExtractor(),
    IntegrationCategory.DATA: DataExtractor(),
    IntegrationCategory.FINANCIAL: FinancialExtractor(),
    IntegrationCategory.CRM: CRMExtractor(),
    IntegrationCategory.GENERAL: GeneralExtractor(),
}

_missing = set(IntegrationCategory) - set(_EXTRACTORS)
if _missing:
    raise RuntimeError(f"No extractor registered for categories: {sorted(c.value for c in _missing)}")


def get_extractor(category: IntegrationCategory) -> BaseMetricExtractor:
    return _EXTRACTORS[category]


def extract_metrics(
    category: IntegrationCategory,
    service_name: str,
    metadata: Mapping[str, Any] | None,
    event_count: int = 0,
) -> RawMetricBag:
    """
    Extract canonical raw metrics for one service.

    A window with no events yields an empty bag for every category except
    ``general``, whose only metric is the event count itself.
    """

    if event_count <= 0 and category is not IntegrationCategory.GENERAL:
        return RawMetricBag.empty(category, service_name)
    return _EXTRACTORS[category].extract(service_name, metadata, event_count)

"""
anomaly/explainer.py

Explainer strategy for anomaly signals.

The detector core never performs I/O; narrative text is delegated to an
injected :class:`BaseExplainer`.  :class:`TemplateExplainer` is
deterministic and is also the fallback whenever another explainer raises.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import asdict, dataclass

from anomaly.base import AnomalySignal
from app.domain.intelligence import HealthSample
from llm_synthesis.adapter import BaseLLMAdapter
from llm_synthesis.prompt_builder import AnomalyPromptBuilder
from llm_synthesis.retry import generate_with_retry

logger = logging.getLogger(__name__)


class ExplanationSource:
    TEMPLATE = "template"
    LLM = "llm"


@dataclass(frozen=True)
class Explanation:
    summary: str
    root_cause: str
    actions: tuple[str, ...]
    business_impact: str | None
    source: str


class BaseExplainer(ABC):
    """Turns a detected signal into human-readable text."""

    source: str = ExplanationSource.TEMPLATE

    @abstractmethod
    def explain(
        self,
        signal: AnomalySignal,
        recent_samples: Sequence[HealthSample] = (),
    ) -> Explanation:
        """Return an explanation for *signal*."""


_ROOT_CAUSES: dict[str, str] = {
    "latency_spike": "Response times rose well above the recent baseline for this component.",
    "error_rate_increase": "The share of failing requests rose above the recent baseline.",
    "resource_exhaustion": "The component is running close to its resource limits.",
    "dimension_outlier": "One activity dimension diverges sharply from the others.",
}


class TemplateExplainer(BaseExplainer):
    source = ExplanationSource.TEMPLATE

    def explain(
        self,
        signal: AnomalySignal,
        recent_samples: Sequence[HealthSample] = (),
    ) -> Explanation:
        component = signal.source_component_name or signal.source_type
        return Explanation(
            summary=f"{signal.severity.capitalize()} {signal.anomaly_type.replace('_', ' ')} on {component}.",
            root_cause=_ROOT_CAUSES.get(signal.anomaly_type, signal.description),
            actions=tuple(a.replace("_", " ") for a in signal.recommended_actions),
            business_impact=signal.business_impact,
            source=self.source,
        )


class LLMExplainer(BaseExplainer):
    """
    Asks an LLM adapter for a JSON explanation and validates it.  Malformed
    output is retried ``max_retries`` times; anything else propagates.
    """

    source = ExplanationSource.LLM

    def __init__(
        self,
        adapter: BaseLLMAdapter,
        max_retries: int = 2,
        prompt_builder: AnomalyPromptBuilder | None = None,
    ) -> None:
        self._adapter = adapter
        self._max_retries = max_retries
        self._prompt_builder = prompt_builder or AnomalyPromptBuilder()

    def explain(
        self,
        signal: AnomalySignal,
        recent_samples: Sequence[HealthSample] = (),
    ) -> Explanation:
        prompt = self._prompt_builder.build_prompt(
            anomaly={
                "type": signal.anomaly_type,
                "component": signal.source_component_name,
                "severity": signal.severity,
                "description": signal.description,
            },
            metrics={
                "baseline": signal.baseline_value,
                "observed": signal.observed_value,
                "deviation_percentage": signal.deviation_percentage,
            },
            recent_events=[asdict(sample) for sample in recent_samples],
        )
        output = generate_with_retry(
            self._adapter,
            prompt,
            max_retries=self._max_retries,
            label=signal.anomaly_type,
        )
        return Explanation(
            summary=output.summary,
            root_cause=output.root_cause,
            actions=tuple(output.actions),
            business_impact=output.business_impact,
            source=self.source,
        )


_FALLBACK = TemplateExplainer()


def explain_safely(
    explainer: BaseExplainer,
    signal: AnomalySignal,
    recent_samples: Sequence[HealthSample] = (),
) -> tuple[AnomalySignal, bool]:
    """
    Attach an explanation to *signal*.

    Returns the explained signal and whether *explainer* itself produced
    the text.  Any exception degrades to the template explanation.
    """

    try:
        explanation = explainer.explain(signal, recent_samples)
        produced = True
    except Exception as exc:  # noqa: BLE001
        logger.warning(
            "Explainer %s failed for %s (%s); using template text: %s",
            type(explainer).__name__,
            signal.anomaly_type,
            signal.source_component_name,
            exc,
        )
        explanation = _FALLBACK.explain(signal, recent_samples)
        produced = False

    explained = signal.with_explanation(
        summary=explanation.summary,
        root_cause=explanation.root_cause,
        actions=explanation.actions,
        business_impact=explanation.business_impact,
        source=explanation.source,
    )
    return explained, produced

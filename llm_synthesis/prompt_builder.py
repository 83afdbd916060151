"""Structured prompt builder for anomaly explanations."""

import json
from typing import Any, Mapping, Sequence

from llm_synthesis.schema import AnomalyExplanationOutput

_SCHEMA_JSON = json.dumps(AnomalyExplanationOutput.model_json_schema(), indent=2)

_EXAMPLE_OUTPUT = json.dumps(
    {
        "summary": "API latency rose tenfold within the last window.",
        "root_cause": "A recent deployment introduced an unindexed query on the events table.",
        "actions": [
            "Roll back the latest deployment",
            "Add an index on the filtered column",
            "Watch p95 latency for the next hour",
        ],
        "business_impact": "high",
    },
    indent=2,
)

_SYSTEM_INSTRUCTIONS = """\
Analyze this system anomaly and provide a concise explanation.

STRICT RULES:
- Use ONLY the data provided below. Do not invent measurements.
- Return strictly valid JSON matching the schema defined below.
- Do NOT include any text outside the JSON object.
- Do NOT wrap the JSON in markdown code fences.
"""

_SECTION_TEMPLATE = """\
## {title}
```json
{data}
```
"""

_MAX_RECENT_EVENTS = 5


class AnomalyPromptBuilder:
    """Builds a deterministic prompt explaining one anomaly signal."""

    def build_prompt(
        self,
        anomaly: Mapping[str, Any],
        metrics: Mapping[str, Any],
        recent_events: Sequence[Mapping[str, Any]] = (),
    ) -> str:
        """Build the explanation prompt.

        Args:
            anomaly: Type, component, severity and description of the signal.
            metrics: Baseline, observed and deviation values.
            recent_events: Most recent health samples; only the last five
                are included.
        """
        sections = self._format_data_sections(
            anomaly=dict(anomaly),
            metrics=dict(metrics),
            recent_events=list(recent_events)[-_MAX_RECENT_EVENTS:],
        )

        return (
            f"{_SYSTEM_INSTRUCTIONS}\n"
            f"# PROVIDED DATA\n\n{sections}\n"
            f"# OUTPUT SCHEMA\n\n"
            f"Your response MUST conform to this JSON schema:\n\n"
            f"```json\n{_SCHEMA_JSON}\n```\n\n"
            f"# EXAMPLE OUTPUT\n\n"
            f"```json\n{_EXAMPLE_OUTPUT}\n```\n\n"
            f"# TASK\n\n"
            f"Explain the anomaly as a single JSON object with keys summary, "
            f"root_cause, actions and business_impact."
        )

    def _format_data_sections(self, **data: Any) -> str:
        parts = []
        for key, value in data.items():
            title = key.replace("_", " ").title()
            body = json.dumps(value, indent=2, default=str, sort_keys=True)
            parts.append(_SECTION_TEMPLATE.format(title=title, data=body))
        return "\n".join(parts)

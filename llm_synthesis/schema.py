"""Structured output schema for LLM anomaly explanations."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class AnomalyExplanationOutput(BaseModel):
    """Only allowed output contract for the anomaly explanation call."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        str_strip_whitespace=True,
    )

    summary: str = Field(min_length=1)
    root_cause: str = Field(min_length=1)
    actions: List[str] = Field(default_factory=list, max_length=10)
    business_impact: Optional[Literal["low", "medium", "high", "critical"]] = None

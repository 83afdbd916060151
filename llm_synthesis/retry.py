"""Retry wrapper around one LLM explanation call.

Only malformed output (JSON parse or schema failures) is retried.
Transport errors raised by the adapter propagate on the first attempt;
the caller decides whether to degrade.
"""

import logging
from typing import List

from llm_synthesis.adapter import BaseLLMAdapter
from llm_synthesis.schema import AnomalyExplanationOutput
from llm_synthesis.validator import LLMOutputValidationError, validate_llm_output

logger = logging.getLogger(__name__)

_RETRYABLE_STAGES = frozenset({"json_parse", "schema"})


class LLMRetryExhaustedError(Exception):
    """Every attempt returned output that failed validation.

    Attributes:
        attempts: Total number of attempts made (initial + retries).
        last_error: The validation error from the final attempt.
        history: Validation errors from every failed attempt.
    """

    def __init__(
        self,
        attempts: int,
        last_error: LLMOutputValidationError,
        history: List[LLMOutputValidationError],
    ) -> None:
        self.attempts = attempts
        self.last_error = last_error
        self.history = history
        super().__init__(
            f"LLM explanation invalid after {attempts} attempt(s). "
            f"Last error: {last_error}"
        )


def generate_with_retry(
    adapter: BaseLLMAdapter,
    prompt: str,
    max_retries: int = 2,
    label: str = "anomaly",
) -> AnomalyExplanationOutput:
    """Generate and validate an explanation, retrying malformed output.

    Args:
        adapter: An LLM adapter implementing ``generate(prompt) -> str``.
        prompt: The fully formatted prompt string.
        max_retries: Additional attempts after the first failure.
        label: Short identifier used in log lines.

    Returns:
        A validated ``AnomalyExplanationOutput`` instance.

    Raises:
        LLMRetryExhaustedError: If all attempts fail with retryable errors.
    """
    errors: List[LLMOutputValidationError] = []
    total_attempts = 1 + max(0, max_retries)

    for attempt in range(1, total_attempts + 1):
        raw = adapter.generate(prompt)
        try:
            result = validate_llm_output(raw)
        except LLMOutputValidationError as exc:
            if exc.stage not in _RETRYABLE_STAGES:
                raise
            errors.append(exc)
            logger.warning(
                "Explanation for %s rejected on attempt %d/%d at stage '%s': %s",
                label,
                attempt,
                total_attempts,
                exc.stage,
                "; ".join(exc.errors),
            )
            continue

        if attempt > 1:
            logger.info(
                "Explanation for %s validated on attempt %d/%d",
                label,
                attempt,
                total_attempts,
            )
        return result

    raise LLMRetryExhaustedError(
        attempts=total_attempts,
        last_error=errors[-1],
        history=errors,
    )

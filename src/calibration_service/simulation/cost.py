"""
Token pricing and run cost estimation.
"""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict

from calibration_service.generation.config import DEFAULT_MODEL

TOKENS_PER_PRICE_UNIT = 1_000_000
DEFAULT_AVG_INPUT_TOKENS = 300
DEFAULT_AVG_OUTPUT_TOKENS = 100
# Estimates are reported as a range of +/- 30% around the point estimate
ESTIMATE_MARGIN = 0.3


@dataclass(frozen=True)
class ModelPricing:
    """USD per million tokens."""

    input: float
    output: float


PRICING: dict[str, ModelPricing] = {
    "claude-3-haiku-20240307": ModelPricing(input=0.25, output=1.25),
    "claude-3-5-haiku-20241022": ModelPricing(input=1.0, output=5.0),
    "claude-3-5-sonnet-20241022": ModelPricing(input=3.0, output=15.0),
    "claude-3-opus-20240229": ModelPricing(input=15.0, output=75.0),
}


class CostEstimate(BaseModel):
    model_config = ConfigDict(frozen=True)

    calls: int
    expected_cost: float
    min_cost: float
    max_cost: float


class ModelInfo(BaseModel):
    id: str
    input_per_1m: float
    output_per_1m: float


def get_pricing(model: str) -> ModelPricing:
    """Pricing for a model, falling back to the default model's entry."""
    return PRICING.get(model, PRICING[DEFAULT_MODEL])


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Cost in USD of one call."""
    pricing = get_pricing(model)
    return (
        input_tokens * pricing.input + output_tokens * pricing.output
    ) / TOKENS_PER_PRICE_UNIT


def estimate_cost(
    model: str,
    n_items: int,
    n_personas: int,
    n_trials: int,
    avg_input_tokens: int = DEFAULT_AVG_INPUT_TOKENS,
    avg_output_tokens: int = DEFAULT_AVG_OUTPUT_TOKENS,
) -> CostEstimate:
    """
    Estimate the cost of a planned run without calling the service.

    Args:
        model: Model identifier.
        n_items: Number of items in the run.
        n_personas: Number of personas.
        n_trials: Trials per (item, persona) pair.
        avg_input_tokens: Expected prompt size per call.
        avg_output_tokens: Expected completion size per call.

    Returns:
        CostEstimate with the call count and a +/-30% cost range.
    """
    if min(n_items, n_personas, n_trials) < 0:
        raise ValueError("Counts must be non-negative")

    calls = n_items * n_personas * n_trials
    expected = calls * calculate_cost(model, avg_input_tokens, avg_output_tokens)
    return CostEstimate(
        calls=calls,
        expected_cost=expected,
        min_cost=expected * (1 - ESTIMATE_MARGIN),
        max_cost=expected * (1 + ESTIMATE_MARGIN),
    )


def get_available_models() -> list[ModelInfo]:
    return [
        ModelInfo(id=model, input_per_1m=p.input, output_per_1m=p.output)
        for model, p in PRICING.items()
    ]

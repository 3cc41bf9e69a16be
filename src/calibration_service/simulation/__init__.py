from calibration_service.simulation.cost import (
    PRICING,
    CostEstimate,
    ModelInfo,
    ModelPricing,
    calculate_cost,
    estimate_cost,
    get_available_models,
)
from calibration_service.simulation.exceptions import (
    ConfigurationError,
    RunCreationError,
)
from calibration_service.simulation.parser import parse_answer
from calibration_service.simulation.progress import (
    ProgressCallback,
    ProgressUpdate,
    SkipCallback,
    SkippedCell,
    SkipReason,
)
from calibration_service.simulation.prompts import format_item
from calibration_service.simulation.rate_limit import (
    RateLimitPolicy,
    TokenBucketRateLimiter,
)
from calibration_service.simulation.runner import (
    CalibrationConfig,
    CalibrationOrchestrator,
    RunSummary,
    select_personas,
)

__all__ = [
    "PRICING",
    "CalibrationConfig",
    "CalibrationOrchestrator",
    "ConfigurationError",
    "CostEstimate",
    "ModelInfo",
    "ModelPricing",
    "ProgressCallback",
    "ProgressUpdate",
    "RateLimitPolicy",
    "RunCreationError",
    "RunSummary",
    "SkipCallback",
    "SkipReason",
    "SkippedCell",
    "TokenBucketRateLimiter",
    "calculate_cost",
    "estimate_cost",
    "format_item",
    "get_available_models",
    "parse_answer",
    "select_personas",
]

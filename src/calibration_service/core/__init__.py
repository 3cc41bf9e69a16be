"""
Core shared types and utilities for the calibration service.

This module provides the domain models (items, personas, runs, responses)
used by the simulation, statistics and storage layers.
"""

from calibration_service.core.data_models import (
    CalibrationRun,
    HumanResponse,
    Item,
    Persona,
    PersonaCategory,
    ResponseRecord,
    RunStatus,
)
from calibration_service.core.utils import generate_id, utc_now

__all__ = [
    "CalibrationRun",
    "HumanResponse",
    "Item",
    "Persona",
    "PersonaCategory",
    "ResponseRecord",
    "RunStatus",
    "generate_id",
    "utc_now",
]

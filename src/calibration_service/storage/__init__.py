from calibration_service.storage.base import (
    CalibrationStore,
    ItemFilter,
    ResponseFilter,
    StatisticsFilter,
)
from calibration_service.storage.exceptions import (
    RunNotFoundError,
    StorageError,
)
from calibration_service.storage.memory import InMemoryStore
from calibration_service.storage.sqlite import SQLiteStore

__all__ = [
    "CalibrationStore",
    "InMemoryStore",
    "ItemFilter",
    "ResponseFilter",
    "RunNotFoundError",
    "SQLiteStore",
    "StatisticsFilter",
    "StorageError",
]

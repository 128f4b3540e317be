"""Solver-Modul (Platzierung + lokale Suche)."""

from .scheduler import EngineState, SchedulerResult, SchedulingEngine, UnscheduledCourse
from .constraints import ConstraintValidator, ValidationResult, room_suits_session
from .errors import (
    ImportFailure,
    PlacementFailure,
    TimeoutExceeded,
    UnknownReferenceError,
    ValidationWarning,
)
from .pinning import PinManager
from .timeout import TimeoutManager

__all__ = [
    "EngineState",
    "SchedulerResult",
    "SchedulingEngine",
    "UnscheduledCourse",
    "ConstraintValidator",
    "ValidationResult",
    "room_suits_session",
    "ImportFailure",
    "PlacementFailure",
    "TimeoutExceeded",
    "UnknownReferenceError",
    "ValidationWarning",
    "PinManager",
    "TimeoutManager",
]

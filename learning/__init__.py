"""Lern-Log für Planungsläufe."""

from .store import LearningRecord, LearningStats, LearningStore, ProblemCharacteristics

__all__ = [
    "LearningRecord",
    "LearningStats",
    "LearningStore",
    "ProblemCharacteristics",
]

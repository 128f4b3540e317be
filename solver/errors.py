"""Fehler-Taxonomie der Planungs-Engine.

Nur TimeoutExceeded (expliziter Checkpoint), UnknownReferenceError und
ImportFailure sind Exceptions. Alles andere wird als Wert durchgereicht.
"""

from typing import Literal, Optional

from pydantic import BaseModel

from models.availability import ValidationWarning

FailureReason = Literal["no_teacher_slot", "no_classroom", "capacity", "conflict", "timeout"]

__all__ = [
    "FailureReason",
    "ImportFailure",
    "PlacementFailure",
    "TimeoutExceeded",
    "UnknownReferenceError",
    "ValidationWarning",
]


class PlacementFailure(BaseModel):
    """Eine Sitzung konnte nicht eingeplant werden (der Lauf geht weiter)."""

    course_id: str
    session_type: str
    hours: int
    reason: FailureReason
    detail: str = ""


class TimeoutExceeded(Exception):
    """Zeitlimit überschritten (nur von TimeoutManager.check_and_throw)."""

    def __init__(self, elapsed_ms: float, timeout_ms: float) -> None:
        self.elapsed_ms = elapsed_ms
        self.timeout_ms = timeout_ms
        super().__init__(
            f"Zeitlimit überschritten: {elapsed_ms:.0f}ms von {timeout_ms:.0f}ms"
        )


class UnknownReferenceError(Exception):
    """Verweis auf einen nicht existierenden Kurs oder Raum (bricht den Lauf ab)."""

    def __init__(self, kind: str, ref_id: str, context: Optional[str] = None) -> None:
        self.kind = kind
        self.ref_id = ref_id
        message = f"Unbekannte {kind}-ID '{ref_id}'"
        if context:
            message += f" ({context})"
        super().__init__(message)


class ImportFailure(Exception):
    """Lern-Log konnte nicht importiert werden; der Speicher bleibt unverändert."""

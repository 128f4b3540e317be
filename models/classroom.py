"""Datenmodell für einen Hörsaal / Laborraum (Pydantic v2)."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, PrivateAttr

from config.defaults import SESSION_ROOM_TYPES
from models.availability import Availability, parse_availability


class ClassroomRecord(BaseModel):
    """Ein Raum mit Kapazität, Typ und optionalen Verfügbarkeitszeiten."""

    id: str                                   # "A-101"
    name: str = ""                            # "Hörsaal A"
    capacity: int = Field(0, ge=0)
    room_type: Literal["theoretical", "lab", "hybrid"] = "theoretical"
    priority_department: Optional[str] = None
    # Rohdaten (Mapping oder JSON-Text); None = uneingeschränkt
    available_hours: Any = None
    is_active: bool = True

    _availability: Availability = PrivateAttr(default_factory=Availability)

    def model_post_init(self, __context) -> None:
        self._availability = parse_availability(
            self.available_hours, source=f"Raum {self.id}: Verfügbarkeit"
        )

    @property
    def availability(self) -> Availability:
        return self._availability

    def suits(self, session_type: str, students: int = 0) -> bool:
        """Raumtyp passt zum Sitzungstyp und die Kapazität reicht.

        Labor → Labor/Hybrid; Theorie → kein Labor; kombiniert → jeder Typ.
        """
        if self.room_type not in SESSION_ROOM_TYPES.get(session_type, set()):
            return False
        return self.capacity >= students

"""Verfügbarkeitsrechner.

freie Blöcke = alle Blöcke − feste Belegung[Wochentag] − belegte Blöcke im Ledger

An Nicht-Unterrichtstagen (Wochenende, Feiertag) wird jeder Raum mit leerer
Menge geliefert — eine gültige, beantwortbare Anfrage, kein Fehler. Das
Ergebnis wird bei jedem Aufruf neu berechnet und nie zwischengespeichert.
"""

import logging
from datetime import date

from engine.calendar_policy import CalendarPolicy
from engine.classroom_registry import ClassroomRegistry
from engine.ledger import ReservationLedger
from models.availability import ClassroomAvailability
from models.classroom import Classroom
from models.timeslot import ALL_BLOCKS, Weekday

logger = logging.getLogger(__name__)


class AvailabilityCalculator:
    """Zustandslos: reine Funktion von Register, Kalender und Ledger zum Aufrufzeitpunkt."""

    def __init__(
        self,
        calendar: CalendarPolicy,
        registry: ClassroomRegistry,
        ledger: ReservationLedger,
    ) -> None:
        self.calendar = calendar
        self.registry = registry
        self.ledger = ledger

    def compute_availability(self, day: date) -> list[ClassroomAvailability]:
        """Freie Blöcke pro Raum für ein Datum (Räume nach Name sortiert)."""
        classrooms = self.registry.list()
        working = self.calendar.is_working_day(day)
        logger.debug(
            f"Verfügbarkeit {day.isoformat()}: {len(classrooms)} Räume, "
            f"Unterrichtstag={working}"
        )
        return [self._entry(c, day, working) for c in classrooms]

    def compute_for_classroom(self, classroom_id: str, day: date) -> ClassroomAvailability:
        """Wie compute_availability, aber für genau einen Raum (NotFoundError sonst)."""
        classroom = self.registry.get(classroom_id)
        return self._entry(classroom, day, self.calendar.is_working_day(day))

    def _entry(self, classroom: Classroom, day: date, working: bool) -> ClassroomAvailability:
        if working:
            free = (
                ALL_BLOCKS
                - classroom.blocked_on(Weekday.of(day))
                - self.ledger.find_by_classroom_and_date(classroom.id, day)
            )
        else:
            free = frozenset()
        return ClassroomAvailability(
            classroom_id=classroom.id,
            name=classroom.name,
            is_multi_use=classroom.is_multi_use,
            free_blocks=sorted(free),
        )

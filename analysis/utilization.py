"""Auslastungsbericht: gebuchte vs. buchbare Blöcke pro Raum in einem Zeitraum."""

from collections import defaultdict
from datetime import date

from pydantic import BaseModel

from engine.calendar_policy import CalendarPolicy
from engine.errors import ValidationError
from models.classroom import Classroom
from models.reservation import Reservation
from models.timeslot import ALL_BLOCKS, Weekday


class ClassroomUtilization(BaseModel):
    """Auslastung eines Raums."""

    classroom_id: str
    name: str
    bookable_blocks: int   # Blöcke an Unterrichtstagen abzüglich fester Belegung
    booked_blocks: int
    booked_per_weekday: dict[str, int]

    @property
    def rate(self) -> float:
        return self.booked_blocks / self.bookable_blocks if self.bookable_blocks else 0.0


class UtilizationReport(BaseModel):
    """Auslastung aller Räume in [start, end]."""

    start: date
    end: date
    working_days: int
    classrooms: list[ClassroomUtilization]

    @property
    def overall_rate(self) -> float:
        bookable = sum(c.bookable_blocks for c in self.classrooms)
        booked = sum(c.booked_blocks for c in self.classrooms)
        return booked / bookable if bookable else 0.0


class UtilizationAnalyzer:
    """Berechnet die Auslastung aus Raumbestand, Kalender und Reservierungen."""

    def __init__(self, calendar: CalendarPolicy) -> None:
        self.calendar = calendar

    def analyze(
        self,
        classrooms: list[Classroom],
        reservations: list[Reservation],
        start: date,
        end: date,
    ) -> UtilizationReport:
        if start > end:
            raise ValidationError(
                f"Ungültiger Zeitraum: Start {start.isoformat()} liegt nach Ende {end.isoformat()}"
            )
        days = self.calendar.working_days_between(start, end)

        booked: dict[str, int] = defaultdict(int)
        per_weekday: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        for r in reservations:
            if start <= r.date <= end:
                booked[r.classroom_id] += 1
                weekday = Weekday.of(r.date)
                label = weekday.short_name if weekday is not None else "Sa/So"
                per_weekday[r.classroom_id][label] += 1

        metrics = []
        for c in sorted(classrooms, key=lambda c: c.name_key):
            bookable = sum(len(ALL_BLOCKS - c.blocked_on(Weekday.of(d))) for d in days)
            metrics.append(ClassroomUtilization(
                classroom_id=c.id,
                name=c.name,
                bookable_blocks=bookable,
                booked_blocks=booked.get(c.id, 0),
                booked_per_weekday=dict(per_weekday.get(c.id, {})),
            ))

        return UtilizationReport(
            start=start, end=end, working_days=len(days), classrooms=metrics,
        )

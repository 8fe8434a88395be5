"""Kalender-Policy: Ist ein Datum ein Unterrichtstag?

Unterrichtstag = Mo–Fr und nicht als Feiertag registriert.
"""

import logging
import threading
from datetime import date

from pydantic import ValidationError as PydanticValidationError

from engine.errors import (
    DUPLICATE_HOLIDAY,
    ConflictError,
    NotFoundError,
    ValidationError,
    format_pydantic_error,
)
from models.holiday import Holiday
from models.timeslot import Weekday

logger = logging.getLogger(__name__)


class CalendarPolicy:
    """Verwaltet die Feiertage und beantwortet ``is_working_day``."""

    def __init__(self, holidays: list[Holiday] | None = None) -> None:
        self._holidays: dict[date, Holiday] = {}
        self._lock = threading.Lock()
        for h in holidays or []:
            self.add_holiday(h.date, h.description)

    def is_working_day(self, day: date) -> bool:
        if Weekday.of(day) is None:
            return False
        return day not in self._holidays

    def add_holiday(self, day: date, description: str) -> Holiday:
        """Registriert einen Feiertag.

        Raises:
            ConflictError: Für das Datum existiert bereits ein Feiertag.
            ValidationError: Leere Beschreibung.
        """
        try:
            holiday = Holiday(date=day, description=description)
        except PydanticValidationError as e:
            raise ValidationError(f"Ungültiger Feiertag: {format_pydantic_error(e)}") from e
        with self._lock:
            if holiday.date in self._holidays:
                raise ConflictError(
                    DUPLICATE_HOLIDAY,
                    f"Für {holiday.date.isoformat()} ist bereits ein Feiertag registriert "
                    f"({self._holidays[holiday.date].description})",
                )
            self._holidays[holiday.date] = holiday
        logger.info(f"Feiertag registriert: {holiday.date.isoformat()} ({holiday.description})")
        return holiday

    def remove_holiday(self, day: date) -> Holiday:
        """Raises NotFoundError wenn kein Feiertag für das Datum existiert."""
        with self._lock:
            holiday = self._holidays.pop(day, None)
        if holiday is None:
            raise NotFoundError(f"Kein Feiertag am {day.isoformat()} registriert")
        logger.info(f"Feiertag entfernt: {day.isoformat()}")
        return holiday

    def get_holiday(self, day: date) -> Holiday | None:
        return self._holidays.get(day)

    def list_holidays(self) -> list[Holiday]:
        """Alle Feiertage, nach Datum aufsteigend."""
        return sorted(self._holidays.values(), key=lambda h: h.date)

    def working_days_between(self, start: date, end: date) -> list[date]:
        """Alle Unterrichtstage im geschlossenen Intervall [start, end]."""
        if start > end:
            raise ValidationError(
                f"Ungültiger Zeitraum: Start {start.isoformat()} liegt nach Ende {end.isoformat()}"
            )
        days = []
        current = start
        while current <= end:
            if self.is_working_day(current):
                days.append(current)
            current = date.fromordinal(current.toordinal() + 1)
        return days

"""Geschlossene Aufzählungen für Wochentage und Zeitblöcke + Slot-Schlüssel."""

from dataclasses import dataclass
from datetime import date
from enum import IntEnum


class Weekday(IntEnum):
    """Unterrichtstage. Werte entsprechen ``date.weekday()`` (0=Mo..4=Fr)."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4

    @property
    def short_name(self) -> str:
        return WEEKDAY_SHORT_NAMES[self.value]

    @classmethod
    def of(cls, day: date) -> "Weekday | None":
        """Wochentag eines Datums oder None für Samstag/Sonntag."""
        wd = day.weekday()
        return cls(wd) if wd <= cls.FRIDAY else None

    @classmethod
    def parse(cls, raw) -> "Weekday":
        """Parst 0..4, 'Mo', 'Montag', 'Lunes' oder 'monday' → Weekday.

        Raises:
            ValueError: Wenn der Wert keinem Unterrichtstag entspricht.
        """
        if isinstance(raw, Weekday):
            return raw
        if isinstance(raw, bool):
            raise ValueError(f"Ungültiger Wochentag: {raw!r}")
        if isinstance(raw, int):
            if 0 <= raw <= 4:
                return cls(raw)
            raise ValueError(f"Wochentag {raw} außerhalb von 0..4 (Mo..Fr)")
        if isinstance(raw, str):
            key = raw.strip().lower()
            if key.isdigit():
                return cls.parse(int(key))
            if key in _DAY_ALIASES:
                return cls(_DAY_ALIASES[key])
        raise ValueError(f"Ungültiger Wochentag: {raw!r}")


class TimeBlock(IntEnum):
    """Die sechs festen Tagesblöcke, in denen ein Raum reserviert werden kann."""

    B1 = 1
    B2 = 2
    B3 = 3
    B4 = 4
    B5 = 5
    B6 = 6

    @classmethod
    def parse(cls, raw) -> "TimeBlock":
        """Parst 1..6 (int oder String) → TimeBlock.

        Gleitkommazahlen werden nur ohne Nachkommaanteil angenommen (3.0),
        3.7 wird nicht auf Block 3 abgeschnitten.

        Raises:
            ValueError: Wenn der Block außerhalb von 1..6 liegt.
        """
        if isinstance(raw, TimeBlock):
            return raw
        if isinstance(raw, bool):
            raise ValueError(f"Ungültiger Block: {raw!r}")
        if isinstance(raw, float) and not raw.is_integer():
            raise ValueError(f"Ungültiger Block: {raw!r} ist keine ganze Zahl")
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise ValueError(f"Ungültiger Block: {raw!r}") from None
        if value not in _BLOCK_VALUES:
            raise ValueError(f"Block {value} außerhalb von 1..6")
        return cls(value)


WEEKDAY_SHORT_NAMES = ["Mo", "Di", "Mi", "Do", "Fr"]

ALL_BLOCKS: frozenset[TimeBlock] = frozenset(TimeBlock)
_BLOCK_VALUES = {b.value for b in TimeBlock}

_DAY_ALIASES = {
    "mo": 0, "di": 1, "mi": 2, "do": 3, "fr": 4,
    "montag": 0, "dienstag": 1, "mittwoch": 2, "donnerstag": 3, "freitag": 4,
    "lunes": 0, "martes": 1, "miércoles": 2, "miercoles": 2, "jueves": 3, "viernes": 4,
    "monday": 0, "tuesday": 1, "wednesday": 2, "thursday": 3, "friday": 4,
}


@dataclass(frozen=True)
class Slot:
    """Buchungseinheit (Raum, Datum, Block) — die Einheit eines Buchungskonflikts.

    Immutable (frozen=True) damit es als Dict-Key / Set-Element nutzbar ist.
    """

    classroom_id: str
    day: date
    block: TimeBlock

    @property
    def slot_id(self) -> str:
        """Eindeutiger String-Bezeichner (z.B. "a201_2025-03-24_4")."""
        return f"{self.classroom_id}_{self.day.isoformat()}_{int(self.block)}"

    def __str__(self) -> str:
        return f"{self.classroom_id} {self.day.isoformat()} Block {int(self.block)}"

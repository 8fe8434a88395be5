"""Gemeinsame Hilfsfunktionen für Terminal- und Excel-Export."""

from datetime import date

from config.schema import BlockScheduleConfig
from models.reservation import Reservation
from models.timeslot import WEEKDAY_SHORT_NAMES, TimeBlock, Weekday

# ─── Farbpalette (RRGGBB, ohne #) ─────────────────────────────────────────────

COLORS: dict[str, str] = {
    "free":     "C6EFCE",
    "booked":   "FFC7CE",
    "fixed":    "DDDDDD",
    "holiday":  "FFEB9C",
    "sum":      "FFFFB3",
    "header":   "4472C4",
}


def hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    """Wandelt RRGGBB-String in (r, g, b)-Tupel um."""
    h = hex_color.lstrip("#")
    return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)


def today_str() -> str:
    """Gibt das heutige Datum als DD.MM.YYYY zurück."""
    return date.today().strftime("%d.%m.%Y")


def format_date(day: date) -> str:
    """Datum als DD.MM.YYYY für die Anzeige."""
    return day.strftime("%d.%m.%Y")


def parse_date(raw: str) -> date:
    """Parst YYYY-MM-DD oder DD.MM.YYYY.

    Raises:
        ValueError: Unbekanntes Format.
    """
    raw = raw.strip()
    if "." in raw:
        parts = raw.split(".")
        if len(parts) == 3 and all(p.isdigit() for p in parts):
            return date(int(parts[2]), int(parts[1]), int(parts[0]))
        raise ValueError(f"Ungültiges Datum: {raw!r}")
    return date.fromisoformat(raw)


def weekday_label(day: date) -> str:
    """Kurzname des Wochentags ("Mo".."Fr", "Sa", "So")."""
    weekday = Weekday.of(day)
    if weekday is not None:
        return weekday.short_name
    return "Sa" if day.weekday() == 5 else "So"


# ─── Block-Hilfsfunktionen ────────────────────────────────────────────────────

def block_label(block: int, schedule: BlockScheduleConfig | None = None) -> str:
    """'Block 4 (13:00–14:30)' oder 'Block 4' ohne Blockraster."""
    base = f"Block {int(block)}"
    if schedule is None:
        return base
    times = schedule.label_for(block)
    return f"{base} ({times})" if times else base


def format_blocks(blocks) -> str:
    """[3, 5, 6] → '3, 5, 6' bzw. '—' für leere Mengen."""
    numbers = sorted(int(b) for b in blocks)
    return ", ".join(str(n) for n in numbers) if numbers else "—"


def occupancy_matrix(fixed_occupancy: dict) -> list[list[bool]]:
    """Feste Belegung → 6×5-Matrix [block][tag] (True = fest belegt)."""
    return [
        [TimeBlock(b) in fixed_occupancy.get(Weekday(d), frozenset())
         for d in range(len(WEEKDAY_SHORT_NAMES))]
        for b in range(1, 7)
    ]


def group_by_date(reservations: list[Reservation]) -> dict[date, list[Reservation]]:
    """Gruppiert Reservierungen nach Datum (Reihenfolge bleibt erhalten)."""
    grouped: dict[date, list[Reservation]] = {}
    for r in reservations:
        grouped.setdefault(r.date, []).append(r)
    return grouped

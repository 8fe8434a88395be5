"""Gemeinsamer Renderer für Terminal-Tabellen.

Liefert reine Tabellenzeilen (Listen von Strings); die CLI setzt sie in
rich-Tabellen um.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from config.schema import BlockScheduleConfig
    from models.availability import ClassroomAvailability
    from models.classroom import Classroom
    from models.reservation import Reservation


def render_availability_rows(
    entries: list["ClassroomAvailability"],
) -> list[list[str]]:
    """Eine Zeile pro Raum: [Raum, SUM, Block 1..6].

    Freie Blöcke werden als 'frei' markiert, alle anderen als '—'.
    """
    rows: list[list[str]] = []
    for entry in entries:
        free = set(entry.free_block_numbers)
        cells = [entry.name, "SUM" if entry.is_multi_use else ""]
        for block in range(1, 7):
            cells.append("frei" if block in free else "—")
        rows.append(cells)
    return rows


def render_occupancy_rows(
    classroom: "Classroom",
    schedule: "BlockScheduleConfig | None" = None,
) -> list[list[str]]:
    """Wochenraster der festen Belegung: [Block, Uhrzeit, Mo..Fr].

    Fest belegte Zellen werden mit 'OCP' markiert.
    """
    from export.helpers import occupancy_matrix

    matrix = occupancy_matrix(classroom.fixed_occupancy)
    rows: list[list[str]] = []
    for idx, day_flags in enumerate(matrix):
        block = idx + 1
        times = schedule.label_for(block) if schedule is not None else ""
        rows.append([str(block), times] + ["OCP" if flag else "" for flag in day_flags])
    return rows


def render_reservation_rows(
    reservations: list["Reservation"],
    classroom_names: dict[str, str],
    schedule: "BlockScheduleConfig | None" = None,
    with_owner: bool = False,
) -> list[list[str]]:
    """Eine Zeile pro Reservierung: [Datum, Tag, Block, Uhrzeit, Raum, (Nutzer), ID].

    Reservierungen gelöschter Räume erscheinen als 'Raum gelöscht'.
    """
    from export.helpers import format_date, weekday_label

    rows: list[list[str]] = []
    for r in reservations:
        times = schedule.label_for(r.block) if schedule is not None else ""
        cells = [
            format_date(r.date),
            weekday_label(r.date),
            str(int(r.block)),
            times,
            classroom_names.get(r.classroom_id, "Raum gelöscht"),
        ]
        if with_owner:
            cells.append(r.owner_id)
        cells.append(r.id)
        rows.append(cells)
    return rows

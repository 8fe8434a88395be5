"""Excel-Export für Reservierungen und Verfügbarkeit (openpyxl)."""

from datetime import date
from pathlib import Path
from typing import Optional

from config.schema import BlockScheduleConfig
from models.availability import ClassroomAvailability
from models.classroom import Classroom
from models.reservation import Reservation

from export.helpers import COLORS, format_date, today_str, weekday_label


class ReservationExcelExporter:
    """Exportiert den Reservierungsbericht eines Zeitraums in eine Excel-Datei.

    Blätter:
      Reservierungen – eine Zeile pro Reservierung (Datum, Tag, Block, Uhrzeit, Raum, Nutzer)
      Räume          – Raumbestand mit fester Wochenbelegung
      Verfügbarkeit  – optional: freie Blöcke eines Datums (Raum × Block)
    """

    # Spaltenbreiten (Excel-Einheiten)
    COL_DATE_W  = 12
    COL_DAY_W   = 6
    COL_BLOCK_W = 7
    COL_TIME_W  = 14
    COL_NAME_W  = 24
    COL_ID_W    = 34

    ROW_HEADER_H = 22

    def __init__(
        self,
        classrooms: list[Classroom],
        schedule: BlockScheduleConfig,
        center_name: str = "",
    ):
        self.classrooms  = classrooms
        self.names       = {c.id: c.name for c in classrooms}
        self.schedule    = schedule
        self.center_name = center_name

    # ─── Öffentliche API ──────────────────────────────────────────────────────

    def export(
        self,
        output_path: Path,
        reservations: list[Reservation],
        start: date,
        end: date,
        availability: Optional[tuple[date, list[ClassroomAvailability]]] = None,
    ) -> Path:
        """Erstellt die Excel-Datei und gibt den Pfad zurück."""
        from openpyxl import Workbook
        wb = Workbook()
        wb.remove(wb.active)   # Leeres Standard-Sheet entfernen

        self._sheet_reservations(wb, reservations, start, end)
        self._sheet_classrooms(wb)
        if availability is not None:
            self._sheet_availability(wb, *availability)

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)
        return output_path

    # ─── Style-Helpers ────────────────────────────────────────────────────────

    def _fill(self, hex_color: str):
        from openpyxl.styles import PatternFill
        return PatternFill(start_color=hex_color, end_color=hex_color, fill_type="solid")

    def _center_align(self, wrap: bool = True):
        from openpyxl.styles import Alignment
        return Alignment(wrap_text=wrap, horizontal="center", vertical="center")

    def _thin_border(self):
        from openpyxl.styles import Border, Side
        s = Side(border_style="thin", color="BBBBBB")
        return Border(left=s, right=s, top=s, bottom=s)

    def _write_header_row(self, ws, row: int, headers: list[str]) -> None:
        from openpyxl.styles import Font
        fill = self._fill(COLORS["header"])
        border = self._thin_border()
        for col, text in enumerate(headers, 1):
            cell = ws.cell(row=row, column=col, value=text)
            cell.fill = fill
            cell.font = Font(bold=True, color="FFFFFF", size=10)
            cell.alignment = self._center_align(wrap=False)
            cell.border = border
        ws.row_dimensions[row].height = self.ROW_HEADER_H

    def _set_widths(self, ws, widths: list[int]) -> None:
        from openpyxl.utils import get_column_letter
        for idx, width in enumerate(widths, 1):
            ws.column_dimensions[get_column_letter(idx)].width = width

    # ─── Blätter ──────────────────────────────────────────────────────────────

    def _sheet_reservations(self, wb, reservations: list[Reservation],
                            start: date, end: date) -> None:
        from openpyxl.styles import Font
        ws = wb.create_sheet("Reservierungen")
        title = f"Reservierungen {format_date(start)} – {format_date(end)}"
        if self.center_name:
            title = f"{self.center_name}: {title}"
        ws.cell(row=1, column=1, value=title).font = Font(bold=True, size=12)
        ws.cell(row=2, column=1, value=f"Erstellt am {today_str()} · {len(reservations)} Reservierungen")

        headers = ["Datum", "Tag", "Block", "Uhrzeit", "Raum", "Nutzer", "ID"]
        self._write_header_row(ws, 4, headers)
        self._set_widths(ws, [self.COL_DATE_W, self.COL_DAY_W, self.COL_BLOCK_W,
                              self.COL_TIME_W, self.COL_NAME_W, self.COL_NAME_W,
                              self.COL_ID_W])

        border = self._thin_border()
        for offset, r in enumerate(reservations):
            row = 5 + offset
            name = self.names.get(r.classroom_id)
            values = [
                format_date(r.date),
                weekday_label(r.date),
                int(r.block),
                self.schedule.label_for(r.block),
                name if name is not None else "Raum gelöscht",
                r.owner_id,
                r.id,
            ]
            for col, value in enumerate(values, 1):
                c = ws.cell(row=row, column=col, value=value)
                c.border = border
                if name is None:
                    c.fill = self._fill(COLORS["booked"])
        ws.freeze_panes = "A5"

    def _sheet_classrooms(self, wb) -> None:
        ws = wb.create_sheet("Räume")
        headers = ["Raum", "Kapazität", "SUM", "Ausstattung",
                   "Mo", "Di", "Mi", "Do", "Fr"]
        self._write_header_row(ws, 1, headers)
        self._set_widths(ws, [self.COL_NAME_W, 10, 6, 30, 12, 12, 12, 12, 12])

        border = self._thin_border()
        for offset, c in enumerate(sorted(self.classrooms, key=lambda c: c.name_key)):
            row = 2 + offset
            values = [
                c.name,
                c.capacity,
                "ja" if c.is_multi_use else "",
                ", ".join(c.equipment),
            ]
            for day in range(5):
                blocked = sorted(int(b) for b in c.fixed_occupancy.get(day, ()))
                values.append(", ".join(str(b) for b in blocked))
            for col, value in enumerate(values, 1):
                cell = ws.cell(row=row, column=col, value=value)
                cell.border = border
                if c.is_multi_use and col == 3:
                    cell.fill = self._fill(COLORS["sum"])

    def _sheet_availability(self, wb, day: date,
                            entries: list[ClassroomAvailability]) -> None:
        from openpyxl.styles import Font
        ws = wb.create_sheet("Verfügbarkeit")
        ws.cell(row=1, column=1,
                value=f"Freie Blöcke am {format_date(day)} ({weekday_label(day)})").font = Font(bold=True, size=12)

        headers = ["Raum"] + [f"Block {b}" for b in range(1, 7)]
        self._write_header_row(ws, 3, headers)
        self._set_widths(ws, [self.COL_NAME_W] + [self.COL_TIME_W] * 6)

        border = self._thin_border()
        for offset, entry in enumerate(entries):
            row = 4 + offset
            ws.cell(row=row, column=1, value=entry.name).border = border
            free = set(entry.free_block_numbers)
            for block in range(1, 7):
                is_free = block in free
                c = ws.cell(row=row, column=1 + block,
                            value="frei" if is_free else "belegt")
                c.fill = self._fill(COLORS["free"] if is_free else COLORS["booked"])
                c.alignment = self._center_align(wrap=False)
                c.border = border

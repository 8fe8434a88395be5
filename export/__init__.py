"""Export-Modul: Terminal-Tabellen und Excel (openpyxl) für Reservierungen."""

from export.excel_export import ReservationExcelExporter

__all__ = ["ReservationExcelExporter"]

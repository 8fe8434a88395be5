"""Konsistenzprüfung eines gespeicherten Engine-Zustands.

Prüft einen EngineState auf Verletzungen als Sicherheitsnetz unabhängig von
der Engine, z.B. nach manueller Bearbeitung der JSON-Datei oder wenn ein
Feiertag nach bereits erfolgten Buchungen registriert wurde.
"""

from collections import defaultdict
from typing import Literal

from pydantic import BaseModel

from models.engine_state import EngineState
from models.timeslot import Weekday


class ValidationViolation(BaseModel):
    """Eine einzelne Verletzung."""

    severity: Literal["error", "warning"]
    constraint: str      # z.B. "slot_double_booking"
    description: str
    entity: str          # reservation_id / classroom_id / Datum


class ValidationReport(BaseModel):
    """Ergebnis der Konsistenzprüfung."""

    violations: list[ValidationViolation]
    is_valid: bool       # True wenn keine Errors (Warnings ok)

    @property
    def errors(self) -> list[ValidationViolation]:
        return [v for v in self.violations if v.severity == "error"]

    @property
    def warnings(self) -> list[ValidationViolation]:
        return [v for v in self.violations if v.severity == "warning"]

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        status = (
            "[bold green]✓ KONSISTENT[/bold green]"
            if self.is_valid
            else "[bold red]✗ VERLETZUNGEN GEFUNDEN[/bold red]"
        )
        lines = [status, f"Fehler: {len(self.errors)} | Warnungen: {len(self.warnings)}"]
        console.print(Panel("\n".join(lines), title="Ledger-Prüfung", border_style="cyan"))

        if not self.violations:
            console.print("[dim]Keine Verletzungen gefunden.[/dim]")
            return

        table = Table(box=box.ROUNDED, show_lines=True)
        table.add_column("Typ", width=8)
        table.add_column("Constraint", width=26)
        table.add_column("Entität", width=14)
        table.add_column("Beschreibung")

        for v in self.violations:
            color = "red" if v.severity == "error" else "yellow"
            table.add_row(
                f"[{color}]{v.severity.upper()}[/{color}]",
                v.constraint,
                v.entity,
                v.description,
            )
        console.print(table)


class LedgerValidator:
    """Prüft einen EngineState auf Verletzungen der Ledger-Invarianten."""

    def validate(self, state: EngineState) -> ValidationReport:
        """Führt alle Prüfungen durch und gibt einen ValidationReport zurück."""
        violations: list[ValidationViolation] = []

        violations.extend(self._check_unique_names(state))
        violations.extend(self._check_slot_double_booking(state))
        violations.extend(self._check_orphaned(state))
        violations.extend(self._check_fixed_occupancy(state))
        violations.extend(self._check_non_working_days(state))

        has_errors = any(v.severity == "error" for v in violations)
        return ValidationReport(violations=violations, is_valid=not has_errors)

    # ── Einzelne Prüfungen ────────────────────────────────────────────────────

    def _check_unique_names(self, state: EngineState) -> list[ValidationViolation]:
        """Raumnamen müssen eindeutig sein (ohne Groß-/Kleinschreibung)."""
        by_name: dict[str, list[str]] = defaultdict(list)
        for c in state.classrooms:
            by_name[c.name_key].append(c.id)
        return [
            ValidationViolation(
                severity="error",
                constraint="duplicate_classroom_name",
                entity=ids[0],
                description=f"Raumname '{key}' ist {len(ids)}× vergeben.",
            )
            for key, ids in by_name.items() if len(ids) > 1
        ]

    def _check_slot_double_booking(self, state: EngineState) -> list[ValidationViolation]:
        """Höchstens eine aktive Reservierung pro (Raum, Datum, Block)."""
        seen: dict[tuple, list[str]] = defaultdict(list)
        for r in state.reservations:
            seen[(r.classroom_id, r.date, int(r.block))].append(r.id)

        violations: list[ValidationViolation] = []
        for (classroom_id, day, block), ids in seen.items():
            if len(ids) > 1:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="slot_double_booking",
                    entity=classroom_id,
                    description=(
                        f"{day.isoformat()}, Block {block}: {len(ids)} Reservierungen "
                        f"({', '.join(ids)})."
                    ),
                ))
        return violations

    def _check_orphaned(self, state: EngineState) -> list[ValidationViolation]:
        """Reservierungen dürfen nur existierende Räume referenzieren."""
        known = {c.id for c in state.classrooms}
        return [
            ValidationViolation(
                severity="error",
                constraint="orphaned_reservation",
                entity=r.id,
                description=f"Raum {r.classroom_id} existiert nicht (Raum gelöscht).",
            )
            for r in state.reservations if r.classroom_id not in known
        ]

    def _check_fixed_occupancy(self, state: EngineState) -> list[ValidationViolation]:
        """Keine Reservierung auf einem fest belegten Block."""
        classrooms = {c.id: c for c in state.classrooms}
        violations: list[ValidationViolation] = []
        for r in state.reservations:
            classroom = classrooms.get(r.classroom_id)
            if classroom is None:
                continue
            weekday = Weekday.of(r.date)
            if r.block in classroom.blocked_on(weekday):
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="fixed_occupancy_booked",
                    entity=r.id,
                    description=(
                        f"{classroom.name}, {r.date.isoformat()} Block {int(r.block)}: "
                        f"Block ist jeden {weekday.short_name} fest belegt."
                    ),
                ))
        return violations

    def _check_non_working_days(self, state: EngineState) -> list[ValidationViolation]:
        """Reservierungen an Wochenenden/Feiertagen (z.B. Feiertag nachträglich registriert)."""
        holidays = {h.date: h for h in state.holidays}
        violations: list[ValidationViolation] = []
        for r in state.reservations:
            if Weekday.of(r.date) is None:
                reason = "Wochenende"
            elif r.date in holidays:
                reason = f"Feiertag '{holidays[r.date].description}'"
            else:
                continue
            violations.append(ValidationViolation(
                severity="warning",
                constraint="booking_on_non_working_day",
                entity=r.id,
                description=(
                    f"{r.date.isoformat()} Block {int(r.block)} liegt auf einem "
                    f"{reason}."
                ),
            ))
        return violations

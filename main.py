"""Raumreservierung — Haupt-CLI.

Verwendung:
  python main.py setup                              Ersteinrichtung (Wizard)
  python main.py config show                        Konfiguration anzeigen
  python main.py generate                           Demo-Daten erzeugen
  python main.py availability <datum>               Freie Blöcke eines Tages
  python main.py reserve <raum> <datum> <block> -u  Block reservieren
  python main.py cancel <id> -u                     Reservierung stornieren
  python main.py reservations mine -u               Eigene Reservierungen
  python main.py reservations range <von> <bis>     Alle Reservierungen (Admin)
  python main.py classroom list|show|add|update|delete
  python main.py holiday list|add|remove
  python main.py report <von> <bis>                 Auslastungsbericht
  python main.py check                              Konsistenzprüfung
"""

import logging
import sys
from contextlib import contextmanager
from datetime import date
from pathlib import Path

import click
from filelock import FileLock, Timeout
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich import box

console = Console()
logger = logging.getLogger("reservierung")


# ─── KONTEXT & HILFSFUNKTIONEN ───────────────────────────────────────────────

class AppContext:
    """Pfade und geladene Konfiguration für alle Befehle."""

    def __init__(self, config_path: Path | None, data_path: Path | None):
        from config.manager import ConfigManager
        self.manager = ConfigManager(config_path)
        self._data_path = data_path
        self._config = None

    @property
    def config(self):
        if self._config is None:
            self._config = self.manager.load_or_default()
        return self._config

    @property
    def data_path(self) -> Path:
        return self._data_path or self.config.storage.data_file

    def lock(self) -> FileLock:
        """Dateisperre neben der Datendatei; serialisiert parallele Prozesse."""
        path = self.data_path
        path.parent.mkdir(parents=True, exist_ok=True)
        return FileLock(str(path) + ".lock", timeout=self.config.storage.lock_timeout)

    def load_state(self):
        """Lädt die Datendatei; ungültiger Inhalt wird zu StorageError."""
        from pydantic import ValidationError
        from engine.errors import StorageError
        from models.engine_state import EngineState

        path = self.data_path
        if not path.exists():
            return EngineState()
        try:
            return EngineState.load_json(path)
        except (ValidationError, ValueError) as e:
            raise StorageError(f"Datendatei ungültig: {path}\n{e}") from e

    def load_service(self):
        """Baut den Service aus dem gespeicherten Zustand (leer, falls keine Datei existiert)."""
        from engine.service import ReservationService

        return ReservationService.from_snapshot(
            self.load_state(), reject_past_dates=self.config.policy.reject_past_dates,
        )

    def save_service(self, service) -> None:
        state = service.snapshot()
        if self.config.storage.keep_versions and self.data_path.exists():
            state.save_versioned(self.data_path)
        state.save_json(self.data_path)
        logger.debug(f"Zustand gespeichert: {self.data_path}")

    @contextmanager
    def session(self, write: bool = True):
        """Laden, Ändern und Speichern unter der Dateisperre.

        Gespeichert wird nur, wenn der Block ohne Exception endet.
        """
        with self.lock():
            service = self.load_service()
            yield service
            if write:
                self.save_service(service)


def _identity(user: str, admin: bool):
    from models.identity import Identity
    return Identity(user_id=user, is_admin=admin)


def _parse_date(raw: str) -> date:
    from export.helpers import parse_date
    try:
        return parse_date(raw)
    except ValueError:
        raise click.BadParameter(f"Ungültiges Datum '{raw}' (YYYY-MM-DD oder DD.MM.YYYY)")


def _parse_occupancy(values: tuple[str, ...]) -> dict:
    """Parst ('Mo:1,2', 'Fr:6') → {'Mo': [1, 2], 'Fr': [6]}."""
    result: dict[str, list[str]] = {}
    for item in values:
        if ":" not in item:
            raise click.BadParameter(f"Feste Belegung '{item}' nicht im Format Tag:Block,Block")
        day, blocks = item.split(":", 1)
        result.setdefault(day.strip(), []).extend(
            b.strip() for b in blocks.split(",") if b.strip()
        )
    return result


@contextmanager
def _engine_errors():
    """Übersetzt Engine-Fehler in Konsolenmeldungen und Exit-Codes."""
    from engine.errors import ConflictError, DomainError, StorageError
    try:
        yield
    except ConflictError as e:
        console.print(f"[red bold]Konflikt ({e.reason}):[/red bold] {e}")
        sys.exit(1)
    except DomainError as e:
        console.print(f"[red bold]Abgelehnt:[/red bold] {e}")
        sys.exit(1)
    except StorageError as e:
        console.print(f"[red bold]Speicherfehler:[/red bold] {e}")
        sys.exit(2)
    except Timeout as e:
        console.print(f"[red bold]Datendatei gesperrt:[/red bold] {e.lock_file}")
        sys.exit(2)


def _print_rows(title: str, headers: list[str], rows: list[list[str]],
                caption: str | None = None) -> None:
    table = Table(title=title, caption=caption, box=box.ROUNDED)
    for h in headers:
        table.add_column(h)
    for row in rows:
        table.add_row(*row)
    console.print(table)


# ─── SETUP ────────────────────────────────────────────────────────────────────

@click.command("setup")
@click.pass_obj
def cmd_setup(app: AppContext):
    """Ersteinrichtung: Konfiguration mit dem Setup-Wizard anlegen."""
    from config.wizard import run_wizard

    if not app.manager.first_run_check():
        console.print(
            "[yellow]Eine Konfiguration existiert bereits.[/yellow]"
        )
        if not click.confirm("Trotzdem neu einrichten?", default=False):
            return

    config = run_wizard()
    if config is not None:
        app.manager.save(config)
        console.print("[bold green]Einrichtung abgeschlossen![/bold green]")
        console.print("Führen Sie jetzt [bold]python main.py generate[/bold] aus.")


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@click.group("config")
def cmd_config():
    """Konfiguration anzeigen."""


@cmd_config.command("show")
@click.pass_obj
def config_show(app: AppContext):
    """Zeigt die aktuelle Konfiguration an."""
    from config.wizard import show_block_schedule_table

    config = app.config
    console.print(Panel(
        f"[bold]{config.center_name}[/bold]  |  Daten: {app.data_path}  |  "
        f"Vergangene Daten: {'abgelehnt' if config.policy.reject_past_dates else 'erlaubt'}",
        title="Engine-Konfiguration",
        border_style="cyan",
    ))
    show_block_schedule_table(config.block_schedule)
    if app.manager.first_run_check():
        console.print("[dim]Keine Konfigurationsdatei – Standardwerte aktiv.[/dim]")


# ─── GENERATE ─────────────────────────────────────────────────────────────────

@click.command("generate")
@click.option("--seed", default=42, help="Zufalls-Seed für reproduzierbare Daten.")
@click.option("--start", "start_raw", default=None, help="Erster Tag (Default: nächster Montag).")
@click.option("--weeks", default=2, help="Anzahl Wochen mit Reservierungen.")
@click.option("--force", is_flag=True, default=False, help="Bestehende Daten überschreiben.")
@click.pass_obj
def cmd_generate(app: AppContext, seed: int, start_raw: str | None, weeks: int, force: bool):
    """Erzeugt Demo-Daten (Räume, Feiertage, Reservierungen)."""
    from data.demo_data import DemoDataGenerator

    if app.data_path.exists() and not force:
        console.print(
            f"[yellow]Datendatei existiert bereits: {app.data_path}[/yellow]\n"
            "Mit [bold]--force[/bold] überschreiben."
        )
        sys.exit(1)

    start = _parse_date(start_raw) if start_raw else None
    gen = DemoDataGenerator(app.config, seed=seed, start=start, weeks=weeks)
    state = gen.generate()
    gen.print_summary(state)
    console.print(f"\n[dim]{state.summary()}[/dim]")
    with _engine_errors(), app.lock():
        state.save_json(app.data_path)
    console.print(f"[green]✓[/green] Daten gespeichert: {app.data_path}")


# ─── AVAILABILITY ─────────────────────────────────────────────────────────────

@click.command("availability")
@click.argument("datum")
@click.pass_obj
def cmd_availability(app: AppContext, datum: str):
    """Zeigt die freien Blöcke aller Räume an einem Datum."""
    from export.helpers import format_date, weekday_label
    from export.tui_renderer import render_availability_rows

    day = _parse_date(datum)
    with _engine_errors(), app.session(write=False) as service:
        entries = service.get_availability(day)

    schedule = app.config.block_schedule
    headers = ["Raum", ""] + [str(b) for b in range(1, 7)]
    caption = "  ".join(f"{b}: {schedule.label_for(b)}" for b in range(1, 7))
    title = f"Verfügbarkeit {format_date(day)} ({weekday_label(day)})"
    holiday = service.calendar.get_holiday(day)
    if holiday is not None:
        title += f" – Feiertag: {holiday.description}"
    elif not service.calendar.is_working_day(day):
        title += " – kein Unterrichtstag"
    _print_rows(title, headers, render_availability_rows(entries), caption=caption)
    if not entries:
        console.print("[dim]Keine Räume registriert.[/dim]")


# ─── RESERVE / CANCEL ─────────────────────────────────────────────────────────

@click.command("reserve")
@click.argument("raum")
@click.argument("datum")
@click.argument("block", type=int)
@click.option("--user", "-u", required=True, help="Nutzer-ID des Aufrufers.")
@click.option("--for", "owner", default=None, help="Für anderen Nutzer buchen (nur Admin).")
@click.option("--admin", is_flag=True, default=False, help="Aufrufer ist Administrator.")
@click.pass_obj
def cmd_reserve(app: AppContext, raum: str, datum: str, block: int,
                user: str, owner: str | None, admin: bool):
    """Reserviert einen Block in einem Raum."""
    from export.helpers import block_label, format_date

    day = _parse_date(datum)
    with _engine_errors(), app.session() as service:
        classroom = service.registry.find_by_name(raum)
        reservation = service.create_reservation(
            _identity(user, admin), classroom.id, owner or user, day, block,
        )
    console.print(
        f"[green]✓[/green] Reserviert: {classroom.name}, {format_date(day)}, "
        f"{block_label(reservation.block, app.config.block_schedule)}\n"
        f"  ID: [bold]{reservation.id}[/bold]"
    )


@click.command("cancel")
@click.argument("reservation_id")
@click.option("--user", "-u", required=True, help="Nutzer-ID des Aufrufers.")
@click.option("--admin", is_flag=True, default=False, help="Aufrufer ist Administrator.")
@click.pass_obj
def cmd_cancel(app: AppContext, reservation_id: str, user: str, admin: bool):
    """Storniert eine Reservierung (Eigentümer oder Admin)."""
    with _engine_errors(), app.session() as service:
        removed = service.cancel_reservation(_identity(user, admin), reservation_id)
    console.print(
        f"[green]✓[/green] Storniert: {removed.date.isoformat()} Block {int(removed.block)} "
        f"({removed.id})"
    )


# ─── RESERVATIONS ─────────────────────────────────────────────────────────────

@click.group("reservations")
def cmd_reservations():
    """Reservierungen auflisten."""


@cmd_reservations.command("mine")
@click.option("--user", "-u", required=True, help="Nutzer-ID des Aufrufers.")
@click.option("--owner", default=None, help="Anderer Nutzer (nur Admin).")
@click.option("--admin", is_flag=True, default=False, help="Aufrufer ist Administrator.")
@click.pass_obj
def reservations_mine(app: AppContext, user: str, owner: str | None, admin: bool):
    """Reservierungen eines Nutzers, früheste zuerst."""
    from export.tui_renderer import render_reservation_rows

    with _engine_errors(), app.session(write=False) as service:
        reservations = service.list_owner_reservations(_identity(user, admin), owner or user)
        names = {c.id: c.name for c in service.list_classrooms()}

    if not reservations:
        console.print("[dim]Keine aktiven Reservierungen.[/dim]")
        return
    _print_rows(
        f"Reservierungen von {owner or user} ({len(reservations)})",
        ["Datum", "Tag", "Block", "Uhrzeit", "Raum", "ID"],
        render_reservation_rows(reservations, names, app.config.block_schedule),
    )


@cmd_reservations.command("range")
@click.argument("von")
@click.argument("bis")
@click.option("--user", "-u", default="admin", help="Nutzer-ID des Aufrufers.")
@click.option("--admin", is_flag=True, default=False, help="Aufrufer ist Administrator.")
@click.option("--excel", "excel_path", default=None, type=click.Path(path_type=Path),
              help="Bericht zusätzlich als Excel-Datei speichern.")
@click.pass_obj
def reservations_range(app: AppContext, von: str, bis: str, user: str, admin: bool,
                       excel_path: Path | None):
    """Alle Reservierungen im Zeitraum [von, bis] (nur Admin)."""
    from export.excel_export import ReservationExcelExporter
    from export.helpers import format_date
    from export.tui_renderer import render_reservation_rows

    start, end = _parse_date(von), _parse_date(bis)
    with _engine_errors(), app.session(write=False) as service:
        reservations = service.list_reservations_in_range(_identity(user, admin), start, end)
        classrooms = service.list_classrooms()

    names = {c.id: c.name for c in classrooms}
    _print_rows(
        f"Reservierungen {format_date(start)} – {format_date(end)} ({len(reservations)})",
        ["Datum", "Tag", "Block", "Uhrzeit", "Raum", "Nutzer", "ID"],
        render_reservation_rows(reservations, names, app.config.block_schedule, with_owner=True),
    )

    if excel_path is not None:
        exporter = ReservationExcelExporter(
            classrooms, app.config.block_schedule, app.config.center_name,
        )
        exporter.export(excel_path, reservations, start, end)
        console.print(f"[green]✓[/green] Excel gespeichert: {excel_path}")


# ─── CLASSROOM ────────────────────────────────────────────────────────────────

@click.group("classroom")
def cmd_classroom():
    """Räume verwalten."""


@cmd_classroom.command("list")
@click.pass_obj
def classroom_list(app: AppContext):
    """Listet alle Räume auf."""
    with _engine_errors(), app.session(write=False) as service:
        classrooms = service.list_classrooms()
    if not classrooms:
        console.print("[dim]Keine Räume registriert.[/dim]")
        return

    table = Table(title=f"Räume ({len(classrooms)})", box=box.ROUNDED)
    table.add_column("Name", style="bold")
    table.add_column("Kapazität", justify="right")
    table.add_column("SUM")
    table.add_column("Ausstattung")
    table.add_column("Fest belegt/Woche", justify="right")
    for c in classrooms:
        table.add_row(
            c.name, str(c.capacity), "✓" if c.is_multi_use else "",
            ", ".join(c.equipment), str(c.fixed_block_count),
        )
    console.print(table)


@cmd_classroom.command("show")
@click.argument("name")
@click.pass_obj
def classroom_show(app: AppContext, name: str):
    """Zeigt einen Raum mit seinem Wochenraster der festen Belegung."""
    from export.tui_renderer import render_occupancy_rows
    from models.timeslot import WEEKDAY_SHORT_NAMES

    with _engine_errors(), app.session(write=False) as service:
        c = service.registry.find_by_name(name)

    console.print(Panel(
        f"[bold]{c.name}[/bold]{'  [yellow]SUM[/yellow]' if c.is_multi_use else ''}\n"
        f"Kapazität: {c.capacity} | Ausstattung: {', '.join(c.equipment) or '—'}\n"
        f"[dim]ID: {c.id}[/dim]",
        border_style="cyan",
    ))
    _print_rows(
        "Feste Wochenbelegung",
        ["Block", "Uhrzeit"] + WEEKDAY_SHORT_NAMES,
        render_occupancy_rows(c, app.config.block_schedule),
    )


@cmd_classroom.command("add")
@click.argument("name")
@click.option("--capacity", "-c", type=int, required=True, help="Kapazität (> 0).")
@click.option("--equipment", "-e", default="", help="Ausstattung, kommagetrennt.")
@click.option("--sum", "is_multi_use", is_flag=True, default=False, help="Mehrzweckraum (SUM).")
@click.option("--fixed", "-f", multiple=True, help="Feste Belegung, z.B. 'Mo:1,2' (mehrfach).")
@click.option("--user", "-u", default="admin", help="Nutzer-ID des Aufrufers.")
@click.option("--admin/--no-admin", default=True, help="Aufrufer ist Administrator.")
@click.pass_obj
def classroom_add(app: AppContext, name: str, capacity: int, equipment: str,
                  is_multi_use: bool, fixed: tuple[str, ...], user: str, admin: bool):
    """Legt einen neuen Raum an."""
    with _engine_errors(), app.session() as service:
        c = service.create_classroom(
            _identity(user, admin), name, capacity, equipment, is_multi_use,
            _parse_occupancy(fixed),
        )
    console.print(f"[green]✓[/green] Raum angelegt: {c.name} ({c.id})")


@cmd_classroom.command("update")
@click.argument("name")
@click.option("--capacity", "-c", type=int, default=None, help="Neue Kapazität.")
@click.option("--equipment", "-e", default=None, help="Neue Ausstattung, kommagetrennt.")
@click.option("--sum/--no-sum", "is_multi_use", default=None, help="Mehrzweckraum (SUM).")
@click.option("--fixed", "-f", multiple=True, help="Neue feste Belegung (ersetzt die alte).")
@click.option("--clear-fixed", is_flag=True, default=False, help="Feste Belegung entfernen.")
@click.option("--rename", default=None, help="Neuer Name (wird abgelehnt: Name ist unveränderlich).")
@click.option("--user", "-u", default="admin", help="Nutzer-ID des Aufrufers.")
@click.option("--admin/--no-admin", default=True, help="Aufrufer ist Administrator.")
@click.pass_obj
def classroom_update(app: AppContext, name: str, capacity: int | None, equipment: str | None,
                     is_multi_use: bool | None, fixed: tuple[str, ...], clear_fixed: bool,
                     rename: str | None, user: str, admin: bool):
    """Ändert Kapazität, Ausstattung, SUM-Flag oder feste Belegung eines Raums."""
    changes: dict = {}
    if capacity is not None:
        changes["capacity"] = capacity
    if equipment is not None:
        changes["equipment"] = equipment
    if is_multi_use is not None:
        changes["is_multi_use"] = is_multi_use
    if clear_fixed:
        changes["fixed_occupancy"] = {}
    elif fixed:
        changes["fixed_occupancy"] = _parse_occupancy(fixed)
    if rename is not None:
        changes["name"] = rename

    with _engine_errors(), app.session() as service:
        c = service.registry.find_by_name(name)
        updated = service.update_classroom(_identity(user, admin), c.id, changes)
    console.print(f"[green]✓[/green] Raum geändert: {updated.name}")


@cmd_classroom.command("delete")
@click.argument("name")
@click.option("--user", "-u", default="admin", help="Nutzer-ID des Aufrufers.")
@click.option("--admin/--no-admin", default=True, help="Aufrufer ist Administrator.")
@click.pass_obj
def classroom_delete(app: AppContext, name: str, user: str, admin: bool):
    """Löscht einen Raum ohne aktive Reservierungen."""
    with _engine_errors(), app.session() as service:
        c = service.registry.find_by_name(name)
        service.delete_classroom(_identity(user, admin), c.id)
    console.print(f"[green]✓[/green] Raum gelöscht: {c.name}")


# ─── HOLIDAY ──────────────────────────────────────────────────────────────────

@click.group("holiday")
def cmd_holiday():
    """Feiertage verwalten."""


@cmd_holiday.command("list")
@click.pass_obj
def holiday_list(app: AppContext):
    """Listet alle Feiertage nach Datum."""
    from export.helpers import format_date, weekday_label

    with _engine_errors(), app.session(write=False) as service:
        holidays = service.list_holidays()
    if not holidays:
        console.print("[dim]Keine Feiertage registriert.[/dim]")
        return
    _print_rows(
        f"Feiertage ({len(holidays)})",
        ["Datum", "Tag", "Beschreibung"],
        [[format_date(h.date), weekday_label(h.date), h.description] for h in holidays],
    )


@cmd_holiday.command("add")
@click.argument("datum")
@click.argument("beschreibung")
@click.option("--user", "-u", default="admin", help="Nutzer-ID des Aufrufers.")
@click.option("--admin/--no-admin", default=True, help="Aufrufer ist Administrator.")
@click.pass_obj
def holiday_add(app: AppContext, datum: str, beschreibung: str, user: str, admin: bool):
    """Registriert einen Feiertag."""
    day = _parse_date(datum)
    with _engine_errors(), app.session() as service:
        h = service.add_holiday(_identity(user, admin), day, beschreibung)
    console.print(f"[green]✓[/green] Feiertag registriert: {h.date.isoformat()} ({h.description})")


@cmd_holiday.command("remove")
@click.argument("datum")
@click.option("--user", "-u", default="admin", help="Nutzer-ID des Aufrufers.")
@click.option("--admin/--no-admin", default=True, help="Aufrufer ist Administrator.")
@click.pass_obj
def holiday_remove(app: AppContext, datum: str, user: str, admin: bool):
    """Entfernt einen Feiertag."""
    day = _parse_date(datum)
    with _engine_errors(), app.session() as service:
        service.remove_holiday(_identity(user, admin), day)
    console.print(f"[green]✓[/green] Feiertag entfernt: {day.isoformat()}")


# ─── REPORT / CHECK ───────────────────────────────────────────────────────────

@click.command("report")
@click.argument("von")
@click.argument("bis")
@click.pass_obj
def cmd_report(app: AppContext, von: str, bis: str):
    """Auslastungsbericht pro Raum im Zeitraum [von, bis]."""
    from analysis.utilization import UtilizationAnalyzer

    start, end = _parse_date(von), _parse_date(bis)
    with _engine_errors(), app.session(write=False) as service:
        report = UtilizationAnalyzer(service.calendar).analyze(
            service.list_classrooms(), service.ledger.all(), start, end,
        )

    table = Table(title=f"Auslastung ({report.working_days} Unterrichtstage)", box=box.ROUNDED)
    table.add_column("Raum", style="bold")
    table.add_column("Buchbar", justify="right")
    table.add_column("Gebucht", justify="right")
    table.add_column("Quote", justify="right")
    for m in report.classrooms:
        table.add_row(m.name, str(m.bookable_blocks), str(m.booked_blocks), f"{m.rate:.0%}")
    table.add_row("[bold]Gesamt[/bold]", "", "", f"[bold]{report.overall_rate:.0%}[/bold]")
    console.print(table)


@click.command("check")
@click.pass_obj
def cmd_check(app: AppContext):
    """Prüft die gespeicherte Datendatei auf Konsistenz."""
    from analysis.ledger_validator import LedgerValidator

    path = app.data_path
    if not path.exists():
        console.print(
            f"[red]Keine Datendatei gefunden: {path}[/red]\n"
            "Verwenden Sie [bold]python main.py generate[/bold]."
        )
        sys.exit(1)
    with _engine_errors(), app.lock():
        state = app.load_state()
    console.print(f"\n{state.summary()}\n")
    report = LedgerValidator().validate(state)
    report.print_rich()
    sys.exit(0 if report.is_valid else 1)


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
@click.option("--config", "config_path", default=None, type=click.Path(path_type=Path),
              help="Pfad zur YAML-Konfiguration.")
@click.option("--data", "data_path", default=None, type=click.Path(path_type=Path),
              help="Pfad zur JSON-Datendatei (überschreibt die Konfiguration).")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Ausführliche Log-Ausgabe.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, data_path: Path | None, verbose: bool):
    """Raumreservierung: Verfügbarkeit und konfliktfreie Buchung von Räumen.

    Starten Sie mit: python main.py setup
    """
    ctx.obj = AppContext(config_path, data_path)
    level = "DEBUG" if verbose else ctx.obj.config.logging.level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def main():
    """Einstiegspunkt."""
    cli()


# Befehle registrieren
cli.add_command(cmd_setup)
cli.add_command(cmd_config)
cli.add_command(cmd_generate)
cli.add_command(cmd_availability)
cli.add_command(cmd_reserve)
cli.add_command(cmd_cancel)
cli.add_command(cmd_reservations)
cli.add_command(cmd_classroom)
cli.add_command(cmd_holiday)
cli.add_command(cmd_report)
cli.add_command(cmd_check)


if __name__ == "__main__":
    main()

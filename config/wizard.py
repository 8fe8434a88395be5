"""Interaktiver Setup-Wizard für die Ersteinrichtung der Raumreservierung.

Führt den Nutzer durch Einrichtung, Blockraster, Speicherort und Policy.
Nutzt rich für schöne Konsolenausgabe.
"""

from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich import box

from config.schema import (
    BlockScheduleConfig,
    BlockTime,
    EngineConfig,
    LoggingConfig,
    PolicyConfig,
    StorageConfig,
)
from config.defaults import default_block_schedule

console = Console()


def _header(title: str) -> None:
    console.print()
    console.print(Panel(f"[bold cyan]{title}[/bold cyan]", expand=False))


def _info(text: str) -> None:
    console.print(f"[dim]{text}[/dim]")


def _success(text: str) -> None:
    console.print(f"[green]✓[/green] {text}")


def _warn(text: str) -> None:
    console.print(f"[yellow]⚠[/yellow]  {text}")


def show_block_schedule_table(bs: BlockScheduleConfig) -> None:
    """Zeigt das Blockraster als rich-Tabelle an."""
    table = Table(title="Blockraster", box=box.ROUNDED)
    table.add_column("Block", style="bold", width=6)
    table.add_column("Beginn", width=8)
    table.add_column("Ende", width=8)
    for b in sorted(bs.blocks, key=lambda b: b.block):
        table.add_row(str(b.block), b.start_time, b.end_time)
    console.print(table)


# ─── SCHRITT 1: Blockraster ───

def _wizard_block_schedule() -> BlockScheduleConfig:
    _header("Schritt 1 — Blockraster")
    default_bs = default_block_schedule()
    show_block_schedule_table(default_bs)

    if Confirm.ask("Standard-Blockraster übernehmen?", default=True):
        _success("Standard-Blockraster übernommen.")
        return default_bs

    raw: list[tuple[int, str, str]] = []
    for d in sorted(default_bs.blocks, key=lambda b: b.block):
        console.print(f"\n[cyan]{d.block}. Block:[/cyan]")
        start = Prompt.ask("  Beginn (HH:MM)", default=d.start_time)
        end = Prompt.ask("  Ende   (HH:MM)", default=d.end_time)
        raw.append((d.block, start, end))

    try:
        bs = BlockScheduleConfig(blocks=[
            BlockTime(block=block, start_time=start, end_time=end)
            for block, start, end in raw
        ])
        _success("Blockraster konfiguriert und validiert.")
        return bs
    except Exception as e:
        _warn(f"Validierungsfehler: {e}")
        _warn("Standard-Blockraster wird verwendet.")
        return default_bs


# ─── SCHRITT 2: Speicher & Policy ───

def _wizard_storage() -> StorageConfig:
    _header("Schritt 2 — Speicher")
    default_sc = StorageConfig()
    path = Prompt.ask("JSON-Datei für den Zustand", default=str(default_sc.data_file))
    keep = Confirm.ask("Versionierte Sicherungskopien anlegen?", default=False)
    return StorageConfig(data_file=Path(path), keep_versions=keep)


def _wizard_policy() -> PolicyConfig:
    _header("Schritt 3 — Policy")
    _info("Buchungen und Abfragen für vergangene Daten können abgelehnt werden.")
    reject = Confirm.ask("Vergangene Daten ablehnen?", default=True)
    return PolicyConfig(reject_past_dates=reject)


def _show_summary(config: EngineConfig) -> None:
    _header("Zusammenfassung")
    table = Table(box=box.ROUNDED, title="Konfigurationsübersicht")
    table.add_column("Bereich", style="bold cyan")
    table.add_column("Wert")

    table.add_row("Einrichtung", config.center_name)
    first = min(config.block_schedule.blocks, key=lambda b: b.block)
    last = max(config.block_schedule.blocks, key=lambda b: b.block)
    table.add_row("Blockraster", f"6 Blöcke, {first.start_time}–{last.end_time}")
    table.add_row("Datendatei", str(config.storage.data_file))
    table.add_row("Vergangene Daten", "abgelehnt" if config.policy.reject_past_dates else "erlaubt")
    table.add_row("Log-Level", config.logging.level)
    console.print(table)


# ─── HAUPT-WIZARD ───

def run_wizard() -> Optional[EngineConfig]:
    """Führt den interaktiven Setup-Wizard aus.

    Returns:
        Fertige EngineConfig oder None, wenn der Nutzer abbricht.
    """
    console.print()
    console.print(Panel(
        "[bold]Willkommen bei der Raumreservierung![/bold]\n\n"
        "Der Wizard richtet Blockraster, Speicherort und Policy ein.\n"
        "[dim]Standard-Werte können mit Enter übernommen werden.[/dim]",
        title="[bold cyan]Raumreservierung[/bold cyan]",
        border_style="cyan",
    ))

    if not Confirm.ask("\nMöchten Sie jetzt die Einrichtung starten?", default=True):
        console.print("[yellow]Einrichtung abgebrochen.[/yellow]")
        return None

    try:
        name = Prompt.ask("Name der Einrichtung", default="Muster-Schule")
        block_schedule = _wizard_block_schedule()
        storage = _wizard_storage()
        policy = _wizard_policy()

        config = EngineConfig(
            center_name=name,
            block_schedule=block_schedule,
            storage=storage,
            policy=policy,
            logging=LoggingConfig(),
        )

        _show_summary(config)

        if not Confirm.ask("\nKonfiguration speichern?", default=True):
            console.print("[yellow]Konfiguration wird nicht gespeichert.[/yellow]")
            return None

        _success("Konfiguration wird gespeichert...")
        return config

    except KeyboardInterrupt:
        console.print("\n[yellow]Wizard abgebrochen.[/yellow]")
        return None

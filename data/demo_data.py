"""Demo-Daten-Generator für die Raumreservierung.

Erzeugt einen realistischen EngineState: Räume mit fester Wochenbelegung,
einen Mehrzweckraum (SUM), einige Feiertage und Reservierungen mehrerer
Nutzer. Alle Daten laufen über den ReservationService und sind damit per
Konstruktion konsistent (keine Doppelbuchung, keine Buchung auf fester
Belegung oder Feiertag).
"""

import random
from datetime import date, timedelta
from typing import Optional

from config.defaults import EQUIPMENT_CATALOG
from config.schema import EngineConfig
from engine.errors import ConflictError, ValidationError
from engine.service import ReservationService
from models.engine_state import EngineState
from models.identity import Identity
from models.timeslot import TimeBlock, Weekday

_ADMIN = Identity(user_id="admin", is_admin=True)

_USERS = [
    "mueller", "schmidt", "schneider", "fischer", "weber",
    "meyer", "wagner", "becker", "schulz", "hoffmann",
]

_HOLIDAY_NAMES = [
    "Brückentag", "Pädagogischer Tag", "Schulfest", "Beweglicher Ferientag",
]


def next_monday(today: Optional[date] = None) -> date:
    """Nächster Montag ab heute (heute selbst, falls Montag)."""
    today = today or date.today()
    return today + timedelta(days=(7 - today.weekday()) % 7)


class DemoDataGenerator:
    """Generiert einen vollständigen Demo-Zustand."""

    def __init__(
        self,
        config: EngineConfig,
        seed: Optional[int] = None,
        start: Optional[date] = None,
        weeks: int = 2,
        num_classrooms: int = 8,
        num_reservations: int = 40,
    ) -> None:
        self.config = config
        self.rng = random.Random(seed)
        self.start = start or next_monday()
        self.weeks = weeks
        self.num_classrooms = num_classrooms
        self.num_reservations = num_reservations
        self.rejected = 0

    # ─── Räume ────────────────────────────────────────────────────────────────

    def _fixed_occupancy(self) -> dict[Weekday, list[TimeBlock]]:
        """Zufällige feste Belegung: pro Tag 0–3 Blöcke."""
        occupancy: dict[Weekday, list[TimeBlock]] = {}
        for day in Weekday:
            k = self.rng.choice([0, 0, 1, 2, 3])
            if k:
                occupancy[day] = sorted(self.rng.sample(list(TimeBlock), k))
        return occupancy

    def _generate_classrooms(self, service: ReservationService) -> None:
        for i in range(self.num_classrooms):
            floor = 1 + i // 4
            service.create_classroom(
                _ADMIN,
                name=f"A{floor}{i % 4 + 1:02d}",
                capacity=self.rng.choice([20, 24, 28, 30, 32]),
                equipment=self.rng.sample(EQUIPMENT_CATALOG, self.rng.randint(1, 3)),
                fixed_occupancy=self._fixed_occupancy(),
            )
        service.create_classroom(
            _ADMIN,
            name="SUM Aula",
            capacity=120,
            equipment=["Beamer", "Lautsprecher", "Bühne"],
            is_multi_use=True,
            fixed_occupancy={Weekday.WEDNESDAY: [TimeBlock.B5, TimeBlock.B6]},
        )

    # ─── Feiertage ────────────────────────────────────────────────────────────

    def _generate_holidays(self, service: ReservationService) -> None:
        days = self._working_days()
        if not days:
            return
        for day in self.rng.sample(days, min(2, len(days))):
            service.add_holiday(_ADMIN, day, self.rng.choice(_HOLIDAY_NAMES))

    def _working_days(self) -> list[date]:
        return [
            self.start + timedelta(days=offset)
            for offset in range(self.weeks * 7)
            if (self.start + timedelta(days=offset)).weekday() < 5
        ]

    # ─── Reservierungen ───────────────────────────────────────────────────────

    def _generate_reservations(self, service: ReservationService) -> None:
        classrooms = service.list_classrooms()
        days = self._working_days()
        for _ in range(self.num_reservations):
            owner = self.rng.choice(_USERS)
            classroom = self.rng.choice(classrooms)
            try:
                service.create_reservation(
                    Identity(user_id=owner),
                    classroom.id,
                    owner,
                    self.rng.choice(days),
                    self.rng.choice(list(TimeBlock)),
                )
            except (ConflictError, ValidationError):
                # Zufallstreffer auf belegte Blöcke/Feiertage werden verworfen
                self.rejected += 1

    def generate(self) -> EngineState:
        """Erzeugt den vollständigen Zustand als EngineState-Objekt."""
        service = ReservationService(reject_past_dates=False)
        self._generate_classrooms(service)
        self._generate_holidays(service)
        self._generate_reservations(service)
        return service.snapshot()

    # ─── Ausgabe ──────────────────────────────────────────────────────────────

    def print_summary(self, state: EngineState) -> None:
        """Gibt eine Rich-Tabelle mit Übersicht der erzeugten Daten aus."""
        from rich.console import Console
        from rich.table import Table
        from rich import box

        console = Console()
        table = Table(title="Erzeugte Demo-Daten", box=box.ROUNDED)
        table.add_column("Kategorie", style="bold cyan")
        table.add_column("Anzahl", justify="right")
        table.add_column("Details")

        num_sum = sum(1 for c in state.classrooms if c.is_multi_use)
        table.add_row("Räume", str(len(state.classrooms)), f"{num_sum} SUM")
        table.add_row("Feiertage", str(len(state.holidays)),
                      ", ".join(h.date.isoformat() for h in state.holidays))
        table.add_row("Reservierungen", str(len(state.reservations)),
                      f"{self.rejected} Versuche verworfen")
        table.add_row("Zeitraum", f"{self.weeks} Wo.",
                      f"ab {self.start.isoformat()}")

        console.print(table)

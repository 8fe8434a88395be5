"""Speicherschicht des Reservierungs-Ledgers.

Der ``SlotStore`` erzwingt den zusammengesetzten Unique-Index
(classroom_id, date, block) selbst, nicht erst die Anwendungslogik darüber.
Schreibzugriffe werden pro Slot über eine Lock-Tabelle serialisiert; es gibt
KEIN globales Lock über alle Räume/Daten. Lesezugriffe arbeiten auf
Momentaufnahmen und sind lock-frei.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import date
from typing import Iterable, Iterator

from engine.errors import ALREADY_BOOKED, ConflictError, NotFoundError, StorageError
from models.reservation import Reservation
from models.timeslot import Slot, TimeBlock

logger = logging.getLogger(__name__)


class SlotLockTable:
    """Lock-Tabelle mit genau einem Lock pro Slot-Schlüssel.

    Einträge sind referenzgezählt: jeder Halter und jeder Wartende zählt mit,
    und der Eintrag verschwindet, sobald der letzte ihn freigibt. Die Tabelle
    wächst daher nur mit den gleichzeitig bearbeiteten Slots. ``_guard``
    schützt nur die Buchhaltung und wird nie während der Slot-Arbeit gehalten.
    """

    def __init__(self) -> None:
        self._entries: dict[Slot, list] = {}  # slot → [Lock, Referenzen]
        self._guard = threading.Lock()

    @contextmanager
    def hold(self, slot: Slot) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(slot)
            if entry is None:
                entry = self._entries[slot] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[slot]

    def __len__(self) -> int:
        return len(self._entries)


class SlotStore:
    """In-Process-Speicher aktiver Reservierungen mit Unique-Index pro Slot."""

    def __init__(self) -> None:
        self._by_id: dict[str, Reservation] = {}
        self._by_slot: dict[Slot, str] = {}
        self._locks = SlotLockTable()

    # ─── Schreiben ───

    def insert(self, reservation: Reservation) -> Reservation:
        """Atomarer Insert. Einziger Commit-Punkt einer Buchung.

        Raises:
            ConflictError: Slot bereits belegt (Constraint-Verletzung).
            StorageError: Reservierungs-ID bereits vergeben.
        """
        slot = reservation.slot
        with self._locks.hold(slot):
            existing = self._by_slot.get(slot)
            if existing is not None:
                raise ConflictError(
                    ALREADY_BOOKED,
                    f"Slot {slot} ist bereits reserviert (Reservierung {existing})",
                )
            if reservation.id in self._by_id:
                raise StorageError(f"Reservierungs-ID {reservation.id} ist bereits vergeben")
            self._by_id[reservation.id] = reservation
            self._by_slot[slot] = reservation.id
        return reservation

    def delete(self, reservation_id: str) -> Reservation:
        """Entfernt eine Reservierung. Sperrt nur deren Slot.

        Raises:
            NotFoundError: Reservierung existiert nicht (mehr).
        """
        reservation = self._by_id.get(reservation_id)
        if reservation is None:
            raise NotFoundError(f"Reservierung {reservation_id} nicht gefunden")
        slot = reservation.slot
        with self._locks.hold(slot):
            if self._by_slot.get(slot) != reservation_id:
                raise NotFoundError(f"Reservierung {reservation_id} nicht gefunden")
            del self._by_slot[slot]
            del self._by_id[reservation_id]
        return reservation

    def bulk_load(self, reservations: Iterable[Reservation]) -> int:
        """Lädt gespeicherte Reservierungen über den normalen Insert-Pfad."""
        count = 0
        for r in reservations:
            self.insert(r)
            count += 1
        logger.debug(f"SlotStore: {count} Reservierungen geladen")
        return count

    # ─── Lesen ───

    def get(self, reservation_id: str) -> Reservation | None:
        return self._by_id.get(reservation_id)

    def occupied_blocks(self, classroom_id: str, day: date) -> frozenset[TimeBlock]:
        by_slot = self._by_slot
        return frozenset(
            b for b in TimeBlock if Slot(classroom_id, day, b) in by_slot
        )

    def snapshot(self) -> list[Reservation]:
        """Momentaufnahme aller aktiven Reservierungen (unsortiert)."""
        return list(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

"""Reservierungs-Ledger: maßgeblicher Bestand aller aktiven Reservierungen."""

import logging
from datetime import date

from engine.errors import (
    DomainError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    ValidationError,
)
from engine.storage import SlotStore
from models.identity import Identity
from models.reservation import Reservation
from models.timeslot import TimeBlock

logger = logging.getLogger(__name__)


class ReservationLedger:
    """Fachliche Sicht auf den SlotStore.

    Neue Reservierungen entstehen ausschließlich über den BookingCoordinator;
    ``insert`` ist dessen atomarer Commit-Punkt.
    """

    def __init__(self, store: SlotStore | None = None) -> None:
        self._store = store if store is not None else SlotStore()

    def insert(self, reservation: Reservation) -> Reservation:
        """Raises ConflictError wenn der Slot bereits belegt ist."""
        try:
            return self._store.insert(reservation)
        except (DomainError, StorageError):
            raise
        except Exception as e:
            raise StorageError(f"Speicherfehler beim Einfügen: {e}") from e

    def remove(self, reservation_id: str, requester: Identity) -> Reservation:
        """Storniert eine Reservierung.

        Raises:
            NotFoundError: Reservierung existiert nicht.
            PermissionDeniedError: requester ist weder Eigentümer noch Admin.
        """
        reservation = self._store.get(reservation_id)
        if reservation is None:
            raise NotFoundError(f"Reservierung {reservation_id} nicht gefunden")
        if not requester.may_act_for(reservation.owner_id):
            raise PermissionDeniedError(
                f"Nutzer {requester.user_id} darf Reservierung {reservation_id} "
                f"nicht stornieren"
            )
        try:
            removed = self._store.delete(reservation_id)
        except (DomainError, StorageError):
            raise
        except Exception as e:
            raise StorageError(f"Speicherfehler beim Entfernen: {e}") from e
        logger.info(f"Reservierung storniert: {removed.id} ({removed.slot}) durch {requester.user_id}")
        return removed

    def discard(self, reservation_id: str) -> None:
        """Entfernt ohne Berechtigungsprüfung (Rollback einer eigenen Buchung)."""
        self._store.delete(reservation_id)

    # ─── Abfragen ───

    def get(self, reservation_id: str) -> Reservation:
        reservation = self._store.get(reservation_id)
        if reservation is None:
            raise NotFoundError(f"Reservierung {reservation_id} nicht gefunden")
        return reservation

    def find_by_owner(self, owner_id: str) -> list[Reservation]:
        """Alle aktiven Reservierungen eines Nutzers, früheste zuerst."""
        return sorted(
            (r for r in self._store.snapshot() if r.owner_id == owner_id),
            key=lambda r: r.sort_key,
        )

    def find_by_date_range(self, start: date, end: date) -> list[Reservation]:
        """Alle aktiven Reservierungen mit start ≤ date ≤ end."""
        if start > end:
            raise ValidationError(
                f"Ungültiger Zeitraum: Start {start.isoformat()} liegt nach Ende {end.isoformat()}"
            )
        return sorted(
            (r for r in self._store.snapshot() if start <= r.date <= end),
            key=lambda r: r.sort_key,
        )

    def find_by_classroom_and_date(self, classroom_id: str, day: date) -> frozenset[TimeBlock]:
        """Belegte Blöcke eines Raums an einem Datum."""
        return self._store.occupied_blocks(classroom_id, day)

    def count_for_classroom(self, classroom_id: str) -> int:
        return sum(1 for r in self._store.snapshot() if r.classroom_id == classroom_id)

    def all(self) -> list[Reservation]:
        return sorted(self._store.snapshot(), key=lambda r: r.sort_key)

    def load(self, reservations: list[Reservation]) -> int:
        return self._store.bulk_load(reservations)

    def __len__(self) -> int:
        return len(self._store)

"""Buchungs-Koordinator: atomares Reservieren und Stornieren.

Zustände eines Buchungsversuchs:
    REQUESTED → VALIDATED → COMMITTED
    REQUESTED → REJECTED

Der einzige Commit-Punkt ist ``ReservationLedger.insert``. Es gibt KEIN
Read-then-Write über die Verfügbarkeit: zwei gleichzeitige Versuche für
denselben Slot werden vom Unique-Index des Ledgers entschieden, genau einer
gewinnt, der andere erhält ConflictError("already-booked"). Es wird nicht
automatisch wiederholt; der Aufrufer muss die Verfügbarkeit neu abfragen.
"""

import logging
import uuid
from datetime import date
from enum import Enum
from typing import Callable

from engine.calendar_policy import CalendarPolicy
from engine.classroom_registry import ClassroomRegistry
from engine.errors import (
    FIXED_OCCUPANCY,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from engine.ledger import ReservationLedger
from models.identity import Identity
from models.reservation import Reservation
from models.timeslot import TimeBlock, Weekday

logger = logging.getLogger(__name__)


class BookingState(str, Enum):
    REQUESTED = "requested"
    VALIDATED = "validated"
    COMMITTED = "committed"
    REJECTED = "rejected"


def _new_reservation_id() -> str:
    return uuid.uuid4().hex


class BookingCoordinator:
    """Führt Buchungsversuche durch die Zustandsmaschine."""

    def __init__(
        self,
        calendar: CalendarPolicy,
        registry: ClassroomRegistry,
        ledger: ReservationLedger,
        id_factory: Callable[[], str] = _new_reservation_id,
    ) -> None:
        self.calendar = calendar
        self.registry = registry
        self.ledger = ledger
        self._id_factory = id_factory

    def reserve(self, classroom_id: str, owner_id: str, day: date, block) -> Reservation:
        """Reserviert (Raum, Datum, Block) für owner_id.

        Raises:
            ValidationError: Block außerhalb 1..6 oder kein Unterrichtstag.
            NotFoundError: Raum existiert nicht.
            ConflictError: "fixed-occupancy" oder "already-booked".
        """
        attempt = f"{classroom_id}/{day.isoformat()}/{block}"
        self._transition(attempt, BookingState.REQUESTED)
        try:
            reservation = self._validate(classroom_id, owner_id, day, block)
            self._transition(attempt, BookingState.VALIDATED)
            self.ledger.insert(reservation)
        except DomainError as e:
            self._transition(attempt, BookingState.REJECTED, e)
            raise

        if not self.registry.settle(classroom_id):
            # Raum wurde während des Commits gelöscht: eigene Buchung zurücknehmen
            self.ledger.discard(reservation.id)
            err = NotFoundError(f"Raum {classroom_id} nicht gefunden")
            self._transition(attempt, BookingState.REJECTED, err)
            raise err

        self._transition(attempt, BookingState.COMMITTED)
        logger.info(f"Reservierung angelegt: {reservation.id} ({reservation.slot}) für {owner_id}")
        return reservation

    def cancel(self, reservation_id: str, requester: Identity) -> Reservation:
        """Storniert; NotFoundError/PermissionDeniedError werden unverändert weitergereicht.

        Ein zweites Stornieren derselben ID ergibt NotFoundError ("nichts zu stornieren").
        """
        return self.ledger.remove(reservation_id, requester)

    # ─── Intern ───

    def _validate(self, classroom_id: str, owner_id: str, day: date, block) -> Reservation:
        try:
            tb = TimeBlock.parse(block)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if not owner_id or not str(owner_id).strip():
            raise ValidationError("Eigentümer der Reservierung fehlt")
        if not self.calendar.is_working_day(day):
            holiday = self.calendar.get_holiday(day)
            reason = f"Feiertag: {holiday.description}" if holiday else "Wochenende"
            raise ValidationError(f"{day.isoformat()} ist kein Unterrichtstag ({reason})")

        classroom = self.registry.get(classroom_id)
        weekday = Weekday.of(day)
        if tb in classroom.blocked_on(weekday):
            raise ConflictError(
                FIXED_OCCUPANCY,
                f"Block {int(tb)} ist in Raum '{classroom.name}' jeden "
                f"{weekday.short_name} fest belegt",
            )
        return Reservation(
            id=self._id_factory(),
            classroom_id=classroom.id,
            owner_id=owner_id,
            date=day,
            block=tb,
        )

    @staticmethod
    def _transition(attempt: str, state: BookingState, error: Exception | None = None) -> None:
        if state is BookingState.REJECTED:
            reason = getattr(error, "reason", type(error).__name__)
            logger.warning(f"Buchung {attempt}: {state.value} ({reason}: {error})")
        else:
            logger.debug(f"Buchung {attempt}: {state.value}")

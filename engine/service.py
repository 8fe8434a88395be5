"""ReservationService: Schnittstelle zur UI/API-Grenze.

Bündelt Kalender, Raum-Register, Ledger, Verfügbarkeitsrechner und
Buchungs-Koordinator. Prüft Berechtigungen anhand der vertrauenswürdigen
Identity und wendet Grenz-Policies an (z.B. keine Daten in der
Vergangenheit). Die Engine-Komponenten selbst sind datumsagnostisch.
"""

import logging
from datetime import date
from typing import Callable, Optional

from engine.availability import AvailabilityCalculator
from engine.booking import BookingCoordinator
from engine.calendar_policy import CalendarPolicy
from engine.classroom_registry import ClassroomRegistry
from engine.errors import PermissionDeniedError, ValidationError
from engine.ledger import ReservationLedger
from models.availability import ClassroomAvailability
from models.classroom import Classroom
from models.engine_state import EngineState
from models.holiday import Holiday
from models.identity import Identity
from models.reservation import Reservation

logger = logging.getLogger(__name__)


class ReservationService:
    """Logische Operationen der externen Schnittstelle."""

    def __init__(
        self,
        calendar: Optional[CalendarPolicy] = None,
        registry: Optional[ClassroomRegistry] = None,
        ledger: Optional[ReservationLedger] = None,
        reject_past_dates: bool = True,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.calendar = calendar or CalendarPolicy()
        self.ledger = ledger or ReservationLedger()
        self.registry = registry or ClassroomRegistry()
        self.registry.bind_reference_count(self.ledger.count_for_classroom)
        self.availability = AvailabilityCalculator(self.calendar, self.registry, self.ledger)
        self.booking = BookingCoordinator(self.calendar, self.registry, self.ledger)
        self.reject_past_dates = reject_past_dates
        self._clock = clock

    # ─── Lesen (öffentlich) ───

    def get_availability(self, day: date) -> list[ClassroomAvailability]:
        self._check_not_past(day)
        return self.availability.compute_availability(day)

    def list_classrooms(self) -> list[Classroom]:
        return self.registry.list()

    def list_holidays(self) -> list[Holiday]:
        return self.calendar.list_holidays()

    # ─── Reservierungen ───

    def create_reservation(
        self,
        identity: Identity,
        classroom_id: str,
        owner_id: str,
        day: date,
        block,
    ) -> Reservation:
        """Nicht-Admins dürfen nur für sich selbst buchen."""
        if not identity.may_act_for(owner_id):
            raise PermissionDeniedError(
                f"Nutzer {identity.user_id} darf nicht für {owner_id} reservieren"
            )
        self._check_not_past(day)
        return self.booking.reserve(classroom_id, owner_id, day, block)

    def cancel_reservation(self, identity: Identity, reservation_id: str) -> Reservation:
        return self.booking.cancel(reservation_id, identity)

    def list_owner_reservations(self, identity: Identity, owner_id: str) -> list[Reservation]:
        if not identity.may_act_for(owner_id):
            raise PermissionDeniedError(
                f"Nutzer {identity.user_id} darf die Reservierungen von {owner_id} nicht einsehen"
            )
        return self.ledger.find_by_owner(owner_id)

    def list_reservations_in_range(
        self, identity: Identity, start: date, end: date
    ) -> list[Reservation]:
        self._require_admin(identity, "Reservierungen nach Zeitraum abfragen")
        return self.ledger.find_by_date_range(start, end)

    # ─── Administration ───

    def create_classroom(
        self,
        identity: Identity,
        name: str,
        capacity: int,
        equipment=None,
        is_multi_use: bool = False,
        fixed_occupancy=None,
    ) -> Classroom:
        self._require_admin(identity, "Räume anlegen")
        return self.registry.create(name, capacity, equipment, is_multi_use, fixed_occupancy)

    def update_classroom(self, identity: Identity, classroom_id: str, changes: dict) -> Classroom:
        self._require_admin(identity, "Räume ändern")
        return self.registry.update(classroom_id, changes)

    def delete_classroom(self, identity: Identity, classroom_id: str) -> Classroom:
        self._require_admin(identity, "Räume löschen")
        return self.registry.delete(classroom_id)

    def add_holiday(self, identity: Identity, day: date, description: str) -> Holiday:
        self._require_admin(identity, "Feiertage anlegen")
        return self.calendar.add_holiday(day, description)

    def remove_holiday(self, identity: Identity, day: date) -> Holiday:
        self._require_admin(identity, "Feiertage löschen")
        return self.calendar.remove_holiday(day)

    # ─── Persistenz ───

    def snapshot(self) -> EngineState:
        return EngineState(
            classrooms=self.registry.list(),
            holidays=self.calendar.list_holidays(),
            reservations=self.ledger.all(),
        )

    @classmethod
    def from_snapshot(cls, state: EngineState, **kwargs) -> "ReservationService":
        """Stellt einen Service aus einem gespeicherten EngineState wieder her.

        Reservierungen laufen über den normalen Insert-Pfad, doppelte Slots
        im Datensatz führen daher zu ConflictError.
        """
        service = cls(calendar=CalendarPolicy(state.holidays), **kwargs)
        for classroom in state.classrooms:
            service.registry.add(classroom)
        service.ledger.load(state.reservations)
        logger.info(
            f"Zustand geladen: {len(state.classrooms)} Räume, {len(state.holidays)} Feiertage, "
            f"{len(state.reservations)} Reservierungen"
        )
        return service

    # ─── Intern ───

    def today(self) -> date:
        return self._clock()

    def _check_not_past(self, day: date) -> None:
        if self.reject_past_dates and day < self._clock():
            raise ValidationError(f"Datum {day.isoformat()} liegt in der Vergangenheit")

    @staticmethod
    def _require_admin(identity: Identity, action: str) -> None:
        if not identity.is_admin:
            raise PermissionDeniedError(f"Nur Administratoren dürfen {action}")

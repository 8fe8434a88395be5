"""Tests für den ReservationService (Berechtigungen, Grenz-Policies, Persistenz)."""

from datetime import date
from pathlib import Path

import pytest

from engine.errors import (
    CLASSROOM_IN_USE,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from engine.service import ReservationService
from models.engine_state import EngineState
from models.identity import Identity

TODAY = date(2025, 3, 20)
MONDAY = date(2025, 3, 24)
HOLIDAY_MONDAY = date(2025, 3, 17)

ADMIN = Identity(user_id="admin", is_admin=True)
U1 = Identity(user_id="U1")
U2 = Identity(user_id="U2")


# ─── Fixtures ─────────────────────────────────────────────────────────────────

@pytest.fixture
def service() -> ReservationService:
    return ReservationService(clock=lambda: TODAY)


@pytest.fixture
def a201(service: ReservationService):
    return service.create_classroom(ADMIN, "A201", 30, fixed_occupancy={"Mo": [1, 2]})


# ─── Tests: Berechtigungen ────────────────────────────────────────────────────

class TestAuthorization:
    def test_non_admin_cannot_administer(self, service, a201):
        """Raum- und Feiertagsverwaltung nur für Admins."""
        with pytest.raises(PermissionDeniedError):
            service.create_classroom(U1, "B101", 20)
        with pytest.raises(PermissionDeniedError):
            service.update_classroom(U1, a201.id, {"capacity": 10})
        with pytest.raises(PermissionDeniedError):
            service.delete_classroom(U1, a201.id)
        with pytest.raises(PermissionDeniedError):
            service.add_holiday(U1, MONDAY, "Schulfest")
        with pytest.raises(PermissionDeniedError):
            service.remove_holiday(U1, MONDAY)
        assert service.registry.get(a201.id).capacity == 30

    def test_user_books_only_for_self(self, service, a201):
        with pytest.raises(PermissionDeniedError):
            service.create_reservation(U1, a201.id, "U2", MONDAY, 4)
        r = service.create_reservation(U1, a201.id, "U1", MONDAY, 4)
        assert r.owner_id == "U1"

    def test_admin_books_for_others(self, service, a201):
        r = service.create_reservation(ADMIN, a201.id, "U2", MONDAY, 5)
        assert r.owner_id == "U2"
        assert service.list_owner_reservations(U2, "U2") == [r]

    def test_cancel_foreign_reservation_denied(self, service, a201):
        r = service.create_reservation(U1, a201.id, "U1", MONDAY, 4)
        with pytest.raises(PermissionDeniedError):
            service.cancel_reservation(U2, r.id)
        service.cancel_reservation(ADMIN, r.id)
        assert service.list_owner_reservations(U1, "U1") == []

    def test_owner_listing_self_or_admin(self, service, a201):
        service.create_reservation(U1, a201.id, "U1", MONDAY, 4)
        with pytest.raises(PermissionDeniedError):
            service.list_owner_reservations(U2, "U1")
        assert len(service.list_owner_reservations(ADMIN, "U1")) == 1

    def test_range_admin_only(self, service, a201):
        service.create_reservation(U1, a201.id, "U1", MONDAY, 4)
        with pytest.raises(PermissionDeniedError):
            service.list_reservations_in_range(U1, MONDAY, MONDAY)
        assert len(service.list_reservations_in_range(ADMIN, MONDAY, MONDAY)) == 1

    def test_range_start_after_end(self, service):
        with pytest.raises(ValidationError):
            service.list_reservations_in_range(ADMIN, MONDAY, HOLIDAY_MONDAY)


# ─── Tests: Grenz-Policies ────────────────────────────────────────────────────

class TestPastDates:
    def test_past_availability_rejected(self, service, a201):
        with pytest.raises(ValidationError):
            service.get_availability(HOLIDAY_MONDAY)

    def test_past_reservation_rejected(self, service, a201):
        with pytest.raises(ValidationError):
            service.create_reservation(U1, a201.id, "U1", date(2025, 3, 19), 4)

    def test_today_allowed(self, service, a201):
        service.create_reservation(U1, a201.id, "U1", TODAY, 4)

    def test_policy_disabled(self):
        lenient = ReservationService(reject_past_dates=False, clock=lambda: TODAY)
        c = lenient.create_classroom(ADMIN, "A201", 30)
        lenient.create_reservation(U1, c.id, "U1", date(2025, 3, 3), 4)
        assert lenient.today() == TODAY


# ─── Tests: Ablauf über die Schnittstelle ────────────────────────────────────

class TestServiceFlow:
    def test_scenario_a201(self):
        """Szenario A201 über die öffentliche Schnittstelle."""
        service = ReservationService(clock=lambda: date(2025, 3, 1))
        a201 = service.create_classroom(ADMIN, "A201", 30, fixed_occupancy={"Mo": [1, 2]})
        service.add_holiday(ADMIN, HOLIDAY_MONDAY, "Brückentag")

        [entry] = service.get_availability(HOLIDAY_MONDAY)
        assert entry.free_block_numbers == []
        [entry] = service.get_availability(MONDAY)
        assert entry.free_block_numbers == [3, 4, 5, 6]

        service.create_reservation(U1, a201.id, "U1", MONDAY, 4)
        with pytest.raises(ConflictError):
            service.create_reservation(U2, a201.id, "U2", MONDAY, 4)

        [entry] = service.get_availability(MONDAY)
        assert entry.free_block_numbers == [3, 5, 6]

    def test_reserve_listed_exactly_once(self, service, a201):
        r = service.create_reservation(U1, a201.id, "U1", MONDAY, 4)
        mine = service.list_owner_reservations(U1, "U1")
        assert [x.id for x in mine].count(r.id) == 1

    def test_delete_classroom_in_use(self, service, a201):
        r = service.create_reservation(U1, a201.id, "U1", MONDAY, 4)
        with pytest.raises(ConflictError) as exc:
            service.delete_classroom(ADMIN, a201.id)
        assert exc.value.reason == CLASSROOM_IN_USE
        service.cancel_reservation(U1, r.id)
        service.delete_classroom(ADMIN, a201.id)
        assert service.list_classrooms() == []

    def test_remove_unknown_holiday(self, service):
        with pytest.raises(NotFoundError):
            service.remove_holiday(ADMIN, MONDAY)


# ─── Tests: Persistenz ────────────────────────────────────────────────────────

class TestSnapshot:
    def test_snapshot_roundtrip(self, service, a201, tmp_path: Path):
        """Zustand speichern, laden und weiterbuchen."""
        service.add_holiday(ADMIN, date(2025, 3, 26), "Schulfest")
        r = service.create_reservation(U1, a201.id, "U1", MONDAY, 4)

        path = tmp_path / "state.json"
        service.snapshot().save_json(path)
        restored = ReservationService.from_snapshot(
            EngineState.load_json(path), clock=lambda: TODAY,
        )

        assert restored.list_classrooms() == [a201]
        assert [h.description for h in restored.list_holidays()] == ["Schulfest"]
        assert restored.ledger.get(r.id) == r
        with pytest.raises(ConflictError):
            restored.create_reservation(U2, a201.id, "U2", MONDAY, 4)
        # Löschschutz gilt auch nach dem Laden
        with pytest.raises(ConflictError):
            restored.delete_classroom(ADMIN, a201.id)

    def test_from_snapshot_duplicate_slots_rejected(self, service, a201):
        r = service.create_reservation(U1, a201.id, "U1", MONDAY, 4)
        state = service.snapshot()
        state.reservations.append(r.model_copy(update={"id": "dup", "owner_id": "U2"}))
        with pytest.raises(ConflictError):
            ReservationService.from_snapshot(state)

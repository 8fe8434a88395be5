"""Tests für die Analyse-Module (Konsistenzprüfung, Auslastung)."""

from datetime import date

import pytest

from analysis.ledger_validator import LedgerValidator
from analysis.utilization import UtilizationAnalyzer
from engine.calendar_policy import CalendarPolicy
from engine.errors import ValidationError
from engine.service import ReservationService
from models.classroom import Classroom
from models.engine_state import EngineState
from models.holiday import Holiday
from models.identity import Identity
from models.reservation import Reservation

MONDAY = date(2025, 3, 24)
FRIDAY = date(2025, 3, 28)


# ─── Testdaten-Hilfsfunktionen ────────────────────────────────────────────────

def _a201() -> Classroom:
    return Classroom(id="r1", name="A201", capacity=30, fixed_occupancy={"Mo": [1, 2]})


def _res(rid: str, classroom_id: str = "r1", day: date = MONDAY, block: int = 4,
         owner: str = "U1") -> Reservation:
    return Reservation(id=rid, classroom_id=classroom_id, owner_id=owner, date=day, block=block)


def _constraints(state: EngineState) -> list[str]:
    return [v.constraint for v in LedgerValidator().validate(state).violations]


# ─── Tests: LedgerValidator ───────────────────────────────────────────────────

class TestLedgerValidator:
    def test_clean_state_is_valid(self):
        """Über den Service erzeugter Zustand ist konsistent."""
        service = ReservationService(reject_past_dates=False)
        admin = Identity(user_id="admin", is_admin=True)
        c = service.create_classroom(admin, "A201", 30, fixed_occupancy={"Mo": [1, 2]})
        service.create_reservation(admin, c.id, "U1", MONDAY, 4)
        service.create_reservation(admin, c.id, "U2", MONDAY, 5)

        report = LedgerValidator().validate(service.snapshot())
        assert report.is_valid
        assert report.violations == []

    def test_empty_state_is_valid(self):
        assert LedgerValidator().validate(EngineState()).is_valid

    def test_double_booking_detected(self):
        state = EngineState(
            classrooms=[_a201()],
            reservations=[_res("a"), _res("b", owner="U2")],
        )
        report = LedgerValidator().validate(state)
        assert not report.is_valid
        assert [v.constraint for v in report.errors] == ["slot_double_booking"]

    def test_orphaned_reservation_detected(self):
        """Reservierung eines gelöschten Raums → Fehler."""
        state = EngineState(classrooms=[_a201()], reservations=[_res("a", classroom_id="gone")])
        assert "orphaned_reservation" in _constraints(state)

    def test_fixed_occupancy_booking_detected(self):
        state = EngineState(classrooms=[_a201()], reservations=[_res("a", block=1)])
        assert "fixed_occupancy_booked" in _constraints(state)

    def test_duplicate_names_detected(self):
        state = EngineState(classrooms=[
            _a201(), Classroom(id="r2", name="a201", capacity=10),
        ])
        assert "duplicate_classroom_name" in _constraints(state)

    def test_holiday_booking_is_warning(self):
        """Nachträglich registrierter Feiertag → nur Warnung."""
        state = EngineState(
            classrooms=[_a201()],
            holidays=[Holiday(date=MONDAY, description="Brückentag")],
            reservations=[_res("a")],
        )
        report = LedgerValidator().validate(state)
        assert report.is_valid
        assert [v.constraint for v in report.warnings] == ["booking_on_non_working_day"]
        assert "Brückentag" in report.warnings[0].description

    def test_weekend_booking_is_warning(self):
        state = EngineState(classrooms=[_a201()],
                            reservations=[_res("a", day=date(2025, 3, 22))])
        report = LedgerValidator().validate(state)
        assert report.is_valid
        assert len(report.warnings) == 1


# ─── Tests: Auslastung ────────────────────────────────────────────────────────

class TestUtilization:
    def test_bookable_blocks_respect_fixed_occupancy(self):
        """Eine Woche: 5 Tage × 6 Blöcke − 2 feste Blöcke am Montag = 28."""
        report = UtilizationAnalyzer(CalendarPolicy()).analyze(
            [_a201()], [_res("a"), _res("b", block=5)], MONDAY, FRIDAY,
        )
        assert report.working_days == 5
        [m] = report.classrooms
        assert m.bookable_blocks == 28
        assert m.booked_blocks == 2
        assert m.rate == pytest.approx(2 / 28)
        assert m.booked_per_weekday == {"Mo": 2}

    def test_holiday_reduces_bookable(self):
        calendar = CalendarPolicy([Holiday(date=date(2025, 3, 25), description="Schulfest")])
        report = UtilizationAnalyzer(calendar).analyze([_a201()], [], MONDAY, FRIDAY)
        assert report.working_days == 4
        assert report.classrooms[0].bookable_blocks == 22
        assert report.overall_rate == 0.0

    def test_reservations_outside_range_ignored(self):
        report = UtilizationAnalyzer(CalendarPolicy()).analyze(
            [_a201()], [_res("a", day=date(2025, 3, 31))], MONDAY, FRIDAY,
        )
        assert report.classrooms[0].booked_blocks == 0

    def test_invalid_range(self):
        with pytest.raises(ValidationError):
            UtilizationAnalyzer(CalendarPolicy()).analyze([], [], FRIDAY, MONDAY)

    def test_overall_rate_across_classrooms(self):
        b101 = Classroom(id="r2", name="B101", capacity=20)
        report = UtilizationAnalyzer(CalendarPolicy()).analyze(
            [_a201(), b101], [_res("a"), _res("b", classroom_id="r2")], MONDAY, MONDAY,
        )
        # Montag: A201 4 buchbar, B101 6 buchbar
        assert [m.bookable_blocks for m in report.classrooms] == [4, 6]
        assert report.overall_rate == pytest.approx(2 / 10)

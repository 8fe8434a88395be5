"""Tests für Kalender, Raum-Register, Ledger und Verfügbarkeitsrechner."""

import threading
from datetime import date

import pytest

from engine.availability import AvailabilityCalculator
from engine.booking import BookingCoordinator
from engine.calendar_policy import CalendarPolicy
from engine.classroom_registry import ClassroomRegistry
from engine.errors import (
    ALREADY_BOOKED,
    CLASSROOM_IN_USE,
    DUPLICATE_HOLIDAY,
    DUPLICATE_NAME,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    ValidationError,
)
from engine.ledger import ReservationLedger
from engine.storage import SlotLockTable, SlotStore
from models.holiday import Holiday
from models.identity import Identity
from models.reservation import Reservation
from models.timeslot import Slot, TimeBlock

MONDAY = date(2025, 3, 24)
HOLIDAY_MONDAY = date(2025, 3, 17)
SATURDAY = date(2025, 3, 22)


# ─── Hilfsfunktionen ──────────────────────────────────────────────────────────

def _reservation(rid: str, classroom_id: str = "r1", owner: str = "U1",
                 day: date = MONDAY, block: int = 4) -> Reservation:
    return Reservation(id=rid, classroom_id=classroom_id, owner_id=owner, date=day, block=block)


def _wired():
    """Kalender, Register, Ledger und Rechner wie im ReservationService verdrahtet."""
    calendar = CalendarPolicy()
    ledger = ReservationLedger()
    registry = ClassroomRegistry(reference_count=ledger.count_for_classroom)
    calc = AvailabilityCalculator(calendar, registry, ledger)
    booking = BookingCoordinator(calendar, registry, ledger)
    return calendar, registry, ledger, calc, booking


# ─── KALENDER ─────────────────────────────────────────────────────────────────

class TestCalendarPolicy:
    def test_working_day_rules(self):
        """Mo–Fr ohne Feiertag ist Unterrichtstag, Wochenende nie."""
        cal = CalendarPolicy()
        assert cal.is_working_day(MONDAY)
        assert not cal.is_working_day(SATURDAY)
        assert not cal.is_working_day(date(2025, 3, 23))

    def test_holiday_is_not_working_day(self):
        cal = CalendarPolicy()
        cal.add_holiday(HOLIDAY_MONDAY, "Brückentag")
        assert not cal.is_working_day(HOLIDAY_MONDAY)
        assert cal.get_holiday(HOLIDAY_MONDAY).description == "Brückentag"

    def test_duplicate_holiday_conflict(self):
        """Zweiter Feiertag am selben Datum → ConflictError(duplicate-holiday)."""
        cal = CalendarPolicy()
        cal.add_holiday(HOLIDAY_MONDAY, "Brückentag")
        with pytest.raises(ConflictError) as exc:
            cal.add_holiday(HOLIDAY_MONDAY, "Schulfest")
        assert exc.value.reason == DUPLICATE_HOLIDAY

    def test_empty_description_validation(self):
        with pytest.raises(ValidationError):
            CalendarPolicy().add_holiday(HOLIDAY_MONDAY, "")

    def test_remove_holiday(self):
        cal = CalendarPolicy([Holiday(date=HOLIDAY_MONDAY, description="Brückentag")])
        removed = cal.remove_holiday(HOLIDAY_MONDAY)
        assert removed.description == "Brückentag"
        assert cal.is_working_day(HOLIDAY_MONDAY)
        with pytest.raises(NotFoundError):
            cal.remove_holiday(HOLIDAY_MONDAY)

    def test_list_holidays_sorted(self):
        cal = CalendarPolicy()
        cal.add_holiday(date(2025, 5, 1), "Tag der Arbeit")
        cal.add_holiday(date(2025, 1, 6), "Dreikönig")
        assert [h.date for h in cal.list_holidays()] == [date(2025, 1, 6), date(2025, 5, 1)]

    def test_working_days_between(self):
        """Woche mit Feiertag am Montag → 4 Unterrichtstage."""
        cal = CalendarPolicy()
        cal.add_holiday(HOLIDAY_MONDAY, "Brückentag")
        days = cal.working_days_between(HOLIDAY_MONDAY, date(2025, 3, 23))
        assert days == [date(2025, 3, d) for d in (18, 19, 20, 21)]

    def test_working_days_between_invalid_range(self):
        with pytest.raises(ValidationError):
            CalendarPolicy().working_days_between(MONDAY, HOLIDAY_MONDAY)


# ─── RAUM-REGISTER ────────────────────────────────────────────────────────────

class TestClassroomRegistry:
    def test_create_and_get(self):
        reg = ClassroomRegistry()
        c = reg.create("A201", 30, "Beamer", fixed_occupancy={"Mo": [1, 2]})
        assert reg.get(c.id) == c
        assert reg.find_by_name("a201") == c
        assert len(reg) == 1

    def test_duplicate_name_case_insensitive(self):
        """Name ist eindeutig, unabhängig von Groß-/Kleinschreibung."""
        reg = ClassroomRegistry()
        reg.create("Aula", 100)
        with pytest.raises(ConflictError) as exc:
            reg.create("AULA", 50)
        assert exc.value.reason == DUPLICATE_NAME

    @pytest.mark.parametrize("kwargs", [
        {"name": "A1", "capacity": 0},
        {"name": "", "capacity": 10},
        {"name": "A1", "capacity": 10, "fixed_occupancy": {"Mo": [7]}},
        {"name": "A1", "capacity": 10, "fixed_occupancy": {"So": [1]}},
        {"name": "A1", "capacity": 10, "fixed_occupancy": {"Mo": [2.9]}},
        {"name": "A1", "capacity": 10, "fixed_occupancy": {"Mo": 3.0}},
        {"name": "A1", "capacity": 10, "fixed_occupancy": {"Mo": "1,2"}},
        {"name": "A1", "capacity": 10, "equipment": [1]},
        {"name": "A1", "capacity": 10, "equipment": 5},
    ])
    def test_invalid_input_validation_error(self, kwargs):
        """Ungültige Eingaben → Engine-ValidationError (nicht pydantic)."""
        with pytest.raises(ValidationError):
            ClassroomRegistry().create(**kwargs)

    def test_update_mutable_fields(self):
        reg = ClassroomRegistry()
        c = reg.create("A201", 30)
        updated = reg.update(c.id, {"capacity": 25, "fixed_occupancy": {"Fr": [6]}})
        assert updated.capacity == 25
        assert updated.name == "A201"
        assert reg.get(c.id).fixed_block_count == 1

    def test_update_name_rejected(self):
        """Namensänderung wird abgelehnt, nicht ignoriert."""
        reg = ClassroomRegistry()
        c = reg.create("A201", 30)
        with pytest.raises(ValidationError):
            reg.update(c.id, {"name": "B101"})
        assert reg.get(c.id).name == "A201"

    def test_update_invalid_value_keeps_old(self):
        reg = ClassroomRegistry()
        c = reg.create("A201", 30)
        with pytest.raises(ValidationError):
            reg.update(c.id, {"capacity": -1})
        assert reg.get(c.id).capacity == 30

    def test_update_unknown_classroom(self):
        with pytest.raises(NotFoundError):
            ClassroomRegistry().update("missing", {"capacity": 3})

    def test_delete_without_reservations(self):
        reg = ClassroomRegistry(reference_count=lambda cid: 0)
        c = reg.create("A201", 30)
        reg.delete(c.id)
        with pytest.raises(NotFoundError):
            reg.get(c.id)
        # Name wird wieder frei
        reg.create("A201", 30)

    def test_delete_in_use_rejected(self):
        """Raum mit aktiven Reservierungen → ConflictError(classroom-in-use)."""
        reg = ClassroomRegistry(reference_count=lambda cid: 2)
        c = reg.create("A201", 30)
        with pytest.raises(ConflictError) as exc:
            reg.delete(c.id)
        assert exc.value.reason == CLASSROOM_IN_USE
        assert reg.is_active(c.id)
        assert reg.get(c.id) == c

    def test_retiring_classroom_invisible(self):
        """Während der Referenzprüfung ist der Raum für neue Buchungen unsichtbar."""
        seen = {}
        reg = ClassroomRegistry()

        def count(cid):
            seen["active"] = reg.is_active(cid)
            seen["listed"] = [c.id for c in reg.list()]
            with pytest.raises(NotFoundError):
                reg.get(cid)
            return 0

        reg.bind_reference_count(count)
        c = reg.create("A201", 30)
        reg.delete(c.id)
        assert seen == {"active": False, "listed": []}

    def test_failed_reference_check_keeps_classroom(self):
        """Fehler in der Referenzprüfung → Raum bleibt aktiv, Fehler wird weitergereicht."""
        def broken(cid):
            raise RuntimeError("DB weg")

        reg = ClassroomRegistry(reference_count=broken)
        c = reg.create("A201", 30)
        with pytest.raises(RuntimeError):
            reg.delete(c.id)
        assert reg.is_active(c.id)

    def test_list_sorted_by_name(self):
        reg = ClassroomRegistry()
        for name in ["b102", "A201", "a101"]:
            reg.create(name, 20)
        assert [c.name for c in reg.list()] == ["a101", "A201", "b102"]


# ─── SPEICHER & LEDGER ────────────────────────────────────────────────────────

class TestSlotStore:
    def test_unique_slot_index(self):
        """Zweiter Insert auf denselben Slot → ConflictError(already-booked)."""
        store = SlotStore()
        store.insert(_reservation("a"))
        with pytest.raises(ConflictError) as exc:
            store.insert(_reservation("b", owner="U2"))
        assert exc.value.reason == ALREADY_BOOKED
        assert len(store) == 1

    def test_duplicate_id_is_storage_error(self):
        store = SlotStore()
        store.insert(_reservation("a", block=1))
        with pytest.raises(StorageError):
            store.insert(_reservation("a", block=2))

    def test_delete_frees_slot(self):
        store = SlotStore()
        store.insert(_reservation("a"))
        store.delete("a")
        assert store.occupied_blocks("r1", MONDAY) == frozenset()
        store.insert(_reservation("b"))
        with pytest.raises(NotFoundError):
            store.delete("a")

    def test_lock_table_entries_released(self):
        """Einträge existieren nur, solange ein Slot gehalten wird."""
        table = SlotLockTable()
        s1 = Slot("r1", MONDAY, TimeBlock.B1)
        with table.hold(s1):
            with table.hold(Slot("r1", MONDAY, TimeBlock.B2)):
                assert len(table) == 2
            assert len(table) == 1
        assert len(table) == 0

    def test_lock_table_same_slot_exclusive(self):
        """Ein zweiter Halter desselben Slots wartet; ein anderer Slot nicht."""
        table = SlotLockTable()
        s1 = Slot("r1", MONDAY, TimeBlock.B1)
        same, other = threading.Event(), threading.Event()

        def hold(slot, event):
            with table.hold(slot):
                event.set()

        with table.hold(s1):
            t_same = threading.Thread(target=hold, args=(s1, same))
            t_other = threading.Thread(target=hold, args=(Slot("r1", MONDAY, TimeBlock.B2), other))
            t_same.start()
            t_other.start()
            assert other.wait(2)
            assert not same.wait(0.2)
        assert same.wait(2)
        t_same.join()
        t_other.join()
        assert len(table) == 0

    def test_store_keeps_no_lock_entries(self):
        store = SlotStore()
        for block in range(1, 7):
            store.insert(_reservation(f"r{block}", block=block))
        store.delete("r3")
        assert len(store._locks) == 0


class TestReservationLedger:
    def test_remove_by_owner(self):
        ledger = ReservationLedger()
        ledger.insert(_reservation("a"))
        removed = ledger.remove("a", Identity(user_id="U1"))
        assert removed.id == "a"
        assert len(ledger) == 0

    def test_remove_by_other_user_denied(self):
        ledger = ReservationLedger()
        ledger.insert(_reservation("a"))
        with pytest.raises(PermissionDeniedError):
            ledger.remove("a", Identity(user_id="U2"))
        assert ledger.get("a").owner_id == "U1"

    def test_remove_by_admin(self):
        ledger = ReservationLedger()
        ledger.insert(_reservation("a"))
        ledger.remove("a", Identity(user_id="admin", is_admin=True))
        with pytest.raises(NotFoundError):
            ledger.get("a")

    def test_remove_twice_not_found(self):
        """Zweites Stornieren → NotFoundError (nichts zu stornieren)."""
        ledger = ReservationLedger()
        ledger.insert(_reservation("a"))
        ledger.remove("a", Identity(user_id="U1"))
        with pytest.raises(NotFoundError):
            ledger.remove("a", Identity(user_id="U1"))

    def test_find_by_owner_sorted(self):
        ledger = ReservationLedger()
        ledger.insert(_reservation("late", day=date(2025, 3, 26), block=1))
        ledger.insert(_reservation("early2", block=5))
        ledger.insert(_reservation("early1", block=2))
        ledger.insert(_reservation("other", owner="U2", block=3))
        assert [r.id for r in ledger.find_by_owner("U1")] == ["early1", "early2", "late"]

    def test_find_by_date_range_inclusive(self):
        ledger = ReservationLedger()
        ledger.insert(_reservation("a", day=date(2025, 3, 24)))
        ledger.insert(_reservation("b", day=date(2025, 3, 26)))
        ledger.insert(_reservation("c", day=date(2025, 3, 28)))
        found = ledger.find_by_date_range(date(2025, 3, 24), date(2025, 3, 26))
        assert [r.id for r in found] == ["a", "b"]

    def test_find_by_date_range_start_after_end(self):
        with pytest.raises(ValidationError):
            ReservationLedger().find_by_date_range(date(2025, 3, 26), date(2025, 3, 24))

    def test_occupied_blocks_and_count(self):
        ledger = ReservationLedger()
        ledger.insert(_reservation("a", block=1))
        ledger.insert(_reservation("b", block=6))
        ledger.insert(_reservation("c", classroom_id="r2", block=1))
        assert ledger.find_by_classroom_and_date("r1", MONDAY) == {TimeBlock.B1, TimeBlock.B6}
        assert ledger.count_for_classroom("r1") == 2
        assert ledger.count_for_classroom("r3") == 0

    def test_unexpected_store_error_wrapped(self):
        """Unerwartete Fehler der Speicherschicht → StorageError."""
        class BrokenStore(SlotStore):
            def insert(self, reservation):
                raise OSError("Platte voll")

        with pytest.raises(StorageError):
            ReservationLedger(BrokenStore()).insert(_reservation("a"))


# ─── VERFÜGBARKEIT ────────────────────────────────────────────────────────────

class TestAvailability:
    def test_all_free_on_plain_day(self):
        calendar, registry, ledger, calc, _ = _wired()
        registry.create("B101", 20)
        result = calc.compute_availability(MONDAY)
        assert len(result) == 1
        assert result[0].free_block_numbers == [1, 2, 3, 4, 5, 6]

    def test_holiday_every_classroom_empty(self):
        """Feiertag: jeder Raum erscheint, mit leerer Menge."""
        calendar, registry, ledger, calc, _ = _wired()
        registry.create("A201", 30)
        registry.create("B101", 20)
        calendar.add_holiday(HOLIDAY_MONDAY, "Brückentag")
        result = calc.compute_availability(HOLIDAY_MONDAY)
        assert [e.name for e in result] == ["A201", "B101"]
        assert all(e.free_blocks == [] for e in result)
        assert all(e.is_fully_booked for e in result)

    def test_weekend_empty(self):
        calendar, registry, ledger, calc, _ = _wired()
        registry.create("A201", 30)
        assert calc.compute_availability(SATURDAY)[0].free_blocks == []

    def test_fixed_occupancy_never_free(self):
        calendar, registry, ledger, calc, _ = _wired()
        c = registry.create("A201", 30, fixed_occupancy={"Mo": [1, 2]})
        for week in range(4):
            day = date.fromordinal(MONDAY.toordinal() + 7 * week)
            entry = calc.compute_for_classroom(c.id, day)
            assert 1 not in entry.free_block_numbers
            assert 2 not in entry.free_block_numbers

    def test_no_classrooms(self):
        _, _, _, calc, _ = _wired()
        assert calc.compute_availability(MONDAY) == []

    def test_compute_for_unknown_classroom(self):
        _, _, _, calc, _ = _wired()
        with pytest.raises(NotFoundError):
            calc.compute_for_classroom("missing", MONDAY)

    def test_sum_flag_irrelevant(self):
        """Mehrzweckraum (SUM) wird wie jeder andere Raum berechnet."""
        _, registry, _, calc, _ = _wired()
        c = registry.create("SUM Aula", 120, is_multi_use=True)
        entry = calc.compute_for_classroom(c.id, MONDAY)
        assert entry.is_multi_use
        assert entry.free_block_numbers == [1, 2, 3, 4, 5, 6]


# ─── SZENARIO A201 ────────────────────────────────────────────────────────────

class TestScenarioA201:
    def test_full_scenario(self):
        """Feste Belegung Mo {1,2}, Feiertag 17.03., Buchung und Konflikt am 24.03."""
        calendar, registry, ledger, calc, booking = _wired()
        a201 = registry.create("A201", 30, fixed_occupancy={"Mo": [1, 2]})
        calendar.add_holiday(HOLIDAY_MONDAY, "Brückentag")

        assert calc.compute_for_classroom(a201.id, HOLIDAY_MONDAY).free_block_numbers == []
        assert calc.compute_for_classroom(a201.id, MONDAY).free_block_numbers == [3, 4, 5, 6]

        booking.reserve(a201.id, "U1", MONDAY, 4)
        with pytest.raises(ConflictError) as exc:
            booking.reserve(a201.id, "U2", MONDAY, 4)
        assert exc.value.reason == ALREADY_BOOKED

        assert calc.compute_for_classroom(a201.id, MONDAY).free_block_numbers == [3, 5, 6]

    def test_cancel_frees_block(self):
        """Nach dem Stornieren ist der Block wieder frei; zweites Stornieren → NotFound."""
        _, registry, _, calc, booking = _wired()
        a201 = registry.create("A201", 30, fixed_occupancy={"Mo": [1, 2]})
        r = booking.reserve(a201.id, "U1", MONDAY, 4)
        booking.cancel(r.id, Identity(user_id="U1"))
        assert 4 in calc.compute_for_classroom(a201.id, MONDAY).free_block_numbers
        with pytest.raises(NotFoundError):
            booking.cancel(r.id, Identity(user_id="U1"))

    def test_delete_in_use_then_after_cancel(self):
        _, registry, _, _, booking = _wired()
        a201 = registry.create("A201", 30)
        r = booking.reserve(a201.id, "U1", MONDAY, 4)
        with pytest.raises(ConflictError) as exc:
            registry.delete(a201.id)
        assert exc.value.reason == CLASSROOM_IN_USE
        booking.cancel(r.id, Identity(user_id="U1"))
        registry.delete(a201.id)
        assert registry.list() == []

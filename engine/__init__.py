"""Reservierungs-Engine: Verfügbarkeit und konfliktfreie Buchung von Räumen."""

from .errors import (
    ConflictError,
    DomainError,
    NotFoundError,
    PermissionDeniedError,
    ReservationEngineError,
    StorageError,
    ValidationError,
)
from .calendar_policy import CalendarPolicy
from .classroom_registry import ClassroomRegistry
from .storage import SlotLockTable, SlotStore
from .ledger import ReservationLedger
from .availability import AvailabilityCalculator
from .booking import BookingCoordinator, BookingState
from .service import ReservationService

__all__ = [
    "ConflictError",
    "DomainError",
    "NotFoundError",
    "PermissionDeniedError",
    "ReservationEngineError",
    "StorageError",
    "ValidationError",
    "CalendarPolicy",
    "ClassroomRegistry",
    "SlotLockTable",
    "SlotStore",
    "ReservationLedger",
    "AvailabilityCalculator",
    "BookingCoordinator",
    "BookingState",
    "ReservationService",
]

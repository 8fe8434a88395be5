from models.timeslot import ALL_BLOCKS, Slot, TimeBlock, Weekday
from models.classroom import Classroom
from models.holiday import Holiday
from models.reservation import Reservation
from models.identity import Identity
from models.availability import ClassroomAvailability
from models.engine_state import EngineState

__all__ = [
    "ALL_BLOCKS",
    "Slot",
    "TimeBlock",
    "Weekday",
    "Classroom",
    "Holiday",
    "Reservation",
    "Identity",
    "ClassroomAvailability",
    "EngineState",
]

"""Abgeleitetes Verfügbarkeits-Ergebnis (nicht gespeichert)."""

from pydantic import BaseModel

from models.timeslot import TimeBlock


class ClassroomAvailability(BaseModel):
    """Freie Blöcke eines Raums an einem abgefragten Datum."""

    classroom_id: str
    name: str
    is_multi_use: bool = False
    free_blocks: list[TimeBlock]

    @property
    def free_block_numbers(self) -> list[int]:
        return [int(b) for b in self.free_blocks]

    @property
    def is_fully_booked(self) -> bool:
        return not self.free_blocks

"""Datenmodell für eine aktive Reservierung (Pydantic v2)."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field

from models.timeslot import Slot, TimeBlock


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Reservation(BaseModel):
    """Eine aktive Reservierung eines Slots.

    Existenz im Ledger = aktiv, Entfernen = storniert. Reservierungen werden
    nie verändert (kein Umbuchen, stattdessen stornieren und neu buchen).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    classroom_id: str
    owner_id: str = Field(min_length=1)
    date: dt.date
    block: TimeBlock
    created_at: dt.datetime = Field(default_factory=_utcnow)

    @property
    def slot(self) -> Slot:
        return Slot(self.classroom_id, self.date, self.block)

    @property
    def sort_key(self) -> tuple:
        """Sortierung "früheste zuerst": Datum, Block, Raum."""
        return (self.date, int(self.block), self.classroom_id)

"""Datenmodell für ein Klassenzimmer mit fester Wochenbelegung (Pydantic v2)."""

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from models.timeslot import TimeBlock, Weekday


def normalize_fixed_occupancy(raw) -> dict[Weekday, frozenset[TimeBlock]]:
    """Normalisiert {Tag: [Blöcke]} → {Weekday: frozenset[TimeBlock]}.

    Tage ohne Blöcke werden entfernt. Tage/Blöcke außerhalb der festen
    Aufzählungen lösen ValueError aus.
    """
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError("Feste Belegung muss ein Mapping Tag → Blöcke sein")
    result: dict[Weekday, frozenset[TimeBlock]] = {}
    for day_raw, blocks_raw in raw.items():
        day = Weekday.parse(day_raw)
        if blocks_raw is None:
            continue
        if not isinstance(blocks_raw, (list, tuple, set, frozenset)):
            raise ValueError(
                f"Blöcke für {day.short_name} müssen eine Liste sein, nicht {blocks_raw!r}"
            )
        blocks = frozenset(TimeBlock.parse(b) for b in blocks_raw)
        if blocks:
            result[day] = result.get(day, frozenset()) | blocks
    return result


class Classroom(BaseModel):
    """Ein reservierbarer Raum.

    ``fixed_occupancy`` enthält pro Unterrichtstag die Blöcke, die jede Woche
    dauerhaft belegt sind (z.B. regulärer Unterricht). ``is_multi_use``
    markiert einen Mehrzweckraum (SUM) und ist für die Verfügbarkeit ohne
    Bedeutung.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = Field(min_length=1)
    capacity: int = Field(gt=0)
    equipment: list[str] = []
    is_multi_use: bool = False
    fixed_occupancy: dict[Weekday, frozenset[TimeBlock]] = {}

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Raumname darf nicht leer sein")
        return v

    @field_validator("equipment", mode="before")
    @classmethod
    def _normalize_equipment(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        if not isinstance(v, (list, tuple, set, frozenset)):
            raise ValueError(f"Ausstattung muss eine Liste sein, nicht {v!r}")
        for item in v:
            if not isinstance(item, str):
                raise ValueError(f"Ausstattung muss aus Texten bestehen, nicht {item!r}")
        return sorted({item.strip() for item in v if item.strip()})

    @field_validator("fixed_occupancy", mode="before")
    @classmethod
    def _normalize_occupancy(cls, v):
        return normalize_fixed_occupancy(v)

    @field_serializer("fixed_occupancy")
    def _serialize_occupancy(self, v: dict[Weekday, frozenset[TimeBlock]]):
        return {str(int(day)): sorted(int(b) for b in blocks)
                for day, blocks in sorted(v.items())}

    @property
    def name_key(self) -> str:
        """Schlüssel für den Eindeutigkeits-Check des Namens."""
        return self.name.casefold()

    def blocked_on(self, weekday: Weekday | None) -> frozenset[TimeBlock]:
        """Fest belegte Blöcke an einem Wochentag (leer für None)."""
        if weekday is None:
            return frozenset()
        return self.fixed_occupancy.get(weekday, frozenset())

    @property
    def fixed_block_count(self) -> int:
        """Anzahl fest belegter Blöcke pro Woche."""
        return sum(len(b) for b in self.fixed_occupancy.values())

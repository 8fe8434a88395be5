"""Datenmodell für einen Feiertag / unterrichtsfreien Tag (Pydantic v2)."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, field_validator


class Holiday(BaseModel):
    """Ein registrierter unterrichtsfreier Tag. Höchstens einer pro Datum."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    description: str

    @field_validator("description")
    @classmethod
    def _strip_description(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Beschreibung darf nicht leer sein")
        return v

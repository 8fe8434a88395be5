from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator


# ─── BLOCKRASTER (nur Anzeige/Export) ───

class BlockTime(BaseModel):
    """Uhrzeiten eines der sechs festen Tagesblöcke."""
    # Blocknummer 1..6
    block: int = Field(ge=1, le=6)
    # Beginn im Format "HH:MM"
    start_time: str
    # Ende im Format "HH:MM"
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_time(cls, v: str) -> str:
        parts = v.strip().split(":")
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            raise ValueError(f"Uhrzeit '{v}' nicht im Format HH:MM")
        hh, mm = int(parts[0]), int(parts[1])
        if not (0 <= hh <= 23 and 0 <= mm <= 59):
            raise ValueError(f"Uhrzeit '{v}' außerhalb des gültigen Bereichs")
        return f"{hh:02d}:{mm:02d}"

    @property
    def label(self) -> str:
        return f"{self.start_time}–{self.end_time}"


class BlockScheduleConfig(BaseModel):
    """Zuordnung Block → Uhrzeit.

    Die Engine rechnet nur mit Blocknummern; die Uhrzeiten dienen der Anzeige
    in CLI und Export.
    """
    blocks: list[BlockTime] = Field(
        description="Uhrzeiten der Blöcke 1..6")

    @model_validator(mode='after')
    def validate_blocks(self):
        """Prüfe dass jeder Block 1..6 genau einmal vorkommt und die Zeiten aufsteigen."""
        numbers = sorted(b.block for b in self.blocks)
        if numbers != [1, 2, 3, 4, 5, 6]:
            raise ValueError(
                f"Blockraster muss die Blöcke 1..6 genau einmal enthalten, nicht {numbers}")
        ordered = sorted(self.blocks, key=lambda b: b.block)
        for b in ordered:
            if b.end_time <= b.start_time:
                raise ValueError(f"Block {b.block}: Ende liegt nicht nach Beginn")
        for prev, cur in zip(ordered, ordered[1:]):
            if cur.start_time < prev.end_time:
                raise ValueError(
                    f"Block {cur.block} beginnt vor dem Ende von Block {prev.block}")
        return self

    def label_for(self, block: int) -> str:
        for b in self.blocks:
            if b.block == int(block):
                return b.label
        return ""


# ─── SPEICHER ───

class StorageConfig(BaseModel):
    """Ablage des Engine-Zustands."""
    # Pfad der JSON-Datei mit Räumen, Feiertagen und Reservierungen
    data_file: Path = Field(Path("output/reservations.json"),
        description="JSON-Datei des Engine-Zustands")
    # Vor jedem Schreiben eine Kopie mit Zeitstempel ablegen
    keep_versions: bool = Field(False,
        description="Versionierte Sicherungskopien anlegen")
    # Wartezeit auf die Dateisperre, die parallele CLI-Aufrufe serialisiert
    lock_timeout: float = Field(10.0, gt=0,
        description="Sekunden Wartezeit auf die Sperre der Datendatei")


# ─── POLICY ───

class PolicyConfig(BaseModel):
    """Grenz-Policies der externen Schnittstelle."""
    # Abfragen/Buchungen für Daten vor heute ablehnen
    reject_past_dates: bool = Field(True,
        description="Daten in der Vergangenheit ablehnen")


# ─── LOGGING ───

class LoggingConfig(BaseModel):
    """Log-Ausgabe der CLI."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field("WARNING",
        description="Log-Level")


# ─── GESAMT-CONFIG ───

class EngineConfig(BaseModel):
    """Gesamtkonfiguration der Reservierungs-Engine."""
    # Name der Einrichtung (Anzeige)
    center_name: str = Field("Muster-Schule",
        description="Name der Einrichtung")
    # Blockraster mit Uhrzeiten
    block_schedule: BlockScheduleConfig
    # Speicherort des Zustands
    storage: StorageConfig = Field(default_factory=StorageConfig)
    # Grenz-Policies
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    # Logging
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

"""EngineState: Vollständiger persistierbarer Zustand der Reservierungs-Engine (Pydantic v2)."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from models.classroom import Classroom
from models.holiday import Holiday
from models.reservation import Reservation


class EngineState(BaseModel):
    """Raumbestand, Feiertagskalender und Reservierungs-Ledger als ein Datensatz."""

    classrooms: list[Classroom] = []
    holidays: list[Holiday] = []
    reservations: list[Reservation] = []
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    data_version: str = "1.0"

    # ─── Übersicht ───

    def summary(self) -> str:
        """Kurze Übersicht über den Datensatz."""
        num_sum = sum(1 for c in self.classrooms if c.is_multi_use)
        owners = {r.owner_id for r in self.reservations}
        lines = [
            f"Räume: {len(self.classrooms)} ({num_sum} Mehrzweckräume/SUM)",
            f"Feste Belegung: {sum(c.fixed_block_count for c in self.classrooms)} Blöcke/Woche",
            f"Feiertage: {len(self.holidays)}",
            f"Reservierungen: {len(self.reservations)} "
            f"({len(owners)} Nutzer)",
        ]
        if self.reservations:
            first = min(r.date for r in self.reservations)
            last = max(r.date for r in self.reservations)
            lines.append(f"Zeitraum: {first.isoformat()} – {last.isoformat()}")
        return "\n".join(lines)

    # ─── Persistenz ────────────────────────────────────────────────────────

    def save_json(self, path: Path) -> None:
        """Speichert den kompletten Zustand als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        now = datetime.now(timezone.utc)
        updated = self.model_copy(update={
            "modified_at": now,
            "created_at": self.created_at or now,
        })
        tmp = path.with_suffix(path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(updated.model_dump_json(indent=2))
        tmp.replace(path)

    def save_versioned(self, base_path: Path) -> Path:
        """Speichert mit Zeitstempel im Dateinamen."""
        base_path = Path(base_path)
        ts = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
        versioned = base_path.parent / f"{base_path.stem}_{ts}{base_path.suffix}"
        self.save_json(versioned)
        return versioned

    @classmethod
    def load_json(cls, path: Path) -> "EngineState":
        """Lädt einen Zustand aus einer JSON-Datei."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"JSON-Datei nicht gefunden: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate_json(f.read())

"""Raum-Register: Identität, feste Wochenbelegung und SUM-Flag der Räume.

Löschen eines Raums mit aktiven Reservierungen wird mit ConflictError
abgelehnt (keine kaskadierende Stornierung). Damit eine gleichzeitig
laufende Buchung keinen verwaisten Eintrag erzeugt, wird der Raum vor der
Referenzprüfung stillgelegt: neue Buchungen sehen ihn dann als nicht
vorhanden. Eine Buchung, die während der Stilllegung committet, wartet mit
``settle`` auf den Ausgang: wurde der Raum gelöscht, rollt sie sich selbst
zurück; wurde das Löschen abgelehnt (weil die Referenzprüfung ihre Buchung
mitgezählt hat), bleibt sie bestehen. Genau eine der beiden Operationen
scheitert.
"""

import logging
import threading
import uuid
from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from engine.errors import (
    CLASSROOM_IN_USE,
    DUPLICATE_NAME,
    ConflictError,
    NotFoundError,
    ValidationError,
    format_pydantic_error,
)
from models.classroom import Classroom

logger = logging.getLogger(__name__)

# Felder, die ein Administrator nach dem Anlegen ändern darf
MUTABLE_FIELDS = frozenset({"capacity", "equipment", "is_multi_use", "fixed_occupancy"})


def _new_classroom_id() -> str:
    return uuid.uuid4().hex


class ClassroomRegistry:
    """Verwaltet alle Räume.

    ``reference_count`` liefert die Zahl aktiver Reservierungen eines Raums
    (typischerweise ``ReservationLedger.count_for_classroom``).
    """

    def __init__(
        self,
        reference_count: Optional[Callable[[str], int]] = None,
        id_factory: Callable[[], str] = _new_classroom_id,
    ) -> None:
        self._classrooms: dict[str, Classroom] = {}
        self._names: dict[str, str] = {}  # name_key → id
        self._retiring: set[str] = set()
        self._lock = threading.Lock()
        self._settled = threading.Condition(self._lock)
        self._reference_count = reference_count
        self._id_factory = id_factory

    def bind_reference_count(self, reference_count: Callable[[str], int]) -> None:
        self._reference_count = reference_count

    # ─── Anlegen ───

    def create(
        self,
        name: str,
        capacity: int,
        equipment=None,
        is_multi_use: bool = False,
        fixed_occupancy=None,
    ) -> Classroom:
        """Legt einen Raum an.

        Raises:
            ValidationError: capacity ≤ 0, leerer Name, Tag/Block außerhalb der Aufzählung.
            ConflictError: Name bereits vergeben.
        """
        classroom = self._build({
            "id": self._id_factory(),
            "name": name,
            "capacity": capacity,
            "equipment": equipment,
            "is_multi_use": is_multi_use,
            "fixed_occupancy": fixed_occupancy,
        })
        return self.add(classroom)

    def add(self, classroom: Classroom) -> Classroom:
        """Registriert ein bereits validiertes Classroom-Objekt (z.B. beim Laden)."""
        with self._lock:
            if classroom.name_key in self._names:
                raise ConflictError(
                    DUPLICATE_NAME, f"Raumname '{classroom.name}' ist bereits vergeben"
                )
            if classroom.id in self._classrooms:
                raise ConflictError(
                    DUPLICATE_NAME, f"Raum-ID '{classroom.id}' ist bereits vergeben"
                )
            self._classrooms[classroom.id] = classroom
            self._names[classroom.name_key] = classroom.id
        logger.info(f"Raum angelegt: {classroom.name} ({classroom.id})")
        return classroom

    # ─── Ändern ───

    def update(self, classroom_id: str, changes: dict) -> Classroom:
        """Ändert capacity, equipment, is_multi_use und/oder fixed_occupancy.

        Der Name ist unveränderlich: ein Änderungswunsch wird abgelehnt,
        nicht stillschweigend ignoriert.

        Raises:
            NotFoundError: Raum existiert nicht.
            ValidationError: Namensänderung, unbekanntes Feld oder ungültiger Wert.
        """
        if "name" in changes or "id" in changes:
            raise ValidationError("Name und ID eines Raums sind nach dem Anlegen unveränderlich")
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unbekannte Felder: {', '.join(sorted(unknown))}")

        with self._lock:
            current = self._get_active_locked(classroom_id)
            updated = self._build({**current.model_dump(), **changes})
            self._classrooms[classroom_id] = updated
        logger.info(f"Raum geändert: {updated.name} ({', '.join(sorted(changes)) or '-'})")
        return updated

    # ─── Löschen ───

    def delete(self, classroom_id: str) -> Classroom:
        """Löscht einen Raum ohne aktive Reservierungen.

        Raises:
            NotFoundError: Raum existiert nicht.
            ConflictError: Raum wird von aktiven Reservierungen referenziert.
        """
        with self._lock:
            classroom = self._get_active_locked(classroom_id)
            self._retiring.add(classroom_id)

        in_use = 1  # bis zur erfolgreichen Prüfung als belegt behandeln
        try:
            in_use = self._reference_count(classroom_id) if self._reference_count else 0
        finally:
            with self._lock:
                self._retiring.discard(classroom_id)
                if not in_use:
                    del self._classrooms[classroom_id]
                    del self._names[classroom.name_key]
                self._settled.notify_all()

        if in_use:
            logger.warning(
                f"Löschen abgelehnt: Raum {classroom.name} hat {in_use} aktive Reservierungen"
            )
            raise ConflictError(
                CLASSROOM_IN_USE,
                f"Raum '{classroom.name}' hat noch {in_use} aktive Reservierung(en) "
                f"und kann nicht gelöscht werden",
            )
        logger.info(f"Raum gelöscht: {classroom.name} ({classroom_id})")
        return classroom

    # ─── Lesen ───

    def get(self, classroom_id: str) -> Classroom:
        """Raises NotFoundError für unbekannte oder gerade gelöschte Räume."""
        with self._lock:
            return self._get_active_locked(classroom_id)

    def is_active(self, classroom_id: str) -> bool:
        return classroom_id in self._classrooms and classroom_id not in self._retiring

    def settle(self, classroom_id: str) -> bool:
        """Wartet, bis eine laufende Stilllegung entschieden ist.

        Returns:
            True, wenn der Raum danach weiterhin existiert.
        """
        with self._settled:
            while classroom_id in self._retiring:
                self._settled.wait()
            return classroom_id in self._classrooms

    def find_by_name(self, name: str) -> Classroom:
        classroom_id = self._names.get(name.strip().casefold())
        if classroom_id is None:
            raise NotFoundError(f"Raum '{name}' nicht gefunden")
        return self.get(classroom_id)

    def list(self) -> list[Classroom]:
        """Alle aktiven Räume, nach Name sortiert."""
        retiring = set(self._retiring)
        return sorted(
            (c for c in list(self._classrooms.values()) if c.id not in retiring),
            key=lambda c: c.name_key,
        )

    def __len__(self) -> int:
        return len(self._classrooms)

    # ─── Intern ───

    def _get_active_locked(self, classroom_id: str) -> Classroom:
        classroom = self._classrooms.get(classroom_id)
        if classroom is None or classroom_id in self._retiring:
            raise NotFoundError(f"Raum {classroom_id} nicht gefunden")
        return classroom

    @staticmethod
    def _build(data: dict) -> Classroom:
        try:
            return Classroom.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Ungültige Raumdaten: {format_pydantic_error(e)}") from e

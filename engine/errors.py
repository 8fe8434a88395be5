"""Fehler-Taxonomie der Reservierungs-Engine.

Vier fachliche Fehlerarten (DomainError) und ein davon getrennter
Infrastrukturfehler (StorageError), damit Aufrufer "Anfrage ungültig" von
"System nicht verfügbar" unterscheiden können.
"""

from typing import Optional


class ReservationEngineError(Exception):
    """Basisklasse aller Fehler der Engine."""


class DomainError(ReservationEngineError):
    """Fachlicher Fehler: die Anfrage selbst ist nicht ausführbar."""

    kind = "domain"


class ValidationError(DomainError):
    """Ungültige Eingabe (Block/Wochentag außerhalb der Aufzählung, leeres Feld, start > end)."""

    kind = "validation"


class ConflictError(DomainError):
    """Eindeutigkeits-Verletzung.

    ``reason`` ist maschinenlesbar: duplicate-name, duplicate-holiday,
    already-booked, fixed-occupancy oder classroom-in-use.
    """

    kind = "conflict"

    def __init__(self, reason: str, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or reason)


class NotFoundError(DomainError):
    """Raum, Feiertag oder Reservierung existiert nicht."""

    kind = "not_found"


class PermissionDeniedError(DomainError):
    """Weder Eigentümer noch Administrator."""

    kind = "permission"


class StorageError(ReservationEngineError):
    """Unerwarteter Fehler der Speicherschicht (kein fachlicher Fehler)."""

    kind = "storage"


# Konflikt-Gründe
DUPLICATE_NAME = "duplicate-name"
DUPLICATE_HOLIDAY = "duplicate-holiday"
ALREADY_BOOKED = "already-booked"
FIXED_OCCUPANCY = "fixed-occupancy"
CLASSROOM_IN_USE = "classroom-in-use"


def format_pydantic_error(exc) -> str:
    """Kompakte deutsche Meldung aus einem pydantic.ValidationError."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "Eingabe"
        msg = err.get("msg", "ungültig")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        parts.append(f"{loc}: {msg}")
    return "; ".join(parts)

"""Vom Authentifizierungsdienst gelieferte, vertrauenswürdige Identität."""

from pydantic import BaseModel, ConfigDict, Field


class Identity(BaseModel):
    """Verifizierte Identität eines Aufrufers (user_id, is_admin)."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(min_length=1)
    is_admin: bool = False

    def may_act_for(self, owner_id: str) -> bool:
        """True wenn der Aufrufer der Eigentümer oder Administrator ist."""
        return self.is_admin or self.user_id == owner_id

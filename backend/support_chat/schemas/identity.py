"""Pydantic model for the locally persisted visitor identity."""

from typing import Optional

from pydantic import BaseModel, Field


class VisitorIdentity(BaseModel):
    """Name, contact details and active ticket of a returning chat visitor."""

    name: str = ""
    email: str = Field(min_length=1)
    phone: str = ""
    ticket_id: Optional[str] = None

    def without_ticket(self) -> "VisitorIdentity":
        """Copy of this identity with the active ticket forgotten."""
        return self.model_copy(update={"ticket_id": None})

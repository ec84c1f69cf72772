from typing import Dict
from uuid import UUID

from pydantic import BaseModel, Field


class CurrentUser(BaseModel):
    """Authenticated caller, taken from access token claims. id is the actor recorded on transitions."""

    id: UUID
    role: str
    permissions: Dict[str, Dict[str, bool]] = Field(default_factory=dict)

from typing import Dict
from uuid import UUID

from pydantic import BaseModel, Field


class CurrentUser(BaseModel):
    """Authenticated caller. school_id is the only tenant context services receive."""

    id: UUID
    school_id: UUID
    full_name: str
    role: str
    permissions: Dict[str, Dict[str, bool]] = Field(default_factory=dict)

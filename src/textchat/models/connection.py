"""
Connection descriptor for one signaling endpoint.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class ConnectionInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: str = ""  # set when the token was issued; opaque here

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConnectionInfo):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def display_alias(self) -> str:
        return self.metadata or self.id
